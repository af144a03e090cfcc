from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Any

PROMPTS_PATH = Path(__file__).resolve().parents[1] / "prompts" / "prompts.json"


@lru_cache(maxsize=1)
def load_catalog() -> dict[str, Any]:
    catalog = json.loads(PROMPTS_PATH.read_text(encoding="utf-8"))
    if not isinstance(catalog, dict):
        raise ValueError(f"{PROMPTS_PATH.name} must hold a JSON object")
    return catalog


@lru_cache(maxsize=None)
def prompt_template(key: str) -> Template:
    """Template for a dotted catalog key such as ``planner.system``.

    An entry is either a string or a list of lines joined with newlines.
    """
    node: Any = load_catalog()
    for part in key.split("."):
        try:
            node = node[part]
        except (KeyError, TypeError):
            raise KeyError(f"Prompt key not found: {key}") from None
    if isinstance(node, list) and all(isinstance(line, str) for line in node):
        node = "\n".join(node)
    if not isinstance(node, str):
        raise TypeError(f"Prompt {key} is neither a string nor a list of lines")
    return Template(node)


def render_prompt(key: str, **values: Any) -> str:
    template = prompt_template(key)
    try:
        return template.substitute(**values)
    except KeyError as exc:
        raise KeyError(f"Missing template value '{exc.args[0]}' for prompt '{key}'") from exc
