from __future__ import annotations

import pytest

from extreme_search.services.prompt_store import render_prompt


def test_render_prompt_substitutes_template_values():
    prompt = render_prompt(
        "planner.system",
        today="October 19, 2026",
        current_year=2026,
    )
    assert "October 19, 2026" in prompt
    assert "2026" in prompt
    assert "$" not in prompt


def test_render_agent_prompt_lists_queries():
    prompt = render_prompt(
        "agent.system",
        today="October 19, 2026",
        current_year=2026,
        total_queries=2,
        query_list='1. "a"\n2. "b"',
    )
    assert '1. "a"' in prompt
    assert '2. "b"' in prompt


def test_render_prompt_raises_for_unknown_key():
    with pytest.raises(KeyError):
        render_prompt("missing.prompt.key")


def test_render_prompt_raises_for_missing_value():
    with pytest.raises(KeyError, match="today"):
        render_prompt("planner.system", current_year=2026)
