"""Python code execution in a Daytona sandbox.

Each run gets a fresh sandbox: create, optionally ``pip install`` missing
libraries, run the code, delete. Chart artifacts come back without their
embedded images.
"""
from __future__ import annotations

import re
import sys
from typing import Any

from daytona import AsyncDaytona, CreateSandboxFromSnapshotParams, DaytonaConfig, DaytonaError

from extreme_search.config import settings
from extreme_search.exceptions import SandboxError
from extreme_search.models.research import CodeRunnerOutput
from extreme_search.services.logger import logger

IMAGE_KEYS = frozenset({"png", "jpeg", "jpg", "svg", "gif", "image", "base64"})

# import name -> distribution name
PACKAGE_ALIASES = {
    "sklearn": "scikit-learn",
    "cv2": "opencv-python",
    "PIL": "pillow",
    "bs4": "beautifulsoup4",
    "yaml": "pyyaml",
}

_IMPORT_RE = re.compile(r"^[ \t]*import[ \t]+([\w \t,.]+?)[ \t]*(?:#.*)?$", re.MULTILINE)
_FROM_IMPORT_RE = re.compile(r"^[ \t]*from[ \t]+([\w.]+)[ \t]+import\b", re.MULTILINE)


def detect_missing_libraries(code: str, preinstalled: list[str] | None = None) -> list[str]:
    """Guess which third-party distributions the snippet needs installed.

    This is a line-based heuristic, not a parser: imports inside strings are
    picked up and dynamic imports are missed.
    """
    preinstalled_set = {
        lib.lower() for lib in (preinstalled if preinstalled is not None else settings.preinstalled_library_list)
    }
    modules: list[str] = []
    for match in _IMPORT_RE.finditer(code):
        for part in match.group(1).split(","):
            name = part.strip().split(" as ")[0].strip()
            if name:
                modules.append(name.split(".")[0])
    for match in _FROM_IMPORT_RE.finditer(code):
        if not match.group(1).startswith("."):
            modules.append(match.group(1).split(".")[0])

    missing: list[str] = []
    for module in modules:
        if module in sys.stdlib_module_names or module == "__future__":
            continue
        package = PACKAGE_ALIASES.get(module, module)
        if package.lower() in preinstalled_set or module.lower() in preinstalled_set:
            continue
        if package not in missing:
            missing.append(package)
    return missing


def strip_chart_images(value: Any) -> Any:
    """Drop embedded image payloads from a chart artifact, recursively."""
    if isinstance(value, dict):
        return {
            key: strip_chart_images(item)
            for key, item in value.items()
            if key.lower() not in IMAGE_KEYS
        }
    if isinstance(value, list):
        return [strip_chart_images(item) for item in value]
    return value


def _chart_dict(chart: Any) -> Any:
    if isinstance(chart, dict):
        return chart
    to_dict = getattr(chart, "to_dict", None)
    return to_dict() if callable(to_dict) else None


class SandboxClient:
    """Runs code in a throwaway Daytona sandbox."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        target: str | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.daytona_api_key
        self.api_url = api_url or settings.daytona_api_url
        self.target = target or settings.daytona_target
        self.timeout = timeout or settings.sandbox_timeout_seconds

    def _config(self) -> DaytonaConfig:
        if not self.api_key:
            raise SandboxError("DAYTONA_API_KEY is not configured")
        return DaytonaConfig(api_key=self.api_key, api_url=self.api_url, target=self.target)

    async def run(self, code: str, extra_libraries: list[str] | None = None) -> CodeRunnerOutput:
        timeout = int(self.timeout)
        async with AsyncDaytona(self._config()) as daytona:
            try:
                sandbox = await daytona.create(
                    CreateSandboxFromSnapshotParams(language="python", auto_stop_interval=0),
                    timeout=timeout,
                )
            except DaytonaError as e:
                raise SandboxError(f"Failed to create sandbox: {e}") from e

            try:
                if extra_libraries:
                    installed = await sandbox.process.exec(
                        "pip install " + " ".join(extra_libraries), timeout=timeout
                    )
                    if installed.exit_code:
                        logger.warning("pip install exited with %s: %s", installed.exit_code, installed.result)
                response = await sandbox.process.code_run(code, timeout=timeout)
            except DaytonaError as e:
                raise SandboxError(f"Sandbox execution failed: {e}") from e
            finally:
                try:
                    await daytona.delete(sandbox)
                except DaytonaError as e:
                    logger.warning("Failed to delete sandbox %s: %s", sandbox.id, e)

        artifacts = getattr(response, "artifacts", None)
        charts = [_chart_dict(chart) for chart in (getattr(artifacts, "charts", None) or [])]
        return CodeRunnerOutput(
            result=str(response.result or ""),
            charts=[strip_chart_images(chart) for chart in charts if isinstance(chart, dict)],
        )


async def run_code(code: str) -> CodeRunnerOutput:
    missing = detect_missing_libraries(code)
    if missing:
        logger.info("Installing sandbox libraries: %s", ", ".join(missing))
    return await SandboxClient().run(code, missing)
