"""Logging setup and one-line JSON log records for the research pipeline."""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from extreme_search.config import settings

LOG_FILE_NAME = "extreme_search.log"

# Framework and network libraries log at NOISY_LOG_LEVEL unless overridden.
NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "openai._base_client",
    "trafilatura",
    "asyncio",
)


def _level(name: str, default: int) -> int:
    return getattr(logging, name.upper(), default)


def configure_logging(log_dir: Optional[str] = None) -> Path:
    """Send records to the console and to ``<log_dir>/extreme_search.log``."""
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=_level(settings.app_log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(directory / LOG_FILE_NAME),
            logging.StreamHandler(),
        ],
    )
    noisy_level = _level(settings.noisy_log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
    return directory


LOG_DIR = configure_logging()
logger = logging.getLogger("extreme_search")


def _write(tag: str, payload: dict[str, Any], level: int = logging.INFO) -> None:
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
    logger.log(level, "%s: %s", tag, json.dumps(record, default=str))


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Record one model call with its token usage and latency."""
    _write(
        "LLM_CALL",
        {
            "model": model,
            "caller": caller,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
            "duration_ms": duration_ms,
            "status": status,
            "error": error,
        },
        logging.WARNING if error else logging.INFO,
    )


def log_research_step(
    request_id: str,
    step_type: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    """Record a pipeline stage transition (plan, execute, synthesis)."""
    _write(
        "RESEARCH_STEP",
        {"request_id": request_id, "step_type": step_type, "status": status, "data": data},
    )


def log_fallback(stage: str, error: BaseException | str, **context: Any) -> None:
    """Record a stage that degraded to its deterministic recovery path."""
    _write(
        "FALLBACK",
        {"stage": stage, "error": str(error), "error_type": type(error).__name__, **context},
        logging.WARNING,
    )


def log_event(event_type: str, message: str, **context: Any) -> None:
    _write("EVENT", {"event_type": event_type, "message": message, **context})
