"""Loguru sinks plus the structured records emitted during a search session."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from layered_search.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "openai._base_client",
    "asyncio",
)


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """Install the stderr sink and, unless the log dir is empty, a daily rotating file sink."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=(level or settings.app_log_level).upper(),
        colorize=True,
    )

    directory = settings.log_dir if log_dir is None else log_dir
    if directory:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        logger.add(
            path / "layered_search_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
            compression="zip",
        )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def _emit(tag: str, payload: dict[str, Any], level: str = "INFO") -> None:
    record = {"timestamp": datetime.now(timezone.utc).isoformat(), **payload}
    logger.log(level, f"{tag}: {record}")


def log_llm_call(
    model: str,
    caller: str,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
    input_tokens: int = 0,
    output_tokens: int = 0,
) -> None:
    """Log an LLM API call."""
    payload = {
        "model": model,
        "caller": caller,
        "duration_ms": duration_ms,
        "status": status,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "error": error,
    }
    if error:
        _emit("LLM_CALL_FAILED", payload, level="ERROR")
    else:
        _emit("LLM_CALL", payload)


def log_session_step(
    session_id: str,
    step_type: str,
    status: str,
    data: Optional[dict[str, Any]] = None,
) -> None:
    """Log one step (analysis, layer, completion) of a multi-layer search session."""
    _emit(
        "SESSION_STEP",
        {"session_id": session_id, "step_type": step_type, "status": status, "data": data},
    )


def log_retrieval_failure(stage: str, target: str, kind: str, message: str) -> None:
    """Warn about a fetch or provider failure that was absorbed into a fallback result."""
    _emit(
        "RETRIEVAL_FAILED",
        {"stage": stage, "target": target, "kind": kind, "message": message},
        level="WARNING",
    )


configure_logging()
