"""Centralized logging service using loguru."""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from deepresearch.config import settings

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
    "trafilatura",
    "asyncio",
)


def configure_logging(log_dir: Optional[str] = None) -> None:
    """Console sink at ``app_log_level`` plus a daily file sink when ``log_dir`` is set."""
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=settings.app_log_level.upper(), colorize=True)

    directory = settings.log_dir if log_dir is None else log_dir
    if directory:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        logger.add(
            path / "deepresearch_{time:YYYY-MM-DD}.log",
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
            compression="zip",
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(settings.noisy_log_level.upper())


configure_logging()


def log_llm_call(
    model: str,
    caller: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log a completion service call."""
    call_data = {
        "model": model,
        "caller": caller,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": input_tokens + output_tokens,
        "duration_ms": duration_ms,
        "status": status,
    }
    if error:
        logger.error(f"LLM_CALL_FAILED: {call_data} error={error}")
    else:
        logger.info(f"LLM_CALL: {call_data}")


def log_phase(session_id: str, phase: str, status: str, **data: Any) -> None:
    """Log a phase transition or terminal outcome of one research session."""
    logger.bind(session_id=session_id).info(
        f"RESEARCH_PHASE: session={session_id[:8]} phase={phase} status={status} {data or ''}".rstrip()
    )


def log_adapter_failure(adapter: str, query: str, error: BaseException | str) -> None:
    logger.warning(f"SOURCE_FAILED: adapter={adapter} query='{query[:80]}' error={error}")
