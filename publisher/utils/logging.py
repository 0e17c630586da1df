"""Logging configuration using structlog."""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from publisher.config import settings


def configure_logging() -> None:
    """Configure structured logging for the application."""
    # Log to stdout and to a file under the configured log directory
    project_root = Path(__file__).resolve().parents[2]
    log_dir = Path(settings.log_directory)
    if not log_dir.is_absolute():
        log_dir = project_root / log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / settings.log_file_name

    handlers = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_file, encoding="utf-8"),
    ]

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level),
        handlers=handlers,
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def mask_token(token: str | None) -> str:
    """Render a credential safely for log output."""
    if not token:
        return ""
    return f"***{token[-4:]}" if len(token) > 8 else "***"
