"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path

import structlog

_LOGGING_INITIALISED = False
_LOG_DIR: Path | None = None

RUN_LOG_NAME = "zonefetch.log"
ERROR_LOG_NAME = "error.log"


def default_log_dir() -> Path:
    env_root = os.environ.get("ZONEFETCH_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(verbose: bool = False, log_dir: Path | None = None) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED, _LOG_DIR
    if not _LOGGING_INITIALISED:
        target_dir = log_dir or default_log_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        run_log = target_dir / RUN_LOG_NAME
        error_log = target_dir / ERROR_LOG_NAME
        run_log.touch(exist_ok=True)
        error_log.touch(exist_ok=True)

        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "plain": {
                        "()": "pythonjsonlogger.json.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(threadName)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        # Keep stdout free for the rich summary; warnings still surface.
                        "level": level if verbose else "WARNING",
                        "formatter": "plain",
                    },
                    "run_file": {
                        "class": "logging.FileHandler",
                        "level": level,
                        "filename": str(run_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "plain",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "zonefetch": {
                        "handlers": ["console", "run_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOG_DIR = target_dir
        _LOGGING_INITIALISED = True
    return structlog.get_logger("zonefetch")


def get_logger(component: str) -> structlog.BoundLogger:
    """Return the application logger bound to a pipeline component."""

    return configure_logging().bind(component=component)


def current_log_dir() -> Path:
    return _LOG_DIR or default_log_dir()


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = [
    "ERROR_LOG_NAME",
    "RUN_LOG_NAME",
    "configure_logging",
    "current_log_dir",
    "default_log_dir",
    "get_logger",
    "tail_log",
]
