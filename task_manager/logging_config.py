"""Process-wide logging setup."""

import logging
import logging.config
from typing import Any, Dict

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Loggers that are too chatty at INFO for normal operation
NOISY_LOGGERS = ("aiosqlite", "asyncpg", "sqlalchemy.engine", "uvicorn.access")


def build_log_config(level: str = "INFO", fmt: str = "text") -> Dict[str, Any]:
    """dictConfig schema for one stdout handler in text or JSON format.

    The same dict is handed to uvicorn so reloaded worker processes
    configure logging identically.
    """
    level = level.upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    formatter = "json" if fmt == "json" else "text"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"format": TEXT_FORMAT},
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": JSON_FORMAT,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": formatter,
                "level": level,
            },
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
    }


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure the root logger with a single stdout handler.

    Call once at startup. Handlers installed earlier are replaced so
    repeated calls (reloads, tests) do not duplicate output.
    """
    logging.config.dictConfig(build_log_config(level, fmt))
