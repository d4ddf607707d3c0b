"""
Logging Configuration

One stdout handler shared by the API process and the seed script.

Logger layout:
    - ``citewise``: application root, follows LOG_LEVEL.
    - ``citewise.services.*``: one logger per pipeline stage (lexical,
      rerank, diversity, answer...). ``PIPELINE_LOG_LEVEL`` overrides their
      level so ranking traces can be enabled without debugging everything.
    - ``sqlalchemy.engine``: SQL echo only when LOG_LEVEL is DEBUG.
    - ``httpx`` / ``openai``: provider client chatter capped at WARNING.
"""

from __future__ import annotations

import sys
from logging.config import dictConfig
from typing import Any

from citewise.core.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PIPELINE_STAGES: tuple[str, ...] = (
    "lexical",
    "rerank",
    "diversity",
    "answer",
    "embeddings",
    "llm",
    "pipeline",
    "ingestion",
)

QUIET_CLIENT_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")


def _console_logger(level: str) -> dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for ``settings``."""
    app_level = settings.LOG_LEVEL.upper()
    stage_level = (settings.PIPELINE_LOG_LEVEL or app_level).upper()
    sql_level = "INFO" if app_level == "DEBUG" else "WARNING"

    loggers: dict[str, Any] = {
        "citewise": _console_logger(app_level),
        "uvicorn": _console_logger("INFO"),
        "uvicorn.access": _console_logger("INFO"),
        "sqlalchemy.engine": _console_logger(sql_level),
    }
    for stage in PIPELINE_STAGES:
        # Propagates to ``citewise`` for the handler
        loggers[f"citewise.services.{stage}"] = {"level": stage_level}
    for name in QUIET_CLIENT_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging(settings: Settings) -> None:
    """
    Apply the logging configuration.

    Call once at startup (lifespan handler or script main).
    """
    dictConfig(build_logging_config(settings))
