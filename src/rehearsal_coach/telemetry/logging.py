"""Contract for runtime telemetry and the logging setup behind it."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rich.logging import RichHandler

ROOT_LOGGER = "rehearsal_coach"


class Telemetry(Protocol):
    """Reports practice-session outcomes and operational events."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggingTelemetry:
    """Telemetry sink that writes events to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(f"{ROOT_LOGGER}.telemetry")

    def emit(self, event_name: str, payload: dict) -> None:
        self._logger.info(event_name, extra={"telemetry": payload})


class NullTelemetry:
    def emit(self, event_name: str, payload: dict) -> None:
        return None


def configure_logging(level: str | int = "INFO", **handler_options: Any) -> logging.Logger:
    """Attach a rich console handler to the package logger once."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(show_path=False, **handler_options)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    return logger
