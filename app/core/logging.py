# app/core/logging.py
import logging

from app.core.config import get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once (e.g. when tests build several apps): the
    handler is only added the first time, later calls just adjust the level.
    """
    resolved = (level or get_settings().LOG_LEVEL or "INFO").upper()

    root = logging.getLogger()
    if not any(getattr(h, "_cadence_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._cadence_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    root.setLevel(getattr(logging, resolved, logging.INFO))
