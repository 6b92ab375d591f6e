# credsim/core/log.py
"""
Logger factory for the simulation core.

Modules log through `get_logger(__name__)`. Handlers are only attached when
CREDSIM_DEBUG is truthy: a rotating file at logs/credsim_debug.log receives
everything under the "credsim" logger. Otherwise the host application owns
logging configuration.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

ROOT_LOGGER_NAME = "credsim"
DEBUG_LOG_PATH = os.path.join("logs", "credsim_debug.log")

_CONFIGURED = False


def debug_enabled() -> bool:
    return os.getenv("CREDSIM_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


def _attach_debug_handler(root: logging.Logger) -> None:
    """Attach the rotating debug file handler once (best-effort)."""
    # Avoid duplicate handlers if reloaded in REPL/tests
    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return

    try:
        os.makedirs(os.path.dirname(DEBUG_LOG_PATH), exist_ok=True)
        handler = RotatingFileHandler(DEBUG_LOG_PATH, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    except OSError:
        # A read-only working directory must not break the calculation
        return

    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="(%Y-%m-%d %H:%M:%S)",
        )
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the credsim namespace, wiring the debug file handler on first use."""
    global _CONFIGURED
    if not _CONFIGURED:
        if debug_enabled():
            _attach_debug_handler(logging.getLogger(ROOT_LOGGER_NAME))
        _CONFIGURED = True

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
