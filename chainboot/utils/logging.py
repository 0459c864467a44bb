"""Root logger setup for processes hosting the bootstrap orchestrator.

Bootstrap work happens on named worker threads (``chainboot-stage1`` and
``chainboot-stage2``), so the format carries the thread name next to the
logger name.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Sequence

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LEVEL_ENV_VAR = "CHAINBOOT_LOG_LEVEL"
DEBUG_ENV_VARS = ("CHAINBOOT_DEBUG", "CHAINBOOT_DEBUG_LOGGING")

# Chatty below WARNING while streaming a multi-gigabyte archive.
NOISY_LIBRARIES = ("urllib3", "requests")


def parse_level(value: object, fallback: int = logging.INFO) -> int:
    """Turn ``"debug"``, ``"10"`` or ``logging.DEBUG`` into a numeric level."""
    if isinstance(value, int):
        return value
    text = str(value or "").strip()
    if not text:
        return fallback
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else fallback


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def level_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[int]:
    """Return the level requested through the environment, if any.

    ``CHAINBOOT_LOG_LEVEL`` wins over the debug switches.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(LEVEL_ENV_VAR)
    if explicit and explicit.strip():
        return parse_level(explicit)
    if any(_truthy(env.get(name)) for name in DEBUG_ENV_VARS):
        return logging.DEBUG
    return None


def configure_root(
    default_level: int | str = logging.INFO,
    *,
    quiet: Sequence[str] = NOISY_LIBRARIES,
) -> int:
    """Configure the root logger once and return the effective level.

    An already configured root (e.g. by uvicorn or pytest) keeps its handlers;
    only the level is adjusted.
    """
    env_level = level_from_env()
    effective = env_level if env_level is not None else parse_level(default_level)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=effective, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root.setLevel(effective)

    floor = max(effective, logging.WARNING)
    for name in quiet:
        logging.getLogger(name).setLevel(floor)
    return effective


def level_name(level: int) -> str:
    """Return logging level name for diagnostics."""
    return logging.getLevelName(level)


__all__ = ["LOG_FORMAT", "configure_root", "level_from_env", "level_name", "parse_level"]
