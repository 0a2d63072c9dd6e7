from __future__ import annotations

import logging
import os
from typing import Literal

import coloredlogs  # type: ignore[import]

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

LOG_LEVEL_ENV_VAR = "LOGLEVEL"
DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# zeroconf logs every malformed mDNS packet on the LAN at INFO/DEBUG.
QUIET_LOGGERS = ("zeroconf", "asyncio")


def resolve_level(level: str | None) -> str:
    """Explicit level, then $LOGLEVEL, then INFO. Unknown names fall back to INFO."""
    candidate = (level or os.environ.get(LOG_LEVEL_ENV_VAR) or DEFAULT_LEVEL).upper()
    if candidate not in logging.getLevelNamesMapping():
        return DEFAULT_LEVEL
    return candidate


def setup_logging(level: LogLevel | str | None = None) -> None:
    resolved = resolve_level(level)
    coloredlogs.install(level=resolved, fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    # Library chatter stays at WARNING unless the user asked for DEBUG.
    quiet_level = logging.DEBUG if resolved == "DEBUG" else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    if level and resolved != level.upper():
        logging.getLogger(__name__).warning(
            "Unknown log level %r, using %s", level, resolved
        )
