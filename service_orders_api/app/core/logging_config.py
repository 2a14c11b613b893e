"""
Logging configuration for the application.

``setup_logging`` attaches a console handler (and optionally a file
handler) to the root logger once.  Individual loggers can be tuned
with ``LOG_LEVELS``, a comma‑separated list such as
``"uvicorn.access=WARNING,service_orders_api=DEBUG"``.
"""

import logging
from pathlib import Path
from typing import Dict, Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_logger_levels(value: str) -> Dict[str, int]:
    """Turn ``"name=LEVEL,..."`` into a mapping of logger name to level.

    Entries with an unknown level name are ignored.
    """
    levels: Dict[str, int] = {}
    for entry in value.split(","):
        name, sep, level_name = entry.partition("=")
        if not sep or not name.strip():
            continue
        level = logging.getLevelName(level_name.strip().upper())
        if isinstance(level, int):
            levels[name.strip()] = level
    return levels


def setup_logging(level: str = "INFO", logfile: Optional[str] = None, logger_levels: str = "") -> None:
    """Configure the root logger.

    Parameters
    ----------
    level : str
        Root level name (e.g. ``"DEBUG"``, ``"INFO"``), case insensitive.
    logfile : Optional[str]
        Path of a file to also log to.  Relative paths are resolved
        against the current working directory.
    logger_levels : str
        Per‑logger overrides in the ``LOG_LEVELS`` format.
    """
    for name, override in parse_logger_levels(logger_levels).items():
        logging.getLogger(name).setLevel(override)

    root = logging.getLogger()
    if root.handlers:
        # Already configured (tests, or create_app called twice).
        return
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(Path(logfile).resolve(), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
