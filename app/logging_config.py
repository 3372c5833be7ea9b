# app/logging_config.py
"""
Central logging configuration.

`create_app()` calls `configure_logging(settings.log_level)`; modules use
`logger = logging.getLogger(__name__)`.
"""

import logging
import sys
from typing import Iterable

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HANDLER_NAME = "chat-relay"

# Provider SDK and its HTTP transport log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(level: str = "INFO", quiet_loggers: Iterable[str] = QUIET_LOGGERS) -> int:
    """
    Apply the configured log level, installing the stdout handler once.

    Parameters
    ----------
    level : str
        Level name from settings (e.g. "debug", "INFO"); case-insensitive.
    quiet_loggers : iterable of str
        Third-party loggers capped at WARNING unless `level` is stricter.

    Returns
    -------
    int
        The numeric level applied to the root logger.

    Raises
    ------
    ValueError
        If `level` is not a known level name.
    """
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric)
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.set_name(HANDLER_NAME)
        root.addHandler(handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(numeric, logging.WARNING))
    return numeric
