# tablekit/utils/logger.py
# File logs for service actions (access.log) and failures (error.log)

import logging
import os
import traceback

from tablekit import config

ACCESS_LOGGER = "access"
ERROR_LOGGER = "error"

_plain = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")


def _file_logger(name: str, filename: str, level: int) -> logging.Logger:
    lg = logging.getLogger(name)
    lg.setLevel(level)
    lg.propagate = False
    # reloads (uvicorn --reload, importlib.reload in tests) must not stack handlers
    if not lg.handlers:
        os.makedirs(config.LOGS_PATH, exist_ok=True)
        handler = logging.FileHandler(os.path.join(config.LOGS_PATH, filename), encoding="utf-8")
        handler.setFormatter(_plain)
        lg.addHandler(handler)
    return lg


access_logger = _file_logger(ACCESS_LOGGER, "access.log", logging.INFO)
error_logger = _file_logger(ERROR_LOGGER, "error.log", logging.ERROR)


def log_info(message: str) -> None:
    """One line per completed action: saves, deletes, rejected filters."""
    access_logger.info(message)


def log_exception(e: Exception, context: str = "") -> None:
    """Record a collaborator failure with its traceback; never re-raises."""
    trace = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    error_logger.error(f"{context or 'unhandled'}: {type(e).__name__}: {e}\n{trace}")
