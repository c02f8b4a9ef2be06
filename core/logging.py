"""Centralized logging setup."""

import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import WatchedFileHandler
from typing import Optional

# Correlates every log line written while one core operation runs
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)-5s] [%(name)-20s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _has_handler(root: logging.Logger, handler_type: type, filename: Optional[str] = None) -> bool:
    for handler in root.handlers:
        if not isinstance(handler, handler_type):
            continue
        if filename is None or getattr(handler, "baseFilename", None) == filename:
            return True
    return False


def configure_logging(*, environment: str, log_level: str, log_path: Optional[str] = None) -> int:
    """Attach stdout (and optionally a watched file) handlers to the root logger.

    Safe to call more than once; handlers are only added when missing.
    Returns the numeric level that was applied.
    """
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    if not _has_handler(root, logging.StreamHandler):
        stream = logging.StreamHandler(sys.stdout)
        stream.setLevel(level)
        stream.setFormatter(formatter)
        root.addHandler(stream)

    log_path = (log_path if log_path is not None else os.getenv("APP_LOG_PATH", "")).strip()
    if log_path:
        try:
            directory = os.path.dirname(log_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            if not _has_handler(root, WatchedFileHandler, filename=os.path.abspath(log_path)):
                file_handler = WatchedFileHandler(log_path)
                file_handler.setLevel(level)
                file_handler.setFormatter(formatter)
                root.addHandler(file_handler)
        except OSError as exc:
            root.warning("Failed to configure file logging for %s: %s", log_path, exc)

    # SQL statements are only echoed when debugging locally
    sql_level = logging.INFO if environment == "development" and level <= logging.DEBUG else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("passlib").setLevel(logging.WARNING)

    return level


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def request_context(request_id: Optional[str] = None):
    """Bind a request id for the duration of the block, keeping any outer one."""
    if request_id_var.get(""):
        yield request_id_var.get()
        return
    token = request_id_var.set(request_id or new_request_id())
    try:
        yield request_id_var.get()
    finally:
        request_id_var.reset(token)
