"""
Structured logging helpers.

Messages get a ` | key=value | ...` suffix carrying the bound request id, the
participant and any extra fields, so token and reward movements can be grepped
per participant or per room.
"""

import logging
from typing import Optional

from core.logging import request_id_var


def get_request_id() -> str:
    """Request id bound by `core.logging.request_context`, or empty."""
    return request_id_var.get("")


def format_context(message: str, participant_id: Optional[int] = None, **fields) -> str:
    parts = []
    request_id = get_request_id()
    if request_id:
        parts.append(f"id={request_id}")
    if participant_id is not None:
        parts.append(f"participant_id={participant_id}")
    parts.extend(f"{key}={value}" for key, value in fields.items() if value is not None)
    return " | ".join([message] + parts)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    participant_id: Optional[int] = None,
    exc_info: bool = False,
    **fields,
):
    """
    Log `message` at `level` with structured context.

    Args:
        logger: The module logger
        level: logging.INFO, logging.WARNING, ...
        message: Human readable event description
        participant_id: Participant the event concerns, if any
        exc_info: Attach the active exception traceback
        **fields: Extra context such as room_id, tier or balance
    """
    if logger.isEnabledFor(level):
        logger.log(level, format_context(message, participant_id, **fields), exc_info=exc_info)


def log_info(logger: logging.Logger, message: str, participant_id: Optional[int] = None, **fields):
    log_with_context(logger, logging.INFO, message, participant_id, **fields)


def log_warning(logger: logging.Logger, message: str, participant_id: Optional[int] = None, **fields):
    log_with_context(logger, logging.WARNING, message, participant_id, **fields)


def log_error(
    logger: logging.Logger,
    message: str,
    participant_id: Optional[int] = None,
    exc_info: bool = False,
    **fields,
):
    log_with_context(logger, logging.ERROR, message, participant_id, exc_info=exc_info, **fields)


def log_debug(logger: logging.Logger, message: str, participant_id: Optional[int] = None, **fields):
    log_with_context(logger, logging.DEBUG, message, participant_id, **fields)
