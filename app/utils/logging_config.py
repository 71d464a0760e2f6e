"""Logging helpers for generation cycles"""
import logging
import uuid
from typing import Optional

def new_cycle_id() -> str:
    """Short id tying together the log lines of one generation cycle"""
    return uuid.uuid4().hex[:8]

def log_cycle_event(logger: logging.Logger, cycle_id: str, action: str, details: str = ""):
    """
    Log a generation cycle step in a consistent format.

    Args:
        logger: Logger instance
        cycle_id: Generation cycle id
        action: Action description
        details: Additional details
    """
    log_msg = f"Cycle {cycle_id} | {action}"
    if details:
        log_msg += f" | {details}"
    logger.info(log_msg)

def log_error_with_context(
    logger: logging.Logger,
    error: Exception,
    context: str,
    cycle_id: Optional[str] = None
):
    """
    Log error with context information.

    Args:
        logger: Logger instance
        error: Exception object
        context: Context description
        cycle_id: Optional generation cycle id
    """
    cycle_info = f"Cycle {cycle_id} | " if cycle_id else ""
    logger.error(
        f"{cycle_info}{context}: {type(error).__name__}: {str(error)}",
        exc_info=True
    )
