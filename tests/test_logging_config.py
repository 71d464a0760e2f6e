"""Tests for logging helpers."""

import logging

from app.utils.logging_config import log_cycle_event, log_error_with_context, new_cycle_id


def test_cycle_id_is_short_and_unique():
    first, second = new_cycle_id(), new_cycle_id()
    assert len(first) == 8
    assert first != second

def test_cycle_event_format(caplog):
    logger = logging.getLogger("tests.cycle")
    with caplog.at_level(logging.INFO, logger="tests.cycle"):
        log_cycle_event(logger, "abc12345", "Images generated", "3/6")
    assert "Cycle abc12345 | Images generated | 3/6" in caplog.text

def test_error_with_context_includes_type(caplog):
    logger = logging.getLogger("tests.errors")
    with caplog.at_level(logging.ERROR, logger="tests.errors"):
        try:
            raise RuntimeError("boom")
        except RuntimeError as e:
            log_error_with_context(logger, e, "Text generation failed", "abc12345")
    assert "Cycle abc12345 | Text generation failed: RuntimeError: boom" in caplog.text
