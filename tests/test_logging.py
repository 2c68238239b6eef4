"""Tests for the package log formatters."""
import io
import json
import logging

import pytest

from bookly.core.config import settings
from bookly.core.logging import LoggingConfig, get_logger


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def capture():
    """Attach a string-backed handler to a dedicated logger."""
    attached = []

    def _attach(formatter: logging.Formatter):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        logger = logging.getLogger("bookly.tests.formatting")
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        attached.append((logger, handler))
        return stream

    yield _attach

    for logger, handler in attached:
        logger.removeHandler(handler)
        logger.propagate = True


# =============================================================================
# Structured rendering
# =============================================================================

def test_structured_json_masks_sensitive_extra(capture):
    stream = capture(LoggingConfig.build_formatter(structured=True, log_format="json"))

    get_logger("bookly.tests.formatting").info(
        "Login attempt",
        extra={"password": "hunter2", "request_id": "r-1", "details": {"token": "abc"}},
    )

    output = stream.getvalue()
    record = json.loads(output)
    assert record["event"] == "Login attempt"
    assert record["password"] == "[REDACTED]"
    assert record["details"]["token"] == "[REDACTED]"
    assert record["request_id"] == "r-1"
    assert record["service"] == settings.PROJECT_NAME
    assert record["level"] == "info"
    assert "hunter2" not in output
    assert "abc" not in output


def test_structured_text_masks_sensitive_extra(capture):
    stream = capture(LoggingConfig.build_formatter(structured=True, log_format="text"))

    get_logger("bookly.tests.formatting").warning(
        "Token refresh", extra={"api_key": "k-123", "attempt": 2}
    )

    output = stream.getvalue()
    assert "api_key='[REDACTED]'" in output
    assert "attempt=2" in output
    assert "k-123" not in output


# =============================================================================
# Plain rendering
# =============================================================================

def test_plain_json_formatter_carries_level_and_extra(capture):
    stream = capture(LoggingConfig.build_formatter(structured=False, log_format="json"))

    get_logger("bookly.tests.formatting").info("Expired requests swept", extra={"expired": 3})

    record = json.loads(stream.getvalue())
    assert record["message"] == "Expired requests swept"
    assert record["level"] == "INFO"
    assert record["logger"] == "bookly.tests.formatting"
    assert record["expired"] == 3
