import logging

import pytest

from core.structured_logging import (
    StructuredLogger,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)


def test_structured_logger_redacts_sensitive_keys():
    logger = StructuredLogger("tests")

    # use non-sensitive placeholder values to avoid secret-detection false positives
    data = {
        "api_key": "placeholder_value",  # pragma: allowlist secret
        "email": "me@example.com",
        "resume_text": "Ada Lovelace, Analyst",
        "section": "experience",
    }
    sanitized = logger._sanitize_data(data)

    assert sanitized["api_key"] == "[REDACTED]"
    assert sanitized["email"] == "[REDACTED]"
    assert sanitized["resume_text"] == "[REDACTED]"
    assert sanitized["section"] == "experience"


def test_structured_logger_redacts_nested_values():
    logger = StructuredLogger("tests")
    sanitized = logger._sanitize_data(
        {"contact": {"phone": "555-0100", "city": "London"}, "items": [{"token": "x"}]}
    )

    assert sanitized["contact"] == {"phone": "[REDACTED]", "city": "London"}
    assert sanitized["items"] == [{"token": "[REDACTED]"}]


def test_structured_logger_header_like_redaction():
    logger = StructuredLogger("tests")

    # header value uses a benign placeholder token
    header = {"name": "Authorization", "value": "Bearer placeholder_token"}
    redacted = logger._redact_header_like(header)
    assert redacted["value"] == "[REDACTED]"

    assert logger._redact_header_like({"name": "Accept", "value": "json"}) is None


def test_correlation_id_is_generated_once():
    set_correlation_id(None)
    first = get_correlation_id()
    assert first
    assert get_correlation_id() == first

    set_correlation_id("session-42")
    assert get_correlation_id() == "session-42"


def test_log_lines_carry_correlation_id(caplog: pytest.LogCaptureFixture):
    set_correlation_id("analysis-7")
    logger = StructuredLogger("tests.correlation")

    with caplog.at_level(logging.INFO, logger="tests.correlation"):
        logger.info("Dimension degraded", dimension="skills", email="a@b.c")

    assert "[analysis-7] Dimension degraded" in caplog.text
    assert "dimension='skills'" in caplog.text
    assert "a@b.c" not in caplog.text


def test_setup_logging_is_idempotent(monkeypatch: pytest.MonkeyPatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])

    setup_logging()
    setup_logging()

    assert len(root.handlers) == 1
