"""Tests for logging helpers."""

import json
import logging
import sys

import pytest

from audit_agent.utils.logger import JSONFormatter, get_logger, parse_log_rotation_size


class TestParseLogRotationSize:

    @pytest.mark.parametrize(
        "size, expected",
        [
            ("10MB", 10 * 1024 ** 2),
            ("1gb", 1024 ** 3),
            ("512KB", 512 * 1024),
            ("2M", 2 * 1024 ** 2),
            ("100B", 100),
            (" 4096 ", 4096),
        ],
    )
    def test_parses_units(self, size: str, expected: int) -> None:
        assert parse_log_rotation_size(size) == expected

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            parse_log_rotation_size("lots")


class TestJSONFormatter:

    def test_includes_extra_fields(self) -> None:
        record = logging.LogRecord(
            name="audit_agent.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Running step %s",
            args=(2,),
            exc_info=None,
        )
        record.step_id = 2
        record.model = "gemini-3-pro-preview"

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Running step 2"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "audit_agent.test"
        assert payload["step_id"] == 2
        assert payload["model"] == "gemini-3-pro-preview"
        assert "msg" not in payload

    def test_includes_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = get_logger("audit_agent.test").makeRecord(
                "audit_agent.test", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
            )

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in payload["exception"]
