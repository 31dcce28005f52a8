"""
Property-based tests for the audit logger.

Covers output formats, level filtering, masking of sensitive values and
error context.
"""

import json
from io import StringIO

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nawala_checker.audit_logger import LEVEL_ORDER, AuditLogger, parse_level
from nawala_checker.enums import LogLevel


component_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"),
    min_size=1,
    max_size=20,
)

message_strategy = st.text(
    alphabet=st.characters(
        whitelist_categories=('L', 'N', 'P', 'S', 'Zs'),
        blacklist_characters='\x00\n\r',
    ),
    min_size=1,
    max_size=100,
)

level_strategy = st.sampled_from(list(LogLevel))

SENSITIVE_KEYS = ["token", "bot_token", "hmac_secret", "password", "Authorization", "api_key"]


@st.composite
def non_sensitive_key_strategy(draw) -> str:
    key = draw(st.text(alphabet=st.sampled_from("bcdfgmnqvxyz_"), min_size=1, max_size=15))
    return f"k_{key}"


class TestDualFormatProperty:
    """The configured output format decides what reaches the stream."""

    @given(component=component_strategy, message=message_strategy)
    @settings(max_examples=100)
    def test_both_format_writes_json_then_text(self, component: str, message: str) -> None:
        """*For any* entry, 'both' writes one JSON line followed by one text line."""
        stream = StringIO()
        logger = AuditLogger(output_format="both", output_stream=stream)
        entry = logger.log(LogLevel.INFO, component, message, {"domain": "example.com"})

        json_line, text_line = stream.getvalue().splitlines()
        parsed = json.loads(json_line)
        assert parsed["component"] == component
        assert parsed["message"] == logger.scrub(message)
        assert parsed["level"] == "info"
        assert parsed["data"] == {"domain": "example.com"}
        assert text_line == logger.get_text_output(entry)
        assert f"[{component}]" in text_line
        assert "INFO" in text_line

    @given(message=message_strategy)
    @settings(max_examples=50)
    def test_json_only_format(self, message: str) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="json", output_stream=stream)
        logger.log(LogLevel.WARN, "scheduler", message)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == logger.scrub(message)

    def test_text_without_data_has_no_json_suffix(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream)
        logger.log(LogLevel.INFO, "api", "started")
        assert stream.getvalue().rstrip().endswith("INFO [api] started")

    def test_invalid_format_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuditLogger(output_format="xml")


class TestLevelFilterProperty:
    """Entries below the minimum level are never written or kept."""

    @given(minimum=level_strategy, level=level_strategy)
    @settings(max_examples=100)
    def test_filtering(self, minimum: LogLevel, level: LogLevel) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream, min_level=minimum)
        entry = logger.log(level, "engine", "tick")

        if LEVEL_ORDER[level] >= LEVEL_ORDER[minimum]:
            assert entry is not None
            assert logger.entries == [entry]
        else:
            assert entry is None
            assert logger.entries == []
            assert stream.getvalue() == ""

    @pytest.mark.parametrize("name,expected", [
        ("debug", LogLevel.DEBUG),
        ("INFO", LogLevel.INFO),
        ("warning", LogLevel.WARN),
        (" warn ", LogLevel.WARN),
        (LogLevel.ERROR, LogLevel.ERROR),
    ])
    def test_parse_level(self, name, expected: LogLevel) -> None:
        assert parse_level(name) == expected

    def test_parse_level_rejects_unknown(self) -> None:
        with pytest.raises(ValueError):
            parse_level("verbose")


class TestSensitiveDataMaskingProperty:
    """Secrets never reach the output stream."""

    @given(key=st.sampled_from(SENSITIVE_KEYS), secret=st.text(alphabet="0123456789abcdef:", min_size=12, max_size=40))
    @settings(max_examples=100)
    def test_sensitive_data_masked(self, key: str, secret: str) -> None:
        """*For any* sensitive key, its value is replaced before output."""
        stream = StringIO()
        logger = AuditLogger(output_format="both", output_stream=stream)
        entry = logger.log(LogLevel.INFO, "config", "loaded", {key: secret})

        assert entry.data[key] == AuditLogger.MASK_VALUE
        assert secret not in stream.getvalue()

    @given(key=non_sensitive_key_strategy(), value=st.integers())
    @settings(max_examples=100)
    def test_non_sensitive_data_not_masked(self, key: str, value: int) -> None:
        logger = AuditLogger(output_stream=StringIO())
        assert logger.mask_sensitive_data({key: value}) == {key: value}

    def test_nested_sensitive_data_masked(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        masked = logger.mask_sensitive_data({
            "telegram": {"bot_token": "123:abc", "admin_id": "42"},
            "channels": [{"auth": "x", "name": "telegram"}, "plain"],
        })
        assert masked == {
            "telegram": {"bot_token": AuditLogger.MASK_VALUE, "admin_id": "42"},
            "channels": [{"auth": AuditLogger.MASK_VALUE, "name": "telegram"}, "plain"],
        }

    def test_bot_token_in_url_is_scrubbed(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream)
        url = "https://api.telegram.org/bot123456:AAH-secret/sendMessage"
        logger.log_error("notifier", f"POST {url} failed", RuntimeError(f"Client error for url {url}"))

        output = stream.getvalue()
        assert "AAH-secret" not in output
        assert "/bot***MASKED***/sendMessage" in output

    def test_input_is_not_mutated(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        data = {"token": "t"}
        logger.log(LogLevel.INFO, "bot", "x", data)
        assert data == {"token": "t"}


class TestErrorContextProperty:
    """Error entries carry the exception type and message."""

    @given(message=message_strategy, detail=message_strategy)
    @settings(max_examples=100)
    def test_error_logs_include_error_context(self, message: str, detail: str) -> None:
        logger = AuditLogger(output_stream=StringIO())
        entry = logger.log_error("oracle_client", message, RuntimeError(detail), {"domains": 3})

        assert entry.level == LogLevel.ERROR
        assert entry.data["error_message"] == logger.scrub(detail)
        assert entry.data["error_type"] == "RuntimeError"
        assert entry.data["domains"] == 3

    def test_error_without_exception(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        entry = logger.log_error("reconciler", "cycle failed")
        assert entry.data == {}

    def test_additional_data_is_copied(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        extra = {"cycle": 1}
        logger.log_error("reconciler", "cycle failed", ValueError("x"), extra)
        assert extra == {"cycle": 1}

    def test_clear_entries(self) -> None:
        logger = AuditLogger(output_stream=StringIO())
        logger.log(LogLevel.INFO, "a", "b")
        logger.clear_entries()
        assert logger.entries == []
