"""
Audit Logger module for the Nawala checker system.

Structured logging with JSON and/or human-readable text output, a minimum
severity filter and masking of sensitive values (bot tokens, HMAC secrets)
before anything reaches the output stream.
"""

import json
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, TextIO, Union

from .enums import LogLevel


LEVEL_ORDER = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


@dataclass
class LogEntry:
    """Represents a single log entry with all metadata."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)


def parse_level(value: Union[LogLevel, str]) -> LogLevel:
    """Accept a LogLevel or its name; ``warning`` is read as ``warn``."""
    if isinstance(value, LogLevel):
        return value
    name = str(value).strip().lower()
    if name == "warning":
        name = "warn"
    try:
        return LogLevel(name)
    except ValueError:
        raise ValueError(f"Invalid log level: {value}")


class AuditLogger:
    """
    Structured logger shared by every component.

    Entries below ``min_level`` are dropped entirely. Logged entries are also
    kept in memory (``entries``) so tests can assert on them.
    """

    # Keys that should be masked in log output
    SENSITIVE_KEYS = frozenset({
        'token', 'secret', 'password', 'api_key', 'hmac_secret',
        'bot_token', 'auth', 'authorization', 'credential', 'credentials',
    })

    MASK_VALUE = "***MASKED***"

    # Telegram puts the bot token in the URL path: /bot<token>/method
    TOKEN_IN_URL = re.compile(r"(/bot)[^/\s]+(?=/)")

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        min_level: Union[LogLevel, str] = LogLevel.INFO,
    ):
        """
        Initialize the audit logger.

        Args:
            output_format: Output format - 'json', 'text', or 'both'
            output_stream: Output stream for log entries (defaults to sys.stderr)
            min_level: Lowest severity that is written
        """
        if output_format not in ("json", "text", "both"):
            raise ValueError(f"Invalid output_format: {output_format}")

        self._output_format = output_format
        self._output_stream = output_stream or sys.stderr
        self._min_level = parse_level(min_level)
        self._entries: list[LogEntry] = []

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Get all logged entries (for testing)."""
        return self._entries.copy()

    def is_enabled_for(self, level: LogLevel) -> bool:
        return LEVEL_ORDER[level] >= LEVEL_ORDER[self._min_level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log an entry in the configured format(s).

        Args:
            level: Log severity level
            component: Component name generating the log
            message: Human-readable log message
            data: Optional additional data to include

        Returns:
            The created LogEntry, or None if the level is filtered out
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=self.scrub(message),
            data=self.mask_sensitive_data(data or {}),
        )

        self._entries.append(entry)
        self._output_entry(entry)
        return entry

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        additional_data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log an error with its exception context.

        Args:
            component: Component name generating the log
            message: Human-readable error message
            error: Optional exception object
            additional_data: Optional additional context data
        """
        data = additional_data.copy() if additional_data else {}

        if error is not None:
            data["error_message"] = str(error)
            data["error_type"] = type(error).__name__

        return self.log(LogLevel.ERROR, component, message, data)

    def mask_sensitive_data(self, data: dict) -> dict:
        """
        Recursively mask sensitive data in a dictionary.

        Args:
            data: Dictionary potentially containing sensitive data

        Returns:
            New dictionary with sensitive values masked
        """
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                masked[key] = self.MASK_VALUE
            elif isinstance(value, dict):
                masked[key] = self.mask_sensitive_data(value)
            elif isinstance(value, list):
                masked[key] = [
                    self.mask_sensitive_data(item) if isinstance(item, dict) else item
                    for item in value
                ]
            elif isinstance(value, str):
                masked[key] = self.scrub(value)
            else:
                masked[key] = value

        return masked

    def scrub(self, text: str) -> str:
        """Replace bot tokens embedded in Telegram URLs."""
        return self.TOKEN_IN_URL.sub(r"\1" + self.MASK_VALUE, text)

    def _output_entry(self, entry: LogEntry) -> None:
        if self._output_format in ("json", "both"):
            self._output_stream.write(self._format_json(entry) + "\n")

        if self._output_format in ("text", "both"):
            self._output_stream.write(self._format_text(entry) + "\n")

        self._output_stream.flush()

    def _format_json(self, entry: LogEntry) -> str:
        obj = {
            "timestamp": entry.timestamp,
            "level": entry.level.value,
            "component": entry.component,
            "message": entry.message,
            "data": entry.data,
        }
        return json.dumps(obj, ensure_ascii=False, default=str)

    def _format_text(self, entry: LogEntry) -> str:
        # [TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}
        parts = [
            f"[{entry.timestamp}]",
            entry.level.value.upper(),
            f"[{entry.component}]",
            entry.message,
        ]

        if entry.data:
            parts.append(json.dumps(entry.data, ensure_ascii=False, default=str))

        return " ".join(parts)

    def get_json_output(self, entry: LogEntry) -> str:
        """Get JSON output for an entry (for testing)."""
        return self._format_json(entry)

    def get_text_output(self, entry: LogEntry) -> str:
        """Get text output for an entry (for testing)."""
        return self._format_text(entry)

    def clear_entries(self) -> None:
        """Clear all stored log entries (for testing)."""
        self._entries.clear()
