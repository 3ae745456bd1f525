"""
Audit Logger module for the DoH domain checker.

Structured logging for provider queries and batch progress. Entries are
written as JSON lines, human-readable text lines, or both. Provider
credentials never reach the output: sensitive keys are masked and
userinfo/query secrets are stripped from logged URLs.
"""

import json
import sys
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TextIO
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from doh_checker.enums import LogLevel

_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}

OUTPUT_FORMATS = ("json", "text", "both")

# Recorded entries kept in memory for inspection
DEFAULT_MAX_ENTRIES = 10_000


@dataclass
class LogEntry:
    """One structured log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }


class AuditLogger:
    """
    Structured logger shared by the client, orchestrator and coordinator.

    Entries below the configured level are dropped before masking or
    formatting. The most recent ``max_entries`` entries are kept.
    """

    # Substrings of data keys whose values are masked
    SENSITIVE_KEYS = frozenset({
        'token', 'secret', 'password', 'api_key', 'auth', 'authorization',
        'credential', 'private_key', 'access_token', 'cookie',
    })

    # Data keys holding URLs that are scrubbed rather than masked
    URL_KEYS = frozenset({'url', 'request_url', 'base_url', 'endpoint'})

    MASK_VALUE = "***MASKED***"

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        """
        Args:
            output_format: 'json', 'text' or 'both'
            output_stream: Destination stream (stderr when omitted)
            level: Minimum level that is recorded
            max_entries: How many recent entries ``entries`` retains
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {', '.join(OUTPUT_FORMATS)}, got {output_format!r}"
            )

        self._output_format = output_format
        self._stream = output_stream
        self._level = level
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)

        formatters: list[Callable[[LogEntry], str]] = []
        if output_format in ("json", "both"):
            formatters.append(self.format_json)
        if output_format in ("text", "both"):
            formatters.append(self.format_text)
        self._formatters = tuple(formatters)

    @classmethod
    def from_config(cls, output_format: str, level: str, output_stream: Optional[TextIO] = None) -> "AuditLogger":
        """Build a logger from LoggingConfig-style string values."""
        return cls(
            output_format=output_format,
            output_stream=output_stream,
            level=LogLevel(level.lower()),
        )

    @property
    def output_format(self) -> str:
        return self._output_format

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def entries(self) -> list[LogEntry]:
        """Recorded entries, oldest first."""
        return list(self._entries)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self._level]

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Record and write one entry.

        Returns:
            The LogEntry, or None when ``level`` is below the minimum
        """
        if not self.is_enabled_for(level):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=self.mask_sensitive_data(data or {}),
        )
        self._entries.append(entry)

        stream = self._stream or sys.stderr
        for formatter in self._formatters:
            stream.write(formatter(entry) + "\n")
        stream.flush()
        return entry

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        provider: Optional[str] = None,
        url: Optional[str] = None,
        http_status_code: Optional[int] = None,
        extra: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log a failure at ERROR level with its provider and HTTP context.

        The exception contributes its type, message and, for checker
        errors, its code.
        """
        data = dict(extra or {})
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = getattr(error, "message", None) or str(error)
            code = getattr(error, "code", None)
            if code is not None:
                data["error_code"] = code
        if provider is not None:
            data["provider"] = provider
        if url is not None:
            data["url"] = url
        if http_status_code is not None:
            data["http_status_code"] = http_status_code

        return self.log(LogLevel.ERROR, component, message, data)

    def mask_sensitive_data(self, data: dict) -> dict:
        """Return a copy of ``data`` with credentials masked at any depth."""
        if not isinstance(data, dict):
            return data
        return {key: self._mask(key, value) for key, value in data.items()}

    def _mask(self, key: Any, value: Any) -> Any:
        key_lower = str(key).lower()
        if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
            return self.MASK_VALUE
        if key_lower in self.URL_KEYS and isinstance(value, str):
            return self.scrub_url(value)
        if isinstance(value, dict):
            return self.mask_sensitive_data(value)
        if isinstance(value, (list, tuple)):
            return [self.mask_sensitive_data(item) if isinstance(item, dict) else item for item in value]
        return value

    def scrub_url(self, url: str) -> str:
        """Drop userinfo and mask sensitive query parameters of a URL."""
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            return url

        netloc = parts.netloc.rsplit("@", 1)[-1]
        query = urlencode([
            (name, self.MASK_VALUE if any(s in name.lower() for s in self.SENSITIVE_KEYS) else value)
            for name, value in parse_qsl(parts.query, keep_blank_values=True)
        ])
        return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))

    def format_json(self, entry: LogEntry) -> str:
        """Single-line JSON rendering of an entry."""
        return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        """``[TIMESTAMP] LEVEL [COMPONENT] MESSAGE {data}``"""
        line = f"[{entry.timestamp}] {entry.level.value.upper()} [{entry.component}] {entry.message}"
        if entry.data:
            line += " " + json.dumps(entry.data, ensure_ascii=False, default=str)
        return line

    def clear_entries(self) -> None:
        self._entries.clear()
