"""
Exception hierarchy for the ingestion layer.

All exceptions inherit from IngestionError, which carries a structured
context dict (source, series_id, url, status_code, ...) for logging and
for display by callers.

Retry semantics by type:
    FormatError     - caller error, never retried, never cached
    TransportError  - network failure or non-2xx status, retried
    ProviderError   - error envelope in a well-formed body, retried
    ParseError      - body does not match the provider schema, not retried
"""

from __future__ import annotations

from typing import Any


class IngestionError(Exception):
    """Base exception for all ingestion errors.

    Attributes:
        message: Human-readable error message.
        context: Structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"

    def with_context(self, **context: Any) -> "IngestionError":
        """Add context keys that are not already set and return self."""
        for key, value in context.items():
            self.context.setdefault(key, value)
        return self


class ConfigurationError(IngestionError):
    """Raised when a client cannot operate with the current settings.

    Examples:
        - FRED requested without an API key
    """


class FormatError(IngestionError):
    """Raised for a malformed series id or invalid request parameters."""


class TransportError(IngestionError):
    """Raised when the HTTP call fails or returns a non-success status.

    Context should include:
        - source: The data source
        - url: The URL that was being fetched
        - status_code: HTTP status code if applicable
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code
        if status_code is not None:
            self.context.setdefault("status_code", status_code)


class ProviderError(TransportError):
    """Raised when a provider returns an explicit error payload."""


class ParseError(IngestionError):
    """Raised when a response cannot be interpreted as the expected schema."""


class UnknownSourceError(IngestionError):
    """Raised when no client is registered for the requested source."""
