"""Centralized internal error hierarchy.

These exceptions give semantic categories to failures inside the companion's
network boundaries (webhook posting, word generation, configuration). The chat
client never lets them escape: it reports failures through its status and log
callbacks instead.

Classes:
  InternalError        – Base for all internal errors.
  NetworkError         – Transient network/IO issues (safe to retry).
  ParsingError         – Malformed payloads or protocol lines.
  WebhookError         – Webhook endpoint answered with a non-success status.
"""

from __future__ import annotations

from collections.abc import Mapping


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy so later caller mutations don't leak in.
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Transport layer failure (timeouts, resets, DNS) that may be retried."""


class ParsingError(InternalError):
    """A payload or protocol line could not be interpreted."""


class WebhookError(InternalError):
    """Raised when a webhook endpoint answers with a non-success status.

    Args:
        message: Descriptive error message.
        status: HTTP status returned by the endpoint.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message, data={"status": status})
        self.status = status

    @property
    def is_transient(self) -> bool:
        """True for statuses worth another attempt (rate limit, server errors)."""
        return self.status is not None and (self.status == 429 or self.status >= 500)


__all__ = [
    "InternalError",
    "NetworkError",
    "ParsingError",
    "WebhookError",
]
