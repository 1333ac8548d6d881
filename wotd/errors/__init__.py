"""Error hierarchy and error-logging helpers."""

from .internal import (  # noqa: F401
    InternalError,
    NetworkError,
    ParsingError,
    WebhookError,
)

__all__ = [
    "InternalError",
    "NetworkError",
    "ParsingError",
    "WebhookError",
]
