"""Shared chat gateway data models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

OAUTH_PREFIX = "oauth:"


class ConnectionStatus(str, Enum):
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


def normalize_channel(channel: str) -> str:
    """Trim, drop the leading '#' and lowercase a channel name."""
    return channel.strip().lstrip("#").strip().lower()


def normalize_username(username: str | None) -> str | None:
    if username is None:
        return None
    cleaned = username.strip().lower()
    return cleaned or None


def normalize_token(token: str | None) -> str | None:
    """Return the token in canonical ``oauth:<token>`` form, or None when empty."""
    if token is None:
        return None
    cleaned = token.strip()
    if cleaned.startswith(OAUTH_PREFIX):
        cleaned = cleaned[len(OAUTH_PREFIX) :].strip()
    return f"{OAUTH_PREFIX}{cleaned}" if cleaned else None


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Channel and optional bot credentials for one chat gateway client.

    Build it with :meth:`create` so the fields are normalized; the instance is
    immutable afterwards. Without a token the client is read-only.
    """

    channel: str
    username: str | None = None
    token: str | None = None

    @classmethod
    def create(
        cls, channel: str, username: str | None = None, token: str | None = None
    ) -> ConnectionConfig:
        return cls(
            channel=normalize_channel(channel),
            username=normalize_username(username),
            token=normalize_token(token),
        )

    @property
    def is_anonymous(self) -> bool:
        return self.token is None

    def __repr__(self) -> str:
        # Keep tokens out of logs and tracebacks.
        token = "***" if self.token else None
        return (
            f"ConnectionConfig(channel={self.channel!r}, "
            f"username={self.username!r}, token={token!r})"
        )


@dataclass(frozen=True, slots=True)
class InboundChatEvent:
    username: str
    message: str
