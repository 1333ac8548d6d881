from __future__ import annotations

from collections.abc import Mapping
from datetime import time
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..chat.triggers import build_triggers, parse_custom_triggers
from ..constants import WORD_HISTORY_LIMIT
from ..irc.models import (
    ConnectionConfig,
    normalize_channel,
    normalize_token,
    normalize_username,
)


class CompanionConfig(BaseModel):
    """Settings for the chat companion.

    Attributes:
        channel: Chat channel to join; no channel means no chat connection.
        username: Bot account name, required to speak in chat.
        token: OAuth token for ``username``; without it the bot is read-only.
        tts_command: Extra comma-separated chat commands that trigger the word.
        webhook_url: Where to post the word of the day, if anywhere.
        auto_post_time: Local ``HH:MM`` after which the word is posted to the
            webhook, once per day. Unset disables the daily post.
        word_store_file: JSON file holding the current word and history.
        history_limit: Number of past words remembered.
    """

    channel: str | None = None
    username: str | None = None
    token: str | None = None
    tts_command: str = ""
    webhook_url: str | None = None
    auto_post_time: str | None = None
    word_store_file: str | None = None
    history_limit: int = Field(default=WORD_HISTORY_LIMIT, ge=1)

    @field_validator("channel", mode="before")
    @classmethod
    def validate_channel(cls, v: Any) -> str | None:
        """Strip whitespace and a leading '#', lowercase; empty means unset."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("channel must be a string")
        return normalize_channel(v) or None

    @field_validator("username", mode="before")
    @classmethod
    def validate_username(cls, v: Any) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("username must be a string")
        return normalize_username(v)

    @field_validator("token", mode="before")
    @classmethod
    def validate_token(cls, v: Any) -> str | None:
        """Canonical ``oauth:`` form; empty means unset."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("token must be a string")
        return normalize_token(v)

    @field_validator("webhook_url", mode="before")
    @classmethod
    def validate_webhook_url(cls, v: Any) -> str | None:
        if v is None:
            return None
        cleaned = str(v).strip()
        if cleaned and not cleaned.startswith(("http://", "https://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return cleaned or None

    @field_validator("auto_post_time", mode="before")
    @classmethod
    def validate_auto_post_time(cls, v: Any) -> str | None:
        """``H:MM`` or ``HH:MM`` on a 24-hour clock, stored as ``HH:MM``."""
        if v is None:
            return None
        cleaned = str(v).strip()
        if not cleaned:
            return None
        hour, sep, minute = cleaned.partition(":")
        if not (sep and hour.isdigit() and minute.isdigit() and len(minute) == 2):
            raise ValueError("auto_post_time must look like HH:MM")
        if int(hour) > 23 or int(minute) > 59:
            raise ValueError("auto_post_time is not a valid time of day")
        return f"{int(hour):02d}:{minute}"

    @property
    def custom_triggers(self) -> tuple[str, ...]:
        return parse_custom_triggers(self.tts_command)

    @property
    def triggers(self) -> tuple[str, ...]:
        """Default triggers followed by the custom ones."""
        return build_triggers(self.custom_triggers)

    @property
    def auto_post_at(self) -> time | None:
        if self.auto_post_time is None:
            return None
        hour, minute = self.auto_post_time.split(":")
        return time(int(hour), int(minute))

    @property
    def chat_enabled(self) -> bool:
        return self.channel is not None

    def connection_config(self) -> ConnectionConfig | None:
        if self.channel is None:
            return None
        return ConnectionConfig.create(self.channel, self.username, self.token)

    def chat_settings_differ(self, other: CompanionConfig) -> bool:
        """True if reconnecting is needed to move from ``self`` to ``other``."""
        return (self.channel, self.username, self.token, self.triggers) != (
            other.channel,
            other.username,
            other.token,
            other.triggers,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CompanionConfig:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def __repr__(self) -> str:
        token = "***" if self.token else None
        return (
            f"CompanionConfig(channel={self.channel!r}, username={self.username!r}, "
            f"token={token!r}, triggers={self.triggers!r})"
        )
