"""Webhook poster for announcing the word of the day (Discord-style embeds)."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..constants import (
    WEBHOOK_EMBED_COLOR,
    WEBHOOK_MAX_ATTEMPTS,
    WEBHOOK_MAX_BACKOFF_SECONDS,
    WEBHOOK_TIMEOUT_SECONDS,
)
from ..errors import NetworkError, WebhookError
from ..errors.handling import retry_transient
from .models import WordRecord


def build_embed_payload(record: WordRecord) -> dict[str, Any]:
    """Embed with the word as heading, then definition and example fields."""
    return {
        "embeds": [
            {
                "description": (
                    f"## {record.word}\n**{record.phonetic}** *({record.part_of_speech})*"
                ),
                "color": WEBHOOK_EMBED_COLOR,
                "fields": [
                    {
                        "name": "Definition",
                        "value": f"> {record.definition}",
                        "inline": False,
                    },
                    {
                        "name": "Example",
                        "value": f'*"{record.example}"*',
                        "inline": False,
                    },
                ],
            }
        ]
    }


class WebhookPoster:
    """Posts word records to a webhook URL.

    Network errors, rate limiting (429) and server errors (5xx) are retried
    with exponential backoff; other non-2xx answers raise ``WebhookError``
    straight away.

    Attributes:
        session (aiohttp.ClientSession | None): Shared session, created lazily.
        max_attempts (int): Attempts per post.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        max_attempts: int = WEBHOOK_MAX_ATTEMPTS,
        max_backoff: float = WEBHOOK_MAX_BACKOFF_SECONDS,
        timeout: float = WEBHOOK_TIMEOUT_SECONDS,
    ) -> None:
        self.session = session
        self._owns_session = session is None
        self.max_attempts = max_attempts
        self.max_backoff = max_backoff
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> WebhookPoster:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True
        return self.session

    async def post(self, url: str | None, record: WordRecord) -> bool:
        """Post ``record`` to ``url``.

        Returns:
            True if a post was delivered, False if no URL is configured.

        Raises:
            WebhookError: The endpoint rejected the post.
            NetworkError: The endpoint could not be reached after all attempts.
        """
        if not url:
            return False
        payload = build_embed_payload(record)

        async def attempt() -> None:
            await self._post_once(url, payload)

        await retry_transient(
            attempt,
            context="webhook post",
            max_attempts=self.max_attempts,
            max_backoff=self.max_backoff,
        )
        logging.info(f"📮 Posted word of the day to webhook: {record.word}")
        return True

    async def _post_once(self, url: str, payload: dict[str, Any]) -> None:
        session = self._get_session()
        try:
            async with session.post(url, json=payload, timeout=self.timeout) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise WebhookError(
                        f"Webhook returned {resp.status}: {body[:200]}",
                        status=resp.status,
                    )
        except aiohttp.ClientError as e:
            raise NetworkError(f"Webhook request failed: {e}") from e
