"""Chat command triggers (``!word``, ``!wotd`` and custom commands)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from ..constants import DEFAULT_CHAT_TRIGGERS
from ..logs.logger import logger
from ..word.models import WordRecord
from ..word.services import Narrator


class ChatSender(Protocol):
    @property
    def is_read_only(self) -> bool: ...  # noqa: D401,E701

    async def send(self, text: str) -> None: ...  # noqa: D401,E701


def parse_custom_triggers(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split a comma-separated command list into trimmed, lowercased triggers."""
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    return tuple(t for t in (str(item).strip().lower() for item in items) if t)


def build_triggers(custom: str | Iterable[str] | None = None) -> tuple[str, ...]:
    """Default triggers followed by the custom ones, without duplicates."""
    return tuple(dict.fromkeys((*DEFAULT_CHAT_TRIGGERS, *parse_custom_triggers(custom))))


def is_trigger(message: str, triggers: Iterable[str]) -> bool:
    text = message.strip().lower()
    return any(text.startswith(t) for t in triggers)


class TriggerDispatcher:
    """Reacts to chat messages that start with a trigger.

    On a trigger it narrates the current word (one narration at a time, the
    narration runs in the background) and, when the chat client may speak,
    replies with the word and its definition. Messages are ignored while no
    word is available.
    """

    def __init__(
        self,
        triggers: Iterable[str],
        word_provider: Callable[[], WordRecord | None],
        narrator: Narrator | None = None,
    ) -> None:
        self.triggers = tuple(triggers)
        self.word_provider = word_provider
        self.narrator = narrator
        self._narration: asyncio.Task[None] | None = None

    @property
    def narrating(self) -> bool:
        return self._narration is not None and not self._narration.done()

    async def handle_message(
        self, message: str, username: str, client: ChatSender | None
    ) -> bool:
        """Return True if ``message`` was a trigger that got handled."""
        if not is_trigger(message, self.triggers):
            return False
        word = self.word_provider()
        if word is None:
            logger.log_event("chat", "trigger_no_word", level=logging.DEBUG, author=username)
            return False
        logger.log_event("chat", "trigger", author=username, word=word.word)

        self._start_narration(word)

        if client is not None and not client.is_read_only:
            await client.send(word.chat_reply())
        return True

    def _start_narration(self, word: WordRecord) -> None:
        if self.narrator is None:
            return
        if self.narrating:
            logger.log_event("chat", "narration_busy", level=logging.DEBUG, word=word.word)
            return
        self._narration = asyncio.get_running_loop().create_task(self._narrate(word))

    async def _narrate(self, word: WordRecord) -> None:
        narrator = self.narrator
        if narrator is None:
            return
        try:
            await narrator.speak(word.word, word.definition, word.example)
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "chat",
                "narration_failed",
                level=logging.WARNING,
                word=word.word,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def wait_narration(self) -> None:
        task = self._narration
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def cancel_narration(self) -> None:
        task, self._narration = self._narration, None
        if task is not None and not task.done():
            task.cancel()
