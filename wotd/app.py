"""CompanionApp - ties the chat client, word store, narrator and webhook together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from .chat.triggers import TriggerDispatcher
from .config.model import CompanionConfig
from .constants import AUTO_POST_CHECK_INTERVAL_SECONDS
from .errors import NetworkError, WebhookError
from .errors.handling import log_error
from .irc.client import ChatGatewayClient
from .irc.models import ConnectionConfig, ConnectionStatus
from .logs.logger import logger
from .word.models import WordRecord
from .word.services import Narrator, WordGenerator
from .word.store import WordStore
from .word.webhook import WebhookPoster

ClientFactory = Callable[..., ChatGatewayClient]


class CompanionApp:  # pylint: disable=too-many-instance-attributes
    """Word of the Day companion.

    Keeps at most one chat client alive for the configured channel and
    answers chat triggers with the current word. Configuration changes
    replace the client; the word store, narrator and webhook poster are
    shared for the lifetime of the app. While running, a background task
    posts the word to the webhook once per day after ``auto_post_time``.

    Attributes:
        config: Active configuration.
        store: Persistent word store.
        client: Current chat client, or None when chat is disabled.
        status: Latest connection status reported by the client.
        status_reason: Reason accompanying ``status``.
    """

    def __init__(
        self,
        config: CompanionConfig,
        store: WordStore,
        narrator: Narrator | None = None,
        poster: WebhookPoster | None = None,
        generator: WordGenerator | None = None,
        *,
        client_factory: ClientFactory = ChatGatewayClient,
        auto_post_interval: float = AUTO_POST_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.store = store
        self.narrator = narrator
        self.poster = poster if poster is not None else WebhookPoster()
        self.generator = generator
        self.client_factory = client_factory
        self.auto_post_interval = auto_post_interval
        self.clock = clock

        self.client: ChatGatewayClient | None = None
        self.dispatcher: TriggerDispatcher | None = None
        self.current_word: WordRecord | None = None
        self.status = ConnectionStatus.DISCONNECTED
        self.status_reason: str | None = None
        self.last_log: str | None = None
        self.running = False
        self._pending: set[asyncio.Task[Any]] = set()
        self._config_lock = asyncio.Lock()
        self._auto_post_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Load today's word and connect to chat if a channel is configured."""
        if self.running:
            return
        self.running = True
        logger.log_event("app", "start", channel=self.config.channel or "-")
        self.current_word = self.store.todays_word(self.clock().date())
        if self.current_word is None:
            await self.refresh_word()
        if self.current_word is None:
            # Fall back to the stale stored word
            self.current_word = self.store.load_current()
        self._connect_chat(self.config)
        self._auto_post_task = asyncio.get_running_loop().create_task(
            self._auto_post_loop()
        )

    async def stop(self) -> None:
        """Stop the daily post, disconnect from chat and release the webhook session."""
        if not self.running:
            return
        self.running = False
        auto_post, self._auto_post_task = self._auto_post_task, None
        if auto_post is not None:
            auto_post.cancel()
            await asyncio.gather(auto_post, return_exceptions=True)
        if self.dispatcher is not None:
            self.dispatcher.cancel_narration()
        await self._disconnect_chat()
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.poster.close()
        logger.log_event("app", "stop")

    async def apply_config(self, config: CompanionConfig) -> None:
        """Switch to ``config``, replacing the chat client when needed."""
        async with self._config_lock:
            previous, self.config = self.config, config
            self.store.history_limit = config.history_limit
            if not self.running:
                return
            if not previous.chat_settings_differ(config) and self.client is not None:
                logger.log_event("app", "config_unchanged", level=logging.DEBUG)
                return
            logger.log_event(
                "app",
                "config_applied",
                channel=config.channel or "-",
                triggers=",".join(config.triggers),
            )
            await self._disconnect_chat()
            self._connect_chat(config)

    def request_config(self, config: CompanionConfig) -> None:
        """Schedule ``apply_config`` from a synchronous callback on the loop."""
        self._track(asyncio.get_running_loop().create_task(self.apply_config(config)))

    async def refresh_word(
        self, word: WordRecord | None = None, *, post: bool = False
    ) -> WordRecord | None:
        """Make ``word`` (or a freshly generated one) the current word.

        With ``post`` the new word also goes to the webhook right away, which
        counts as today's post for the daily auto-post.

        Returns the new current word, or None if generation failed.
        """
        if word is None:
            if self.generator is None:
                return None
            try:
                word = await self.generator.generate(self.store.previous_words())
            except Exception as e:  # noqa: BLE001
                log_error("Word generation failed", e)
                return None
        self.store.save_word(word)
        self.current_word = word
        logger.log_event("app", "word_refreshed", word=word.word)
        if post and self.config.webhook_url:
            await self.post_current_word()
        return word

    async def post_current_word(self) -> bool:
        """Post the current word to the configured webhook.

        Returns True if a post was delivered. A delivered post is recorded as
        today's post.
        """
        word = self.current_word
        if word is None:
            logger.log_event("app", "webhook_no_word", level=logging.WARNING)
            return False
        try:
            posted = await self.poster.post(self.config.webhook_url, word)
        except (WebhookError, NetworkError) as e:
            log_error("Webhook post failed", e, {"word": word.word})
            return False
        if posted:
            self.store.mark_posted(self.clock().date())
        return posted

    async def check_auto_post(self) -> bool:
        """Post the current word if today's scheduled time has passed.

        Nothing happens without a word, a webhook URL and an auto-post time,
        or when a post was already made today. Returns True if a post was
        delivered.
        """
        post_at = self.config.auto_post_at
        if self.current_word is None or not self.config.webhook_url or post_at is None:
            return False
        now = self.clock()
        if self.store.posted_on(now.date()) or now.time() < post_at:
            return False
        logger.log_event(
            "app", "auto_post", word=self.current_word.word, time=self.config.auto_post_time
        )
        return await self.post_current_word()

    def health(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "channel": self.config.channel,
            "status": self.status.value,
            "reason": self.status_reason,
            "last_log": self.last_log,
            "read_only": self.client.is_read_only if self.client else True,
            "word": self.current_word.word if self.current_word else None,
            "last_post_date": self.store.last_post_date(),
        }

    # ------------------------------------------------------------------ chat

    def _connect_chat(self, config: CompanionConfig) -> None:
        self.dispatcher = TriggerDispatcher(
            config.triggers, lambda: self.current_word, self.narrator
        )
        connection: ConnectionConfig | None = config.connection_config()
        if connection is None:
            self._on_status(ConnectionStatus.DISCONNECTED, None)
            logger.log_event("app", "chat_disabled", level=logging.WARNING)
            return
        self.client = self.client_factory(
            connection, self._on_message, self._on_status, self._on_log
        )

    async def _auto_post_loop(self) -> None:
        while True:
            try:
                await self.check_auto_post()
            except Exception as e:  # noqa: BLE001
                log_error("Auto-post check failed", e)
            await asyncio.sleep(self.auto_post_interval)

    async def _disconnect_chat(self) -> None:
        client, self.client = self.client, None
        if client is not None:
            await client.disconnect()

    async def _on_message(self, message: str, username: str) -> None:
        dispatcher = self.dispatcher
        if dispatcher is None:
            return
        await dispatcher.handle_message(message, username, self.client)

    def _on_status(self, status: ConnectionStatus, reason: str | None) -> None:
        self.status = status
        self.status_reason = reason
        logger.log_event(
            "app",
            "status",
            level=logging.DEBUG,
            status=status.value,
            reason=reason or "-",
        )

    def _on_log(self, line: str) -> None:
        self.last_log = line

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
