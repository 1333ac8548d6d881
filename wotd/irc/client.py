"""Auto-reconnecting chat gateway client.

One :class:`ChatGatewayClient` keeps one channel membership alive on the chat
gateway: it authenticates (with a token or anonymously), joins the channel,
answers keep-alive pings, hands chat messages to a callback and reconnects
after unexpected closes with a fixed delay. Failures never escape the client;
they are reported through the status and log callbacks.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import secrets
from collections.abc import Awaitable, Callable
from typing import Any

from ..constants import (
    CHAT_ANONYMOUS_NICK_PREFIX,
    CHAT_ANONYMOUS_PASSWORD,
    CHAT_GATEWAY_URL,
    CHAT_KEEPALIVE_INTERVAL_SECONDS,
    CHAT_MAX_MESSAGE_LENGTH,
    CHAT_PONG_REPLY,
    CHAT_RECONNECT_DELAY_SECONDS,
)
from ..errors import ParsingError
from ..logs.logger import logger
from .models import ConnectionConfig, ConnectionStatus
from .parser import build_privmsg, parse_chat_line, parse_irc_message
from .transport import (
    ChatTransport,
    TransportEventKind,
    TransportFactory,
    websocket_transport_factory,
)

MessageCallback = Callable[[str, str], Any]
StatusCallback = Callable[[ConnectionStatus, str | None], Any]
LogCallback = Callable[[str], Any]

AUTH_FAILURE_MARKERS = ("Login authentication failed", "Improperly formatted auth")
NOTICE_FAILURE_WORDS = ("failed", "unsuccessful")

REASON_SOCKET_ERROR = "Socket Error"
REASON_NETWORK_ERROR = "Network Error"
REASON_RECONNECTING = "Reconnecting..."
REASON_AUTH_FAILED = "Auth Failed"


def generate_guest_nick() -> str:
    """Random anonymous nickname: guest prefix + 5-digit number."""
    return f"{CHAT_ANONYMOUS_NICK_PREFIX}{secrets.randbelow(100_000):05d}"


class ChatGatewayClient:  # pylint: disable=too-many-instance-attributes
    """Chat gateway connection for a single channel.

    Connecting starts as soon as the instance is created, so it must be built
    inside a running event loop. ``disconnect()`` is terminal: build a new
    instance to connect again.

    Args:
        config: Channel and optional credentials.
        on_message: Called as ``on_message(message, username)`` for each chat
            line in the joined channel. May be a coroutine function.
        on_status: Called as ``on_status(status, reason)`` on every transition.
        on_log: Called with every diagnostic line.
        transport_factory: Builds the socket transport for a gateway URL.
        url: Gateway URL.
        reconnect_delay: Seconds to wait before reconnecting after a drop.
        keepalive_interval: Seconds between client-initiated PINGs.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        on_message: MessageCallback,
        on_status: StatusCallback | None = None,
        on_log: LogCallback | None = None,
        *,
        transport_factory: TransportFactory = websocket_transport_factory,
        url: str = CHAT_GATEWAY_URL,
        reconnect_delay: float = CHAT_RECONNECT_DELAY_SECONDS,
        keepalive_interval: float = CHAT_KEEPALIVE_INTERVAL_SECONDS,
        max_message_length: int = CHAT_MAX_MESSAGE_LENGTH,
    ) -> None:
        self._loop = asyncio.get_running_loop()
        self.config = ConnectionConfig.create(
            config.channel, config.username, config.token
        )
        self._on_message = on_message
        self._on_status = on_status
        self._on_log = on_log
        self._transport_factory = transport_factory
        self.url = url
        self.reconnect_delay = reconnect_delay
        self.keepalive_interval = keepalive_interval
        self.max_message_length = max_message_length

        self._transport: ChatTransport | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._keepalive_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._callback_tasks: set[asyncio.Future[Any]] = set()
        self._intentional_disconnect = False
        self._status = ConnectionStatus.DISCONNECTED
        self._status_reason: str | None = None
        self.nickname: str | None = None

        self._connect()

    # ------------------------------------------------------------------ public

    @property
    def channel(self) -> str:
        return self.config.channel

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def status_reason(self) -> str | None:
        return self._status_reason

    @property
    def is_read_only(self) -> bool:
        """True when no token is configured; such clients can listen but never speak."""
        return not self.config.token

    @property
    def can_send(self) -> bool:
        return not self.is_read_only

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    async def send(self, text: str) -> None:
        """Send a chat message to the joined channel (best effort, never raises)."""
        transport = self._transport
        if transport is None or not transport.is_open:
            self._log("Cannot send: socket not open.")
            return
        if self.is_read_only:
            self._log("Cannot send: no OAuth token provided (read-only mode).")
            return
        safe_text = text[: self.max_message_length]
        if await self._write(transport, build_privmsg(self.channel, safe_text)):
            self._log(f"Sent: {safe_text}")

    async def disconnect(self) -> None:
        """Tear the connection down for good and suppress any reconnect."""
        self._intentional_disconnect = True
        self._cancel_keepalive()
        self._cancel_reconnect()
        self._detach_reader()
        transport, self._transport = self._transport, None
        if transport is not None:
            await self._close_transport(transport)
        self._set_status(ConnectionStatus.DISCONNECTED)

    async def __aenter__(self) -> ChatGatewayClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    # -------------------------------------------------------------- connecting

    def _connect(self) -> None:
        self._intentional_disconnect = False
        self._release_connection()
        self._set_status(ConnectionStatus.CONNECTING)
        self._log(f"Attempting connection to #{self.channel}...")
        try:
            transport = self._transport_factory(self.url)
        except Exception as e:  # noqa: BLE001
            self._log(f"WebSocket creation failed: {e}", level=logging.ERROR)
            self._set_status(ConnectionStatus.DISCONNECTED, REASON_SOCKET_ERROR)
            return
        self._transport = transport
        self._reader_task = self._loop.create_task(self._run(transport))

    def _release_connection(self) -> None:
        """Drop the current socket and timers before a fresh attempt."""
        self._cancel_keepalive()
        self._cancel_reconnect()
        self._detach_reader()
        old, self._transport = self._transport, None
        if old is not None:
            self._log("Closing existing socket before reconnecting...")
            self._track(self._loop.create_task(self._close_transport(old)))

    async def _run(self, transport: ChatTransport) -> None:
        try:
            await transport.connect()
        except Exception as e:  # noqa: BLE001
            if transport is self._transport:
                self._log(f"WebSocket error detected: {e}", level=logging.WARNING)
                self._set_status(ConnectionStatus.DISCONNECTED, REASON_NETWORK_ERROR)
                self._handle_close(transport, None)
            return
        if transport is not self._transport:
            await self._close_transport(transport)
            return

        await self._on_open(transport)

        close_code: int | None = None
        try:
            async for event in transport.events():
                if transport is not self._transport:
                    return
                if event.kind is TransportEventKind.MESSAGE:
                    await self._handle_frame(transport, event.data)
                elif event.kind is TransportEventKind.ERROR:
                    self._log(
                        f"WebSocket error detected: {event.data}", level=logging.WARNING
                    )
                    self._set_status(
                        ConnectionStatus.DISCONNECTED, REASON_NETWORK_ERROR
                    )
                else:
                    close_code = event.code
                    break
        except Exception as e:  # noqa: BLE001
            if transport is self._transport:
                self._log(f"WebSocket error detected: {e}", level=logging.WARNING)
                self._set_status(ConnectionStatus.DISCONNECTED, REASON_NETWORK_ERROR)
        self._handle_close(transport, close_code)

    async def _on_open(self, transport: ChatTransport) -> None:
        self._log("Socket opened. Sending authentication...")
        cfg = self.config
        self.nickname = cfg.username or generate_guest_nick()
        if cfg.token:
            self._log(f"Logging in as {self.nickname}")
            password = cfg.token
        else:
            self._log("Logging in anonymously (read-only)")
            password = CHAT_ANONYMOUS_PASSWORD
        for line in (
            f"PASS {password}",
            f"NICK {self.nickname}",
            f"JOIN #{self.channel}",
        ):
            if transport is not self._transport:
                return
            await self._write(transport, line)
        if transport is not self._transport:
            return
        # Optimistic: the gateway has no dependable join ack, so CONNECTED is
        # reported now; join confirmation and auth failures arrive later.
        self._set_status(ConnectionStatus.CONNECTED)
        self._keepalive_task = self._loop.create_task(self._keepalive(transport))

    async def _keepalive(self, transport: ChatTransport) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            if transport is not self._transport:
                return
            if transport.is_open and await self._write(transport, "PING"):
                self._log("Sent PING", level=logging.DEBUG)

    # ----------------------------------------------------------------- inbound

    async def _handle_frame(self, transport: ChatTransport, data: str) -> None:
        # Only CR/LF delimit protocol lines; other Unicode separators are text
        for raw in data.split("\n"):
            if transport is not self._transport:
                return
            line = raw.rstrip("\r").strip()
            if line:
                await self._handle_line(transport, line)

    async def _handle_line(self, transport: ChatTransport, line: str) -> None:
        try:
            msg = parse_irc_message(line)
        except ParsingError as e:
            self._log(f"Parse error: {e}", level=logging.WARNING)
            return

        if msg.command == "PING":
            await self._write(transport, CHAT_PONG_REPLY)
            return

        if msg.command == "NOTICE":
            notice = msg.trailing or ""
            if any(word in notice for word in NOTICE_FAILURE_WORDS):
                self._log(f"Server NOTICE: {line}", level=logging.WARNING)
            if any(marker in notice for marker in AUTH_FAILURE_MARKERS):
                self._log(
                    "CRITICAL: Authentication failed. Disconnecting.",
                    level=logging.CRITICAL,
                )
                await self.disconnect()
                self._set_status(ConnectionStatus.DISCONNECTED, REASON_AUTH_FAILED)
            return

        if msg.command == "JOIN" and f"#{self.channel}" in (*msg.middle, msg.trailing):
            self._log(f"Successfully joined #{self.channel}")
        elif msg.command == "PRIVMSG":
            await self._dispatch_chat_line(line)

    async def _dispatch_chat_line(self, line: str) -> None:
        try:
            event = parse_chat_line(line, self.channel)
        except Exception as e:  # noqa: BLE001
            self._log(f"Parse error: {e}", level=logging.WARNING)
            return
        if event is None:
            logger.log_event(
                "irc", "unparsed_line", level=logging.DEBUG, channel=self.channel, raw=line
            )
            return
        logger.log_event(
            "chat",
            "message",
            level=logging.DEBUG,
            human=f"{event.username}: {event.message}",
            channel=self.channel,
        )
        try:
            result = self._on_message(event.message, event.username)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "message_handler_error",
                level=logging.ERROR,
                channel=self.channel,
                error=str(e),
                error_type=type(e).__name__,
            )

    # --------------------------------------------------------------- teardown

    def _handle_close(self, transport: ChatTransport, code: int | None) -> None:
        if transport is not self._transport:
            return
        if self._intentional_disconnect:
            self._log("Disconnected cleanly (user initiated).")
            return
        self._cancel_keepalive()
        self._log(
            f"Socket closed (code: {code}). Reconnecting in {self.reconnect_delay:g}s...",
            level=logging.WARNING,
        )
        self._set_status(ConnectionStatus.DISCONNECTED, REASON_RECONNECTING)
        self._cancel_reconnect()
        self._reconnect_handle = self._loop.call_later(
            self.reconnect_delay, self._on_reconnect_timer
        )

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._intentional_disconnect:
            return
        self._connect()

    def _cancel_keepalive(self) -> None:
        task, self._keepalive_task = self._keepalive_task, None
        if task is not None and not task.done():
            task.cancel()

    def _cancel_reconnect(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()

    def _detach_reader(self) -> None:
        task, self._reader_task = self._reader_task, None
        # The reader may be the caller (auth failure path); it exits on its own.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _close_transport(self, transport: ChatTransport) -> None:
        try:
            await transport.close()
        except Exception as e:  # noqa: BLE001
            self._log(f"Socket close error: {e}", level=logging.WARNING)

    # ---------------------------------------------------------------- helpers

    async def _write(self, transport: ChatTransport, line: str) -> bool:
        try:
            await transport.send(line)
        except Exception as e:  # noqa: BLE001
            self._log(f"Write failed: {e}", level=logging.WARNING)
            return False
        return True

    def _set_status(self, status: ConnectionStatus, reason: str | None = None) -> None:
        self._status = status
        self._status_reason = reason
        logger.log_event(
            "irc",
            "status",
            level=logging.DEBUG,
            channel=self.channel,
            status=status.value,
            reason=reason or "-",
        )
        if self._on_status is not None:
            self._emit(self._on_status, status, reason)

    def _log(self, line: str, level: int = logging.INFO) -> None:
        logger.log_event("irc", "diagnostic", level=level, human=line, channel=self.channel)
        if self._on_log is not None:
            self._emit(self._on_log, line)

    def _emit(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            result = callback(*args)
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "callback_error",
                level=logging.ERROR,
                channel=self.channel,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        if inspect.isawaitable(result):
            self._track(asyncio.ensure_future(result))

    def _track(self, future: Awaitable[Any]) -> None:
        fut = asyncio.ensure_future(future)
        self._callback_tasks.add(fut)
        fut.add_done_callback(self._callback_tasks.discard)
