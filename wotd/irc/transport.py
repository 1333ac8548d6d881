"""Socket transport for the chat gateway.

The client only talks to a :class:`ChatTransport`; the default implementation
is a ``websockets`` connection. Tests substitute an in-memory transport.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosedError, WebSocketException
from websockets.protocol import State
from websockets.uri import parse_uri

from ..constants import CHAT_CONNECT_TIMEOUT_SECONDS
from ..errors import NetworkError


class TransportEventKind(Enum):
    MESSAGE = "message"
    ERROR = "error"
    CLOSE = "close"


@dataclass(slots=True)
class TransportEvent:
    kind: TransportEventKind
    data: str = ""
    code: int | None = None


class ChatTransport(Protocol):
    """Minimal socket contract used by the chat gateway client."""

    @property
    def is_open(self) -> bool:
        """True while lines can be written."""
        ...

    async def connect(self) -> None:
        """Open the socket. Raises on failure."""
        ...

    async def send(self, line: str) -> None:
        """Write one protocol line (without line terminator)."""
        ...

    async def close(self) -> None:
        """Close the socket; safe to call more than once."""
        ...

    def events(self) -> AsyncIterator[TransportEvent]:
        """Inbound frames in arrival order, ending with a CLOSE event."""
        ...


TransportFactory = Callable[[str], ChatTransport]


class WebSocketTransport:
    """WebSocket transport for the IRC-over-WebSocket gateway.

    The URL is validated on construction, so a malformed gateway address
    fails before any connection attempt. Abnormal closes surface as an
    ERROR event followed by the CLOSE event.

    Attributes:
        url (str): Gateway URL.
        ws (ClientConnection | None): Active WebSocket connection.
    """

    def __init__(
        self, url: str, connect_timeout: float = CHAT_CONNECT_TIMEOUT_SECONDS
    ) -> None:
        parse_uri(url)
        self.url = url
        self.connect_timeout = connect_timeout
        self.ws: ClientConnection | None = None

    @property
    def is_open(self) -> bool:
        return self.ws is not None and self.ws.state is State.OPEN

    async def connect(self) -> None:
        try:
            # Keep-alive is the gateway's IRC PING, not WebSocket pings
            self.ws = await connect(
                self.url, ping_interval=None, open_timeout=self.connect_timeout
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise NetworkError(
                f"WebSocket connection failed: {e}", data={"url": self.url}
            ) from e
        logging.debug(f"🔌 WebSocket connected to {self.url}")

    async def send(self, line: str) -> None:
        ws = self.ws
        if ws is None or ws.state is not State.OPEN:
            raise NetworkError("WebSocket is not open", data={"url": self.url})
        try:
            await ws.send(line)
        except WebSocketException as e:
            raise NetworkError(f"WebSocket send failed: {e}", data={"url": self.url}) from e

    async def close(self) -> None:
        ws = self.ws
        if ws is None or ws.state is State.CLOSED:
            return
        try:
            await ws.close(code=1000)
        except (OSError, WebSocketException) as e:
            logging.warning(f"⚠️ WebSocket close error: {e}")

    async def events(self) -> AsyncIterator[TransportEvent]:
        ws = self.ws
        if ws is None:
            yield TransportEvent(TransportEventKind.CLOSE)
            return
        try:
            async for message in ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                yield TransportEvent(TransportEventKind.MESSAGE, data=message)
        except ConnectionClosedError as e:
            yield TransportEvent(TransportEventKind.ERROR, data=str(e))
        yield TransportEvent(TransportEventKind.CLOSE, code=ws.close_code)


def websocket_transport_factory(url: str) -> ChatTransport:
    return WebSocketTransport(url)
