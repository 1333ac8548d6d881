"""Chat gateway subsystem.

Line parsing, the socket transport seam and the auto-reconnecting client
for the IRC-over-WebSocket chat gateway.
"""

from .client import ChatGatewayClient  # noqa: F401
from .models import (  # noqa: F401
    ConnectionConfig,
    ConnectionStatus,
    InboundChatEvent,
)
from .parser import IRCMessage, parse_chat_line, parse_irc_message  # noqa: F401
from .transport import (  # noqa: F401
    ChatTransport,
    TransportEvent,
    TransportEventKind,
    WebSocketTransport,
)

__all__ = [
    "ChatGatewayClient",
    "ChatTransport",
    "ConnectionConfig",
    "ConnectionStatus",
    "InboundChatEvent",
    "IRCMessage",
    "TransportEvent",
    "TransportEventKind",
    "WebSocketTransport",
    "parse_chat_line",
    "parse_irc_message",
]
