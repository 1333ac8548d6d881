"""
Configuration constants for the Word of the Day chat companion

This module contains all configurable constants used throughout the application.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Attempts to parse the environment variable as a float. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


# Chat gateway endpoint & handshake
CHAT_GATEWAY_URL = os.getenv(
    "CHAT_GATEWAY_URL", "wss://irc-ws.chat.twitch.tv:443"
)  # IRC-over-WebSocket endpoint
CHAT_ANONYMOUS_PASSWORD = "SCHMOOPIIE"  # Sentinel PASS for read-only logins
# The gateway only accepts justinfan<digits> nicks for anonymous logins;
# other guest prefixes are rejected at NICK time
CHAT_ANONYMOUS_NICK_PREFIX = os.getenv(
    "CHAT_ANONYMOUS_NICK_PREFIX", "justinfan"
)  # Guest nickname prefix
CHAT_PONG_REPLY = "PONG :tmi.twitch.tv"  # Keep-alive reply to server PING

# Chat gateway timing (seconds)
CHAT_KEEPALIVE_INTERVAL_SECONDS = _get_env_float(
    "CHAT_KEEPALIVE_INTERVAL_SECONDS", 240.0
)  # Client-initiated PING every 4 minutes
CHAT_RECONNECT_DELAY_SECONDS = _get_env_float(
    "CHAT_RECONNECT_DELAY_SECONDS", 5.0
)  # Fixed delay before an automatic reconnect
CHAT_CONNECT_TIMEOUT_SECONDS = _get_env_float(
    "CHAT_CONNECT_TIMEOUT_SECONDS", 10.0
)  # WebSocket open timeout

# Chat message limits
CHAT_MAX_MESSAGE_LENGTH = _get_env_int(
    "CHAT_MAX_MESSAGE_LENGTH", 450
)  # Safety margin under the gateway's line-length limit

# Chat triggers
DEFAULT_CHAT_TRIGGERS = ("!word", "!wotd")

# Webhook constants
WEBHOOK_TIMEOUT_SECONDS = _get_env_int(
    "WEBHOOK_TIMEOUT_SECONDS", 10
)  # HTTP timeout for webhook posts
WEBHOOK_MAX_ATTEMPTS = _get_env_int(
    "WEBHOOK_MAX_ATTEMPTS", 3
)  # Attempts for transient webhook failures
WEBHOOK_MAX_BACKOFF_SECONDS = _get_env_int(
    "WEBHOOK_MAX_BACKOFF_SECONDS", 8
)  # Upper bound for exponential backoff between attempts
WEBHOOK_EMBED_COLOR = 0x9146FF  # Embed accent colour
AUTO_POST_CHECK_INTERVAL_SECONDS = _get_env_float(
    "AUTO_POST_CHECK_INTERVAL_SECONDS", 60.0
)  # How often the daily auto-post time is checked

# Word store constants
WORD_HISTORY_LIMIT = _get_env_int(
    "WORD_HISTORY_LIMIT", 100
)  # Newest words kept in history

# Configuration constants
DEFAULT_CONFIG_FILE = "wotd.conf"
DEFAULT_WORD_STORE_FILE = "wotd_words.json"
CONFIG_RELOAD_DEBOUNCE_SECONDS = _get_env_float(
    "CONFIG_RELOAD_DEBOUNCE_SECONDS", 1.0
)  # Ignore watcher events closer together than this
