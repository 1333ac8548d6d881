"""Event logger used across the companion (chat client, app, config watcher)."""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

from .event_catalog import render_event

_CHAT_EMOJI = "💬"


def _supports_color(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):  # pragma: no cover
        return False


def _debug_enabled() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")


class SimpleFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }
    RESET = "\x1b[0m"

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self.enable_color = _supports_color(stream or sys.stdout)

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 (simple override)
        msg = record.getMessage()
        # 'CRITICAL' is the longest level name
        level = record.levelname.ljust(8)
        if self.enable_color:
            color = self.LEVEL_COLORS.get(record.levelno, "")
            return f"{color}{level}{self.RESET} {msg}"
        return f"{level} {msg}"


class BotLogger:
    """Structured event logger.

    Every event is identified by a ``(domain, action)`` pair. The human text
    comes from the event catalog when a template exists, else it is derived
    from the pair itself. ``channel`` and ``user`` keyword arguments are
    lifted into a fixed-width prefix column; everything else becomes context
    that is only printed when DEBUG is enabled.
    """

    EVENT_NAME_WIDTH = 32
    PREFIX_WIDTH = 24

    def __init__(self, name: str = "wotd") -> None:
        self.logger = logging.getLogger(name)
        self.logger.handlers.clear()
        self.logger.setLevel(logging.DEBUG if _debug_enabled() else logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(SimpleFormatter(sys.stdout))
        self.logger.addHandler(console_handler)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        event_name = f"{domain}_{action}".lower()
        human_text = human
        if human_text is None:
            human_text = render_event(domain, action, kwargs)
        if human_text is None:
            human_text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
            kwargs.setdefault("derived", True)
        self._log(level, event_name, human_text, exc_info=exc_info, **kwargs)

    def _log(
        self,
        level: int,
        event_name: str,
        human_text: str,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        context = dict(kwargs)
        user = context.pop("user", None)
        channel = context.pop("channel", None)
        user = user if isinstance(user, str) else None
        channel = channel if isinstance(channel, str) else None
        prefix = self._build_prefix(user, channel)
        if event_name == "chat_message":
            human_text = self._decorate_chat(human_text, channel)
        if _debug_enabled():
            msg = self._build_debug_message(event_name, prefix, human_text, context)
        else:
            msg = f"{prefix} {human_text or event_name}"
        self.logger.log(level, msg, exc_info=exc_info)

    @classmethod
    def _build_prefix(cls, user: str | None, channel: str | None) -> str:
        core = f"{user or 'system'}#{channel}" if channel else (user or "system")
        return f"[{core.ljust(cls.PREFIX_WIDTH)[: cls.PREFIX_WIDTH]}]"

    @staticmethod
    def _decorate_chat(human_text: str, channel: str | None) -> str:
        # "💬 #channel username: message"
        body = human_text.removeprefix(_CHAT_EMOJI).lstrip()
        if channel:
            return f"{_CHAT_EMOJI} #{channel} {body}"
        return f"{_CHAT_EMOJI} {body}"

    @classmethod
    def _build_debug_message(
        cls,
        event_name: str,
        prefix: str,
        human_text: str,
        context: dict[str, object],
    ) -> str:
        width = cls.EVENT_NAME_WIDTH
        if len(event_name) <= width:
            ev = event_name.ljust(width)
        else:
            ev = event_name[: width - 1] + "…"
        base = f"{ev} {prefix} {human_text}"
        if context:
            base += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
        return base


logger = BotLogger()
