"""IRC line parsing for the chat gateway."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ParsingError
from .models import InboundChatEvent, normalize_channel


@dataclass
class IRCMessage:
    raw: str
    prefix: str | None
    command: str | None
    middle: list[str] = field(default_factory=list)
    trailing: str | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def nick(self) -> str | None:
        """Nickname part of the source prefix (``nick!user@host`` -> ``nick``)."""
        if not self.prefix:
            return None
        return self.prefix.split("!", 1)[0] or None


def parse_irc_message(raw_line: str) -> IRCMessage:
    """Split one protocol line into tags, prefix, command and parameters.

    Raises:
        ParsingError: The line has a tag block or prefix with nothing after it.
    """
    original = raw_line
    line = raw_line.rstrip("\r\n")
    tags: dict[str, str] = {}
    prefix: str | None = None

    if line.startswith("@"):
        tag_block, sep, line = line.partition(" ")
        if not sep:
            raise ParsingError("tag block without message body", data={"raw": original})
        tags = _parse_tags(tag_block[1:])
        line = line.lstrip(" ")

    if line.startswith(":"):
        prefix, sep, line = line[1:].partition(" ")
        if not sep:
            raise ParsingError("prefix without command", data={"raw": original})
        line = line.lstrip(" ")

    trailing: str | None = None
    if line.startswith(":"):
        line, trailing = "", line[1:]
    elif " :" in line:
        line, trailing = line.split(" :", 1)

    parts = line.split()
    command = parts[0] if parts else None
    return IRCMessage(
        raw=original,
        prefix=prefix,
        command=command,
        middle=parts[1:],
        trailing=trailing,
        tags=tags,
    )


def _parse_tags(raw_tags: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tag in raw_tags.split(";"):
        if not tag:
            continue
        key, _, value = tag.partition("=")
        tags[key] = value
    return tags


def parse_chat_line(raw_line: str, channel: str) -> InboundChatEvent | None:
    """Extract the sender and text of a chat message addressed to ``channel``.

    Accepts both plain (``:nick!user@host PRIVMSG #chan :text``) and
    tag-prefixed (``@k=v;... :nick!user@host PRIVMSG #chan :text``) lines.
    Returns None for anything else, including malformed or truncated lines;
    never raises.
    """
    try:
        parsed = parse_irc_message(raw_line)
    except ParsingError:
        return None
    if parsed.command != "PRIVMSG" or parsed.trailing is None:
        return None
    if len(parsed.middle) != 1 or not parsed.middle[0].startswith("#"):
        return None
    if normalize_channel(parsed.middle[0]) != normalize_channel(channel):
        return None
    username = parsed.nick
    message = parsed.trailing.strip()
    if not username or not message:
        return None
    return InboundChatEvent(username=username, message=message)


def build_privmsg(channel: str, text: str) -> str:
    return f"PRIVMSG #{normalize_channel(channel)} :{text}"
