"""General utility helper functions."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

__all__ = ["read_json", "write_json_atomic", "emit_startup_instructions"]


def read_json(path: str | os.PathLike[str]) -> Any | None:
    """Return the parsed JSON document at ``path`` or None if missing/unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logging.error(f"💥 Could not read {path}: {type(e).__name__}: {e}")
        return None


def write_json_atomic(path: str | os.PathLike[str], data: Any, mode: int = 0o600) -> None:
    """Write ``data`` as JSON through a temp file renamed over ``path``.

    Readers never observe a half-written file. The temp file is removed if
    anything fails before the rename.
    """
    target = Path(path)
    if target.parent and not target.parent.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
    temp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as tmp:
            json.dump(data, tmp, indent=2, ensure_ascii=False, default=str)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = tmp.name
        os.chmod(temp_path, mode)
        os.replace(temp_path, target)
    except (OSError, ValueError, TypeError):
        if temp_path and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError:
                pass
        logging.error(f"💥 Atomic write failed for {target.name}")
        raise


def emit_startup_instructions() -> None:
    """Print setup guidance once at startup."""
    print("📘 Instructions")
    print("🪜 Setup step 1: Copy wotd.conf.sample to wotd.conf")
    print("🪜 Setup step 2: Set 'channel' to the Twitch channel to listen to")
    print("🪜 Setup step 3 (optional): Add 'username' and 'token' to reply in chat")

    print("ℹ️ Features")
    print("👉 Viewers type !word or !wotd (or your custom commands) in chat")
    print("👉 The bot replies with the word of the day when a token is configured")
    print("👉 Without a token the bot listens anonymously (read-only)")
    print("👉 Editing wotd.conf reconnects with the new settings automatically")
    print("👉 Set 'webhook_url' to post the word to a Discord channel")
    print(
        "🔒 Security notice : Remember to never share your OAuth token or webhook URL!"
    )
