"""JSON-file store for the current word, the word history and the last post date."""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any

from pydantic import ValidationError

from ..constants import WORD_HISTORY_LIMIT
from ..utils.helpers import read_json, write_json_atomic
from .models import WordRecord, today_string


class WordStore:
    """Persists ``{"current": WordRecord | null, "history": [...], "lastPostDate": str}``.

    History is newest first and capped at ``history_limit`` entries. Entries
    that fail validation are skipped on load. ``lastPostDate`` is the
    ``today_string`` of the last successful webhook post. The parsed file is
    cached and only re-read when its mtime or size changes.
    """

    def __init__(
        self, path: str | os.PathLike[str], history_limit: int = WORD_HISTORY_LIMIT
    ) -> None:
        self.path = str(path)
        self.history_limit = history_limit
        self._cache_key: tuple[float, int] | None = None
        self._current: WordRecord | None = None
        self._history: list[WordRecord] = []
        self._last_post_date: str | None = None

    def _refresh(self) -> None:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            self._cache_key = None
            self._current = None
            self._history = []
            self._last_post_date = None
            return
        key = (st.st_mtime, st.st_size)
        if key == self._cache_key:
            return
        raw = read_json(self.path)
        data: dict[str, Any] = raw if isinstance(raw, dict) else {}
        self._current = self._parse(data.get("current"))
        history = data.get("history")
        entries = history if isinstance(history, list) else []
        self._history = [w for w in (self._parse(e) for e in entries) if w is not None]
        posted = data.get("lastPostDate")
        self._last_post_date = posted if isinstance(posted, str) else None
        self._cache_key = key

    @staticmethod
    def _parse(entry: Any) -> WordRecord | None:
        if not isinstance(entry, dict):
            return None
        try:
            return WordRecord.from_dict(entry)
        except ValidationError as e:
            logging.warning(f"⚠️ Skipping invalid word entry: {e.error_count()} error(s)")
            return None

    def _write(self) -> None:
        data: dict[str, Any] = {
            "current": self._current.to_dict() if self._current else None,
            "history": [w.to_dict() for w in self._history],
        }
        if self._last_post_date:
            data["lastPostDate"] = self._last_post_date
        write_json_atomic(self.path, data)
        self._cache_key = None

    def load_current(self) -> WordRecord | None:
        self._refresh()
        return self._current

    def todays_word(self, day: date | None = None) -> WordRecord | None:
        """The current word if it was generated on ``day`` (today by default)."""
        current = self.load_current()
        if current is not None and current.is_from(day):
            return current
        return None

    def history(self) -> list[WordRecord]:
        self._refresh()
        return list(self._history)

    def previous_words(self) -> list[str]:
        """Words a generator must not repeat."""
        return [w.word for w in self.history()]

    def save_word(self, record: WordRecord) -> None:
        """Make ``record`` the current word and prepend it to the history."""
        self._refresh()
        self._current = record
        self._history = [record, *self._history][: self.history_limit]
        self._write()
        logging.info(f"💾 Saved word of the day: {record.word}")

    def last_post_date(self) -> str | None:
        self._refresh()
        return self._last_post_date

    def posted_on(self, day: date | None = None) -> bool:
        return self.last_post_date() == today_string(day)

    def mark_posted(self, day: date | None = None) -> None:
        self._refresh()
        self._last_post_date = today_string(day)
        self._write()
