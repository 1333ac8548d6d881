"""Collaborator interfaces for word generation and narration.

Concrete backends (a text-generation service, a speech synthesizer with an
on-device fallback) live outside this package and are injected into
``CompanionApp``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .models import WordRecord


@runtime_checkable
class WordGenerator(Protocol):
    """Produces a new word that is not in ``previous_words``."""

    async def generate(self, previous_words: Sequence[str]) -> WordRecord:
        """Return a freshly generated word record."""
        ...


@runtime_checkable
class Narrator(Protocol):
    """Speaks a word aloud."""

    async def speak(self, word: str, definition: str, example: str) -> None:
        """Narrate the word; raise on failure."""
        ...
