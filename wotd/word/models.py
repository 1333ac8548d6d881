from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def today_string(day: date | None = None) -> str:
    """Date string used to stamp words, e.g. ``'Sat Oct 17 2026'``."""
    return (day or date.today()).strftime("%a %b %d %Y")


class WordRecord(BaseModel):
    """A generated word of the day.

    Serialized with the camelCase keys the word files and webhook payloads
    use (``partOfSpeech``, ``generatedDate``); snake_case names are accepted
    on input too.

    Attributes:
        word: The word itself, capitalized.
        phonetic: Sound-it-out pronunciation (no IPA).
        part_of_speech: noun, verb, adjective, ...
        definition: Short plain-text definition.
        example: Example sentence using the word.
        generated_date: Day the word was generated (see ``today_string``).
        source: Where the word came from, when known.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    word: str = Field(min_length=1)
    phonetic: str = ""
    part_of_speech: str = Field(default="", alias="partOfSpeech")
    definition: str = ""
    example: str = ""
    generated_date: str = Field(default_factory=today_string, alias="generatedDate")
    source: Literal["local", "server"] | None = None

    @field_validator("word")
    @classmethod
    def validate_word(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("word must not be blank")
        return v

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WordRecord:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_from(self, day: date | None = None) -> bool:
        """True if the word was generated on ``day`` (today by default)."""
        return self.generated_date == today_string(day)

    def chat_reply(self) -> str:
        return f"📖 Word of the Day: {self.word} ({self.phonetic}) — {self.definition}"
