"""Word of the day records, storage, announcement and collaborator interfaces."""

from .models import WordRecord, today_string  # noqa: F401
from .services import Narrator, WordGenerator  # noqa: F401
from .store import WordStore  # noqa: F401
from .webhook import WebhookPoster, build_embed_payload  # noqa: F401

__all__ = [
    "Narrator",
    "WebhookPoster",
    "WordGenerator",
    "WordRecord",
    "WordStore",
    "build_embed_payload",
    "today_string",
]
