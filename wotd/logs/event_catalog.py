"""Event template catalog for structured log events.

Templates live in ``event_templates.json`` next to this module, shaped as
``{domain: {action: template}}``. Templates use ``str.format`` fields that
are filled from the keyword context passed to ``BotLogger.log_event``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}
_JSON_FILENAME = "event_templates.json"


def _flatten(raw: Mapping[str, Any]) -> dict[tuple[str, str], str]:
    templates: dict[tuple[str, str], str] = {}
    for domain, actions in raw.items():
        if not isinstance(domain, str) or not isinstance(actions, Mapping):
            continue
        for action, template in actions.items():
            if isinstance(action, str) and isinstance(template, str):
                templates[(domain, action)] = template
    return templates


def _load_event_templates(path: Path | None = None) -> dict[tuple[str, str], str]:
    source = path or Path(__file__).with_name(_JSON_FILENAME)
    try:
        with source.open("r", encoding="utf-8") as f:
            raw: Any = json.load(f)
    except FileNotFoundError:
        return {("app", "load_error"): "Event templates file missing"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    if not isinstance(raw, Mapping):
        return {("app", "load_error"): "Event templates file is not a mapping"}
    return _flatten(raw)


def render_event(domain: str, action: str, context: Mapping[str, object]) -> str | None:
    """Return the formatted template for ``(domain, action)`` or None if unknown.

    Missing format fields leave the raw template in place rather than raising.
    """
    template = EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return None
    try:
        return template.format(**context)
    except (KeyError, IndexError, ValueError):
        return template


def reload_event_templates(path: Path | None = None) -> None:
    """Reload templates from disk."""
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = _load_event_templates(path)


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "reload_event_templates", "render_event"]
