"""content.schemas

Contracts for events coming out of a language model (or out of a save file).

Design choice:
The model is free to write the narrative, but every effect it proposes goes
through core.effects.sanitize() before the engine sees it. Shape problems
(missing title, too few choices) reject the whole event so the generator can
move on to the next model or the fallback pool.
"""

from __future__ import annotations

from typing import Any, List, Mapping

from core.effects import sanitize
from core.state import Choice, Event

MIN_CHOICES = 2
MAX_CHOICES = 4
TITLE_MAX_LEN = 120
DESCRIPTION_MAX_LEN = 1200
CHOICE_TEXT_MAX_LEN = 200


def _text(x: Any, limit: int) -> str:
    if not isinstance(x, str):
        return ""
    return " ".join(x.split())[:limit]


def _parse_choice(obj: Any) -> Choice | None:
    if not isinstance(obj, Mapping):
        return None
    text = _text(obj.get("text") or obj.get("label"), CHOICE_TEXT_MAX_LEN)
    if not text:
        return None
    return Choice(text=text, effect=sanitize(obj.get("effect")))


def event_from_llm(data: Mapping[str, Any]) -> Event:
    """Validate and normalize a parsed model response into an Event.

    Raises ValueError when required fields are missing.
    """
    if not isinstance(data, Mapping):
        raise ValueError("event must be an object")

    title = _text(data.get("title"), TITLE_MAX_LEN)
    if not title:
        raise ValueError("event.title missing")
    description = _text(data.get("description"), DESCRIPTION_MAX_LEN)
    if not description:
        raise ValueError("event.description missing")

    raw_choices = data.get("choices")
    if not isinstance(raw_choices, list):
        raise ValueError("event.choices must be a list")

    choices: List[Choice] = []
    for obj in raw_choices:
        choice = _parse_choice(obj)
        if choice is not None:
            choices.append(choice)
        if len(choices) >= MAX_CHOICES:
            break
    if len(choices) < MIN_CHOICES:
        raise ValueError(f"event needs at least {MIN_CHOICES} valid choices")

    return Event(title=title, description=description, choices=tuple(choices))


def event_from_dict(data: Any) -> Event | None:
    """Lenient loader for persisted events. Returns None for anything unusable."""
    try:
        return event_from_llm(data)
    except ValueError:
        return None
