"""content.prompts

Prompt builders for the event generation layer.

The model writes the narrative and proposes effects; the engine never trusts
those numbers (see core.effects.sanitize). The ranges quoted in the schema
below match the sanitizer bounds so a well-behaved model is rarely clamped.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List

from core.modes import get_mode_spec
from core.state import GameState

# situations
TRAVEL = "travel"
FACE_THE_DAY = "face_the_day"
JAILED = "jailed"
STUCK = "stuck"

PROBE_PROMPT = "Respond with only: OK"
PROBE_EXPECTED = "OK"


def describe_party(state: GameState) -> str:
    return ", ".join(
        f"{m.name} ({m.profession}, Health: {m.health}%, Morale: {m.morale}%)" for m in state.party
    ) or "(nobody left)"


def state_for_prompt(state: GameState) -> Dict[str, Any]:
    return {
        "location": state.current_location.name,
        "locationType": state.current_location.kind,
        "day": state.day,
        "health": state.health,
        "morale": state.morale,
        "supplies": state.supplies,
        "money": state.money,
        "partyMembers": describe_party(state),
        "distanceToNext": state.distance_to_next,
        "totalDistance": state.total_distance,
        "difficulty": state.difficulty,
        "jailed": state.jailed,
        "daysInJail": state.days_in_jail,
        "stuckDays": state.stuck_days,
    }


def situation_for(state: GameState, *, traveled: bool = True) -> str:
    if state.jailed:
        return JAILED
    if state.stuck_days > 0:
        return STUCK
    return TRAVEL if traveled else FACE_THE_DAY


def _situation_brief(situation: str, state: GameState) -> str:
    here = state.current_location.name
    if situation == JAILED:
        return (
            f"The party is locked up near \"{here}\" (jail day {state.days_in_jail + 1}). "
            "Write a jail-themed event: interrogations, cellmates, absurd paperwork, escape attempts. "
            "Choices must not send the party to jail again."
        )
    if situation == STUCK:
        return (
            f"The party is stranded at \"{here}\" for {state.stuck_days} more day(s). "
            "Write an event about waiting it out: roadblocks, permits, broken vehicles. Do not add miles."
        )
    if situation == FACE_THE_DAY:
        return f"The party stays put at \"{here}\" today. The event should be relevant to this location."
    return f"The party just traveled toward \"{here}\". The event should be relevant to this location."


_SCHEMA = """{
  "title": "Event Title",
  "description": "2-3 sentences",
  "choices": [
    { "text": "Choice 1", "effect": { "health": -5, "morale": 5, "supplies": 0, "money": -25, "partyHealth": -3, "partyMorale": 2, "miles": 0, "milesBack": 0, "stuckDays": 0, "sendToJail": false, "partyMemberLoss": false, "endGame": null, "message": "Result" } },
    { "text": "Choice 2", "effect": { "health": 0, "morale": -10, "supplies": 5, "money": 0, "partyHealth": 0, "partyMorale": -5, "miles": 0, "milesBack": 0, "stuckDays": 0, "sendToJail": false, "partyMemberLoss": false, "endGame": null, "message": "Result" } }
  ]
}"""

_RANGES = (
    "Effect ranges: health/morale/supplies/partyHealth/partyMorale -100..100 (usually -25..25); "
    "money -1000..2000 (usually -200..200); miles 0..150; milesBack 0..150; stuckDays 0..5; "
    "sendToJail and partyMemberLoss are rare booleans; endGame is null, \"win\" or \"lose\" and almost always null."
)


def build_event_prompt(state: GameState, situation: str = TRAVEL) -> str:
    """Build the event-generation prompt. The model MUST output only JSON."""
    mode = get_mode_spec(state.difficulty)
    year = datetime.now().year + 1
    return f"""
You are generating a satirical event for a dystopian Oregon Trail-style game called "The Modern American Trail" set in an authoritarian America in {year}.
Current game state: {json.dumps(state_for_prompt(state), ensure_ascii=False)}
Tone: {mode.tone}.
{_situation_brief(situation, state)}
Consider the party's health/morale. Include 2-4 meaningful choices that affect game stats realistically.
Make effects proportional to the current state: if health/morale is low, avoid overly harsh penalties. If supplies are critical, offer a way to find some.
{_RANGES}
Respond with ONLY valid JSON in this exact format:
{_SCHEMA}
""".strip()


def build_messages(prompt: str) -> List[Dict[str, str]]:
    return [{"role": "user", "content": prompt}]


def probe_messages() -> List[Dict[str, str]]:
    return build_messages(PROBE_PROMPT)


def is_probe_ok(text: str) -> bool:
    return (text or "").strip().upper() == PROBE_EXPECTED
