"""content.fallback

Hardcoded events used when every model fails, plus the cascade events that
can chain straight after a choice.

Events are written as raw dicts (same shape a model returns) and pushed
through the same schema/sanitizer path at import time, so they are
pre-sanitized and guaranteed structurally valid.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Dict, List, Tuple

from core.state import Event

from .prompts import FACE_THE_DAY, JAILED, STUCK, TRAVEL
from .schemas import event_from_llm


_TRAVEL_RAW: List[Dict[str, Any]] = [
    {
        "title": "Mandatory Patriotism Test",
        "description": "At {location}, officials demand you prove your loyalty by reciting the pledge to a flag made entirely of corporate logos. Your party exchanges nervous glances.",
        "choices": [
            {"text": "Recite it with exaggerated enthusiasm", "effect": {"morale": -10, "partyMorale": -5, "message": "You pass the test but feel your soul shrinking."}},
            {"text": "Try to slip them a bribe", "effect": {"health": -5, "morale": 5, "money": -50, "partyMorale": 3, "message": "Money talks, even in a dystopia."}},
            {"text": "Refuse and argue about constitutional rights", "effect": {"health": -15, "morale": 10, "money": -25, "partyMorale": 5, "message": "Your principles cost you time and a fine."}},
        ],
    },
    {
        "title": "Corporate Checkpoint Inspection",
        "description": "Amazon-Walmart Security Forces demand to search your vehicle for 'unauthorized merchandise' and 'anti-corporate sentiment materials.' They look very serious about their corporate loyalty.",
        "choices": [
            {"text": "Submit to full search and praise the corporations", "effect": {"morale": -15, "supplies": -20, "partyMorale": -10, "message": "They confiscate 'suspicious' items but let you pass."}},
            {"text": "Offer to buy overpriced corporate merchandise", "effect": {"morale": -5, "money": -150, "message": "Capitalism solves another problem through commerce."}},
            {"text": "Challenge their authority", "effect": {"health": -25, "money": -200, "partyHealth": -15, "message": "Corporate justice is swift and expensive."}},
        ],
    },
    {
        "title": "Regime Propaganda Broadcast",
        "description": "Loudspeakers near {location} force you to listen to a 3-hour speech about the 'dangers of independent thought.' Covering your ears is illegal.",
        "choices": [
            {"text": "Endure the propaganda session", "effect": {"health": -5, "morale": -30, "partyMorale": -25, "message": "Your brain feels violated by the forced indoctrination."}},
            {"text": "Pretend to be sick and leave", "effect": {"health": -15, "money": -50, "message": "Fake illness costs money for medical exemption."}},
        ],
    },
    {
        "title": "Underground Railroad Detour",
        "description": "A librarian in a trench coat whispers about a back road that skips the next loyalty checkpoint. It is unpaved, unlit and definitely unlicensed.",
        "choices": [
            {"text": "Take the shortcut", "effect": {"health": -5, "supplies": -5, "miles": 40, "message": "Bumpy, dark and blessedly unsurveilled."}},
            {"text": "Stick to the approved highway", "effect": {"morale": -5, "message": "The highway is slow, but at least the billboards are patriotic."}},
        ],
    },
]

_JAIL_RAW: List[Dict[str, Any]] = [
    {
        "title": "Loyalty Re-education Seminar",
        "description": "Your cell block is marched into a seminar titled 'Questions Are Just Rude Answers.' Attendance is mandatory; enthusiasm is graded.",
        "choices": [
            {"text": "Take diligent notes", "effect": {"morale": -10, "message": "Your notes are confiscated as 'too legible.'"}},
            {"text": "Trade rations with a cellmate for gossip", "effect": {"supplies": -5, "morale": 5, "message": "You learn which guard naps after lunch."}},
        ],
    },
    {
        "title": "Commissary Surprise",
        "description": "The prison commissary sells one item: a commemorative mug celebrating the prison commissary.",
        "choices": [
            {"text": "Buy the mug for morale", "effect": {"money": -20, "morale": 8, "message": "It is a very good mug."}},
            {"text": "Organize a quiet boycott", "effect": {"morale": 5, "health": -3, "message": "Solidarity tastes like thin soup."}},
        ],
    },
]

_STUCK_RAW: List[Dict[str, Any]] = [
    {
        "title": "Permit Office Closed for Patriotism",
        "description": "The only road out of {location} requires a travel permit. The permit office is closed in observance of Permit Office Appreciation Day.",
        "choices": [
            {"text": "Wait in line anyway", "effect": {"morale": -8, "message": "You are now number 412 in line."}},
            {"text": "Fix up the vehicle while you wait", "effect": {"supplies": -5, "morale": 4, "message": "The engine sounds slightly less treasonous."}},
        ],
    },
    {
        "title": "Roadblock Tailgate Party",
        "description": "The checkpoint guards are grilling. The queue of stranded travelers has become a small, nervous festival.",
        "choices": [
            {"text": "Share your rations", "effect": {"supplies": -8, "morale": 10, "partyMorale": 5, "message": "Friends made. Rations lost."}},
            {"text": "Keep to yourselves", "effect": {"morale": -5, "message": "You watch everyone else have fun."}},
        ],
    },
]

# trigger -> cascade event
_CASCADE_RAW: Dict[str, Dict[str, Any]] = {
    "low_health": {
        "title": "Medical Emergency",
        "description": "Someone in the party collapses. The nearest clinic only treats patients with a Certificate of Ideological Wellness.",
        "choices": [
            {"text": "Forge the certificate", "effect": {"health": 10, "money": -60, "message": "The forgery is excellent. The clinic is less so."}},
            {"text": "Rest by the roadside", "effect": {"health": 5, "supplies": -10, "message": "A day of rest, paid for in rations."}},
        ],
    },
    "low_supplies": {
        "title": "Desperate Foraging",
        "description": "The food is nearly gone. A 'Freedom Harvest' field is guarded by a single, very bored scarecrow with a body camera.",
        "choices": [
            {"text": "Forage quickly", "effect": {"supplies": 15, "morale": -5, "message": "Corn. So much corn."}},
            {"text": "Beg at a megachurch soup line", "effect": {"supplies": 10, "morale": -10, "message": "The soup came with a sermon."}},
        ],
    },
    "bribe": {
        "title": "The Bribe Backfires",
        "description": "The official you paid has a supervisor. The supervisor has a supervisor. They all want a cut.",
        "choices": [
            {"text": "Pay the whole chain", "effect": {"money": -75, "message": "Corruption is a pyramid scheme."}},
            {"text": "Run for it", "effect": {"health": -10, "miles": 15, "message": "You outrun the paperwork, barely."}},
        ],
    },
    "steal": {
        "title": "Wanted Poster",
        "description": "Your party's faces appear on a digital billboard under the headline 'ENEMIES OF CONVENIENCE.'",
        "choices": [
            {"text": "Disguise yourselves", "effect": {"money": -30, "morale": 5, "message": "The fake mustaches are surprisingly convincing."}},
            {"text": "Lie low for a day", "effect": {"stuckDays": 1, "message": "You hide in a barn and wait."}},
        ],
    },
    "resist": {
        "title": "Crackdown",
        "description": "Word of your defiance spreads. So do the patrols.",
        "choices": [
            {"text": "Keep your heads down", "effect": {"morale": -10, "message": "Defiance deferred."}},
            {"text": "Rally other travelers", "effect": {"morale": 15, "health": -10, "partyHealth": -5, "message": "A small crowd cheers. A larger one takes notes."}},
        ],
    },
}


def _build(raw: List[Dict[str, Any]]) -> Tuple[Event, ...]:
    return tuple(event_from_llm(d) for d in raw)


FALLBACK_EVENTS: Tuple[Event, ...] = _build(_TRAVEL_RAW)
JAIL_EVENTS: Tuple[Event, ...] = _build(_JAIL_RAW)
STUCK_EVENTS: Tuple[Event, ...] = _build(_STUCK_RAW)
CASCADE_EVENTS: Dict[str, Event] = {k: event_from_llm(v) for k, v in _CASCADE_RAW.items()}

POOLS: Dict[str, Tuple[Event, ...]] = {
    TRAVEL: FALLBACK_EVENTS,
    FACE_THE_DAY: FALLBACK_EVENTS,
    JAILED: JAIL_EVENTS,
    STUCK: STUCK_EVENTS,
}


def localize(event: Event, location: str) -> Event:
    return replace(event, description=event.description.replace("{location}", location))


def pick_fallback(situation: str, rng: random.Random, location: str = "the checkpoint") -> Event:
    pool = POOLS.get(situation) or FALLBACK_EVENTS
    return localize(rng.choice(pool), location)


def cascade_event(trigger: str, location: str = "the checkpoint") -> Event:
    return localize(CASCADE_EVENTS[trigger], location)
