from __future__ import annotations

from typing import Dict, List, Literal, Tuple

from .errors import ValidationError

CANON_VERSION = "sif-canon-v3"
VERDICT_TABLE_VERSION = "module-table-v1"

Pick = Literal["C", "O", "F"]
Verdict = Literal["C", "O", "F"]
Slot = Literal["CO1", "CO2", "CF"]

PICKS: Tuple[str, ...] = ("C", "O", "F")
MODULE_SLOTS: Tuple[str, ...] = ("CO1", "CO2", "CF")

FAMILIES: Tuple[str, ...] = (
    "Control",
    "Pace",
    "Boundary",
    "Truth",
    "Recognition",
    "Bonding",
    "Stress",
)

# First archetype is the one a line points at when its picks run clean.
FAMILY_ARCHETYPES: Dict[str, Tuple[str, str]] = {
    "Control": ("Rebel", "Sovereign"),
    "Pace": ("Visionary", "Navigator"),
    "Boundary": ("Equalizer", "Guardian"),
    "Truth": ("Seeker", "Architect"),
    "Recognition": ("Spotlight", "Diplomat"),
    "Bonding": ("Partner", "Provider"),
    "Stress": ("Catalyst", "Artisan"),
}

PRIZE_MAP: Dict[str, str] = {
    "Control:Sovereign": "Recognition:Diplomat",
    "Control:Rebel": "Recognition:Spotlight",
    "Pace:Visionary": "Stress:Catalyst",
    "Pace:Navigator": "Stress:Artisan",
    "Boundary:Equalizer": "Bonding:Partner",
    "Boundary:Guardian": "Bonding:Provider",
    "Truth:Seeker": "Control:Sovereign",
    "Truth:Architect": "Control:Rebel",
    "Recognition:Spotlight": "Control:Rebel",
    "Recognition:Diplomat": "Control:Sovereign",
    "Bonding:Partner": "Boundary:Equalizer",
    "Bonding:Provider": "Boundary:Guardian",
    "Stress:Catalyst": "Pace:Visionary",
    "Stress:Artisan": "Pace:Navigator",
}

PRIZE_ROLES: Dict[str, str] = {
    "Control": "Authority",
    "Pace": "Timekeeper",
    "Boundary": "Gatekeeper",
    "Truth": "Decider",
    "Recognition": "Witness",
    "Bonding": "Anchor",
    "Stress": "Igniter",
}

# Neighbouring line whose pattern fills a failed line.
FOREIGN_CREEP: Dict[str, str] = {
    "Control": "Stress",
    "Pace": "Control",
    "Boundary": "Bonding",
    "Truth": "Recognition",
    "Recognition": "Truth",
    "Bonding": "Boundary",
    "Stress": "Pace",
}


def face_key(family: str, archetype: str) -> str:
    return f"{family}:{archetype}"


FACE_KEYS: Tuple[str, ...] = tuple(
    face_key(family, archetype)
    for family in FAMILIES
    for archetype in FAMILY_ARCHETYPES[family]
)


def require_family(family: str) -> str:
    if family not in FAMILY_ARCHETYPES:
        raise ValidationError("UNKNOWN_FAMILY", repr(family))
    return family


def require_face(face: str) -> str:
    if face not in FACE_KEYS:
        raise ValidationError("UNKNOWN_FACE", repr(face))
    return face


def family_of(face: str) -> str:
    return require_face(face).split(":", 1)[0]


def faces_of(family: str) -> List[str]:
    require_family(family)
    return [face_key(family, archetype) for archetype in FAMILY_ARCHETYPES[family]]


def prize_for(face: str) -> str:
    return PRIZE_MAP[require_face(face)]
