from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict

from ..canon import FAMILIES, PRIZE_ROLES, family_of, prize_for, require_face
from ..ledger.counters import SIFCounters
from ..scoring.face_score import family_ii, family_si

log = logging.getLogger(__name__)

ALIGNED = "Aligned"
FROM_OUTSIDE = "Installed from outside"
NOT_YET = "Not yet aligned"

OUTSIDE_II = 2
OUTSIDE_SI = 0.5


@dataclass(frozen=True)
class PrizeJudgment:
    anchor_face: str
    prize_face: str
    prize_role: str
    secondary_face: str
    aligned: bool
    badge: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def badge_for(secondary: str, prize: str, counters: SIFCounters) -> str:
    if secondary == prize:
        return ALIGNED
    family = family_of(secondary)
    if family_ii(counters, family) >= OUTSIDE_II or family_si(counters, family) < OUTSIDE_SI:
        return FROM_OUTSIDE
    return NOT_YET


def friction(counters: SIFCounters) -> Dict[str, int]:
    return {
        family: counters.famF[family]
        for family in FAMILIES
        if counters.famF.get(family, 0) > 0
    }


def judge(anchor_face: str, secondary: str, counters: SIFCounters) -> PrizeJudgment:
    require_face(secondary)
    prize = prize_for(anchor_face)
    judgment = PrizeJudgment(
        anchor_face=anchor_face,
        prize_face=prize,
        prize_role=PRIZE_ROLES[family_of(anchor_face)],
        secondary_face=secondary,
        aligned=secondary == prize,
        badge=badge_for(secondary, prize, counters),
    )
    log.info(
        "PRIZE_JUDGED anchor=%s prize=%s secondary=%s badge=%s",
        anchor_face,
        prize,
        secondary,
        judgment.badge,
    )
    return judgment
