from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..canon import family_of
from ..errors import InvalidSelection, StateError
from ..schemas import CollisionRecord
from ..scoring.installed import ILBreakdown

log = logging.getLogger(__name__)

REASON_TOP = "top IL"
REASON_FAMILY = "family diversity"
REASON_PRUNED = "pruned"
REASON_CUTOFF = "below cutoff"


@dataclass(frozen=True)
class ShortlistEntry:
    face: str
    il: float
    rank: int
    included: bool
    reason: str


@dataclass
class ShortlistFormation:
    entries: List[ShortlistEntry] = field(default_factory=list)
    faces: List[str] = field(default_factory=list)

    def ranked_faces(self) -> List[str]:
        return [entry.face for entry in self.entries]

    def to_dict(self) -> Dict[str, Any]:
        return {"faces": list(self.faces), "entries": [asdict(e) for e in self.entries]}


def rank_key(entry: ILBreakdown) -> Tuple[float, int, int, str]:
    return (-entry.il, -entry.f_touch, -entry.ended_f, entry.face)


def build_shortlist(
    breakdowns: Mapping[str, ILBreakdown],
    size: int = 4,
    max_per_family: int = 1,
) -> ShortlistFormation:
    ranked = sorted(breakdowns.values(), key=rank_key)
    formation = ShortlistFormation()
    per_family: Dict[str, int] = {}
    last_il: Optional[float] = None
    for rank, item in enumerate(ranked):
        family = family_of(item.face)
        taken = per_family.get(family, 0)
        full = len(formation.faces) >= size
        if not full and taken < max_per_family:
            formation.faces.append(item.face)
            per_family[family] = taken + 1
            last_il = item.il
            reason = REASON_TOP
        elif taken >= max_per_family:
            reason = REASON_FAMILY
        elif full and item.il == last_il:
            reason = REASON_PRUNED
            log.info("SHORTLIST_PRUNED face=%s il=%s reason=%s", item.face, item.il, reason)
        else:
            reason = REASON_CUTOFF
        formation.entries.append(
            ShortlistEntry(
                face=item.face,
                il=item.il,
                rank=rank,
                included=reason == REASON_TOP,
                reason=reason,
            )
        )
    return formation


def resolve_secondary(
    formation: ShortlistFormation,
    installed: str,
    anchor_face: str,
) -> Tuple[str, Optional[CollisionRecord]]:
    if installed not in formation.faces:
        raise InvalidSelection("NOT_IN_SHORTLIST", repr(installed))
    if installed != anchor_face:
        return installed, None

    fallback = [face for face in formation.faces if face != anchor_face]
    if not fallback:
        fallback = [face for face in formation.ranked_faces() if face != anchor_face]
    if not fallback:
        raise StateError("NO_SECONDARY_AVAILABLE", anchor_face)
    secondary = fallback[0]
    collision = CollisionRecord(
        anchor_face=anchor_face,
        installed_face=installed,
        downgraded_to=secondary,
    )
    log.info("SECONDARY_DOWNGRADED anchor=%s installed=%s to=%s", anchor_face, installed, secondary)
    return secondary, collision
