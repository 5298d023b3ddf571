from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..canon import FAMILIES, FAMILY_ARCHETYPES, face_key
from ..errors import InvalidSelection, StateError
from ..scoring.purity import PERFECT_EVIDENCE_PURITY, LineResult

log = logging.getLogger(__name__)

BUILDING = "Building"
AUTO_RESOLVED = "AutoResolved"
AWAITING_TIE_BREAK = "AwaitingTieBreak"
RESOLVED = "Resolved"

NO_ANCHOR_FAULT = "NO_ANCHOR_CANDIDATES"


@dataclass(frozen=True)
class AnchorCandidate:
    family: str
    face: str
    kind: str
    purity: float
    tier: int


@dataclass(frozen=True)
class AnchorTransition:
    source: str
    target: str
    reason: str


def evidence_tier(lines: Mapping[str, LineResult]) -> List[AnchorCandidate]:
    out: List[AnchorCandidate] = []
    for family in FAMILIES:
        line = lines.get(family)
        if line is None or not line.complete or line.kind != "evidence":
            continue
        if line.purity == PERFECT_EVIDENCE_PURITY and line.face is not None:
            out.append(AnchorCandidate(family, line.face, "evidence", line.purity, 1))
    return out


def module_tier(lines: Mapping[str, LineResult]) -> List[AnchorCandidate]:
    module_lines = [
        lines[family]
        for family in FAMILIES
        if family in lines and lines[family].complete and lines[family].kind == "module"
    ]
    if not module_lines:
        return []
    best = max(line.purity or 0.0 for line in module_lines)
    return [
        AnchorCandidate(line.family, line.face or "", "module", line.purity or 0.0, 2)
        for line in module_lines
        if (line.purity or 0.0) == best
    ]


class AnchorSelector:
    """Anchor line resolution: Building -> (AutoResolved | AwaitingTieBreak) -> Resolved."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.state = BUILDING
        self.candidates: List[AnchorCandidate] = []
        self.tier: Optional[int] = None
        self.selected: Optional[AnchorCandidate] = None
        self.face: Optional[str] = None
        self.source: Optional[str] = None
        self.fault: Optional[str] = None
        self.transitions: List[AnchorTransition] = []

    @property
    def resolved(self) -> bool:
        return self.state == RESOLVED

    def _move(self, target: str, reason: str) -> None:
        self.transitions.append(AnchorTransition(self.state, target, reason))
        self.state = target

    def build_candidates(self, lines: Mapping[str, LineResult]) -> List[AnchorCandidate]:
        if self.state in (AWAITING_TIE_BREAK, RESOLVED):
            return list(self.candidates)

        candidates = evidence_tier(lines)
        tier = 1
        if not candidates:
            candidates = module_tier(lines)
            tier = 2
        if not candidates:
            self.candidates = []
            self.tier = None
            self.fault = NO_ANCHOR_FAULT
            log.warning("ANCHOR_NO_CANDIDATES")
            return []

        self.candidates = candidates
        self.tier = tier
        self.fault = None
        if len(candidates) == 1:
            only = candidates[0]
            self._move(AUTO_RESOLVED, f"tier {tier} singleton")
            self._resolve(only, "AutoAnchor")
            log.info("ANCHOR_AUTO_RESOLVED line=%s tier=%s", only.family, tier)
        else:
            self._move(AWAITING_TIE_BREAK, f"tier {tier} tie of {len(candidates)}")
            log.info(
                "ANCHOR_TIE_BREAK_REQUIRED lines=%s tier=%s",
                ",".join(c.family for c in candidates),
                tier,
            )
        return list(candidates)

    def _resolve(self, candidate: AnchorCandidate, source: str) -> None:
        self.selected = candidate
        self.face = candidate.face
        self.source = source
        self._move(RESOLVED, source)

    def select(self, family: str) -> AnchorCandidate:
        if self.state != AWAITING_TIE_BREAK:
            raise StateError("NOT_AWAITING_TIE_BREAK", self.state)
        for candidate in self.candidates:
            if candidate.family == family:
                self._resolve(candidate, "TieBreak")
                log.info("ANCHOR_TIE_BROKEN line=%s", family)
                return candidate
        raise InvalidSelection("NOT_IN_CANDIDATES", repr(family))

    def choose_archetype(self, archetype: str) -> str:
        if self.selected is None:
            raise StateError("ANCHOR_NOT_RESOLVED", self.state)
        family = self.selected.family
        if archetype not in FAMILY_ARCHETYPES[family]:
            raise InvalidSelection("UNKNOWN_ARCHETYPE", f"{family}:{archetype}")
        self.face = face_key(family, archetype)
        log.info("ANCHOR_ARCHETYPE_CHOSEN face=%s", self.face)
        return self.face

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "tier": self.tier,
            "candidates": [asdict(c) for c in self.candidates],
            "selected": self.selected.family if self.selected else None,
            "face": self.face,
            "source": self.source,
            "fault": self.fault,
            "transitions": [asdict(t) for t in self.transitions],
        }
