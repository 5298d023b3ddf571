from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..errors import ValidationError
from ..utils import round_score
from ..verdict.lines import LinePath

EVIDENCE_BASE = 0.6
PICK_SCORES: Dict[str, float] = {"C": 1.0, "O": 0.6, "F": 0.0}
PERFECT_EVIDENCE_PURITY = round_score(EVIDENCE_BASE + 2 * PICK_SCORES["C"])

MODULE_CO_STEP = 1.0
MODULE_CF_STEP = 1.6


def evidence_face_purity(pick1: str, pick2: str) -> float:
    total = EVIDENCE_BASE
    for pick in (pick1, pick2):
        if pick not in PICK_SCORES:
            raise ValidationError("UNKNOWN_PICK", repr(pick))
        total += PICK_SCORES[pick]
    return round_score(total)


def module_purity(picks: Mapping[str, str]) -> float:
    """Signed purity over whichever module slots are filled."""
    total = 0.0
    for slot, pick in picks.items():
        if slot in ("CO1", "CO2"):
            if pick == "C":
                total += MODULE_CO_STEP
            elif pick == "O":
                total -= MODULE_CO_STEP
            else:
                raise ValidationError("PICK_OUT_OF_SLOT_DOMAIN", f"{slot}={pick}")
        elif slot == "CF":
            if pick == "C":
                total += MODULE_CF_STEP
            elif pick == "F":
                total -= MODULE_CF_STEP
            else:
                raise ValidationError("PICK_OUT_OF_SLOT_DOMAIN", f"{slot}={pick}")
        else:
            raise ValidationError("UNKNOWN_SLOT", repr(slot))
    return round_score(total)


@dataclass
class LineResult:
    family: str
    kind: Optional[str]
    status: str
    picks: List[str] = field(default_factory=list)
    key: Optional[str] = None
    verdict: Optional[str] = None
    purity: Optional[float] = None
    face: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.status == "complete"

    @property
    def needs_severity(self) -> bool:
        return self.verdict == "F"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["needs_severity"] = self.needs_severity
        return data


def score_line(path: LinePath) -> LineResult:
    result = LineResult(family=path.family, kind=path.kind, status=path.status, picks=path.picks)
    if not path.complete:
        return result
    result.key = path.key
    result.verdict = path.verdict()
    result.face = path.pointed_face()
    if path.kind == "evidence":
        result.purity = evidence_face_purity(path.evidence[0], path.evidence[1])
    else:
        result.purity = module_purity(path.module)
    return result


def score_lines(paths: Mapping[str, LinePath]) -> Dict[str, LineResult]:
    return {family: score_line(path) for family, path in paths.items()}
