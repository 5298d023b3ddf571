from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..bank.models import ILFactorsTag
from ..canon import FACE_KEYS, PRIZE_MAP, family_of
from ..config import BandPolicy, ILWeights, Settings
from ..utils import round_score
from .face_score import FaceScore
from .purity import PERFECT_EVIDENCE_PURITY, LineResult

log = logging.getLogger(__name__)

FACTOR_NAMES = (
    "natural_instinct",
    "situational_fit",
    "social_expectation",
    "internal_consistency",
)


@dataclass
class ILBreakdown:
    face: str
    kind: Optional[str] = None
    components: Dict[str, float] = field(default_factory=dict)
    base: float = 0.0
    sibling_bonus: float = 0.0
    prize_bonus: float = 0.0
    factors: Dict[str, float] = field(default_factory=dict)
    factor_blend: float = 0.0
    il: float = 0.0
    band: str = "low"
    f_touch: int = 0
    ended_f: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def evidence_components(line: LineResult) -> Dict[str, float]:
    picks = line.picks
    purity = line.purity if line.purity is not None else 0.0
    return {
        "earlyO": 1.0 if picks and picks[0] == "O" else 0.0,
        "fTouch": 1.0 if "F" in picks else 0.0,
        "oRatio": round_score(picks.count("O") / 2),
        "purityGap": round_score(min(1.0, max(0.0, (PERFECT_EVIDENCE_PURITY - purity) / 2))),
    }


def module_components(line: LineResult) -> Dict[str, float]:
    picks = line.picks
    c_count = picks.count("C")
    return {
        "isCCC": 1.0 if c_count == 3 else 0.0,
        "endedF": 1.0 if picks and picks[-1] == "F" else 0.0,
        "driftRatio": round_score((3 - c_count) / 3),
    }


def structural_base(line: LineResult, cap: float) -> float:
    if line.kind == "evidence":
        parts = evidence_components(line)
        raw = (
            1.6 * parts["earlyO"]
            + 1.2 * parts["fTouch"]
            + 0.8 * parts["oRatio"]
            + 0.8 * parts["purityGap"]
        )
    else:
        parts = module_components(line)
        raw = 1.6 * parts["isCCC"] + 1.4 * parts["endedF"] + 0.8 * parts["driftRatio"]
    return round_score(min(cap, raw))


def mean_factors(tags: Sequence[ILFactorsTag]) -> Dict[str, float]:
    if not tags:
        return {name: 0.0 for name in FACTOR_NAMES}
    return {
        name: round_score(sum(getattr(tag, name) for tag in tags) / len(tags))
        for name in FACTOR_NAMES
    }


def factor_blend(factors: Mapping[str, float], weights: ILWeights) -> float:
    return round_score(sum(getattr(weights, name) * factors.get(name, 0.0) for name in FACTOR_NAMES))


def il_band(il: float, bands: BandPolicy) -> str:
    if il < bands.il_low:
        return "low"
    if il > bands.il_high:
        return "high"
    return "medium"


def sif_band(score: float, bands: BandPolicy) -> str:
    if score >= bands.sif_high:
        return "high"
    if score >= bands.sif_medium:
        return "medium"
    return "low"


def combined_label(score: float, band: str, bands: BandPolicy) -> str:
    if score >= bands.sif_high and band in ("medium", "high"):
        return "Match"
    if score < bands.sif_medium and band in ("medium", "high"):
        return "Outside-only"
    if score >= bands.sif_medium and band == "low":
        return "Inside-only"
    return "Low-both"


def compute_il(
    lines: Mapping[str, LineResult],
    factors: Mapping[str, List[ILFactorsTag]],
    candidate_families: Iterable[str],
    settings: Settings,
) -> Dict[str, ILBreakdown]:
    candidates = list(candidate_families)
    prize_faces = set()
    for family in candidates:
        line = lines.get(family)
        if line is not None and line.face is not None:
            prize_faces.add(PRIZE_MAP[line.face])

    breakdowns: Dict[str, ILBreakdown] = {face: ILBreakdown(face=face) for face in FACE_KEYS}
    for line in lines.values():
        if not line.complete or line.face is None:
            continue
        entry = breakdowns[line.face]
        entry.kind = line.kind
        if line.kind == "evidence":
            entry.components = evidence_components(line)
            entry.f_touch = int(entry.components["fTouch"])
        else:
            entry.components = module_components(line)
            entry.ended_f = int(entry.components["endedF"])
            entry.f_touch = entry.ended_f
        entry.base = structural_base(line, settings.il_base_cap)

    for face, entry in breakdowns.items():
        if family_of(face) in candidates:
            entry.sibling_bonus = settings.sibling_bonus
        if face in prize_faces:
            entry.prize_bonus = settings.prize_bonus
        entry.factors = mean_factors(factors.get(face, []))
        entry.factor_blend = factor_blend(entry.factors, settings.il_weights)
        total = entry.base + entry.sibling_bonus + entry.prize_bonus + entry.factor_blend
        entry.il = round_score(min(settings.il_cap, total))
        entry.band = il_band(entry.il, settings.bands)
    log.debug("IL_COMPUTED candidates=%s prize_faces=%s", candidates, sorted(prize_faces))
    return breakdowns


def classify_faces(
    scores: Mapping[str, FaceScore],
    breakdowns: Mapping[str, ILBreakdown],
    bands: BandPolicy,
) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    for face in FACE_KEYS:
        score = scores[face].score
        band = breakdowns[face].band
        out[face] = {
            "face_score": score,
            "sif_band": sif_band(score, bands),
            "il": breakdowns[face].il,
            "il_band": band,
            "label": combined_label(score, band, bands),
        }
    return out
