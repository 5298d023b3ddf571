from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ..canon import FACE_KEYS, family_of
from ..ledger.counters import SIFCounters
from ..utils import round_score

NEUTRAL_SI = 0.5
II_CAP = 3
NI_WEIGHT = 0.5
SI_WEIGHT = 0.5
II_WEIGHT = 0.1


@dataclass(frozen=True)
class FaceScore:
    face: str
    ni: float
    si: float
    ii: int
    score: float


def family_si(counters: SIFCounters, family: str) -> float:
    clean = counters.family("C", family)
    offset = counters.family("O", family)
    exposure = clean + offset
    if exposure == 0:
        return NEUTRAL_SI
    return round_score(clean / exposure)


def family_ii(counters: SIFCounters, family: str) -> int:
    return min(counters.family("F", family) + counters.sevF.get(family, 0), II_CAP)


def face_scores(counters: SIFCounters) -> Dict[str, FaceScore]:
    raw = {face: max(0, counters.face("C", face) - counters.face("O", face)) for face in FACE_KEYS}
    peak = max(raw.values()) if raw else 0
    scores: Dict[str, FaceScore] = {}
    for face in FACE_KEYS:
        family = family_of(face)
        ni = round_score(raw[face] / peak) if peak > 0 else 0.0
        si = family_si(counters, family)
        ii = family_ii(counters, family)
        score = round_score(NI_WEIGHT * ni + SI_WEIGHT * si - II_WEIGHT * ii)
        scores[face] = FaceScore(face=face, ni=ni, si=si, ii=ii, score=score)
    return scores
