from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from ..bank.models import Effects, ILFactorsTag
from ..canon import PICKS, Pick, require_face, require_family
from ..errors import ValidationError

if TYPE_CHECKING:
    from ..bank.loader import QuestionBank
    from .answer_log import AnswerEvent

COUNTER_NAMES = ("famC", "famO", "famF", "sevF", "faceC", "faceO", "faceF")


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _inc(table: Dict[str, int], key: str, by: int = 1) -> None:
    table[key] = table.get(key, 0) + by


@dataclass
class SIFCounters:
    famC: Dict[str, int] = field(default_factory=dict)
    famO: Dict[str, int] = field(default_factory=dict)
    famF: Dict[str, int] = field(default_factory=dict)
    sevF: Dict[str, int] = field(default_factory=dict)
    faceC: Dict[str, int] = field(default_factory=dict)
    faceO: Dict[str, int] = field(default_factory=dict)
    faceF: Dict[str, int] = field(default_factory=dict)

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {name: dict(getattr(self, name)) for name in COUNTER_NAMES}

    def family(self, bucket: str, family: str) -> int:
        return getattr(self, f"fam{bucket}").get(family, 0)

    def face(self, bucket: str, face: str) -> int:
        return getattr(self, f"face{bucket}").get(face, 0)


@dataclass
class LedgerState:
    counters: SIFCounters = field(default_factory=SIFCounters)
    factors: Dict[str, List[ILFactorsTag]] = field(default_factory=dict)


def record_effect(
    counters: SIFCounters,
    choice_family: str,
    pick: Pick,
    effects: Effects,
) -> List[str]:
    """Credit one choice; returns the faces that were credited."""
    require_family(choice_family)
    if pick not in PICKS:
        raise ValidationError("UNKNOWN_PICK", repr(pick))
    families = _dedupe([choice_family, *effects.families_for(pick)])
    for family in families:
        require_family(family)
    faces = _dedupe(effects.faces_for(pick))
    for face in faces:
        require_face(face)

    fam_table = getattr(counters, f"fam{pick}")
    for family in families:
        _inc(fam_table, family)
    face_table = getattr(counters, f"face{pick}")
    for face in faces:
        _inc(face_table, face)
    return faces


def record_severity(
    counters: SIFCounters,
    family: str,
    outcome: str,
    effects: Optional[Effects] = None,
) -> None:
    require_family(family)
    targets = _dedupe(effects.sevF if effects is not None else [])
    if outcome == "collapse" and family not in targets:
        targets.append(family)
    for target in targets:
        require_family(target)
    for target in targets:
        _inc(counters.sevF, target)


def fold_ledger(events: Iterable["AnswerEvent"], bank: "QuestionBank") -> LedgerState:
    state = LedgerState()
    for event in events:
        question = bank.get(event.question_id)
        option = question.option(event.key)
        if option is None:
            raise ValidationError("UNKNOWN_OPTION", f"{event.question_id}/{event.key}")
        if event.kind == "severity":
            record_severity(state.counters, event.family, option.probe or "", option.effects)
            continue
        credited = record_effect(state.counters, event.family, option.pick, option.effects)
        factors = option.il_factors()
        if factors is not None:
            for face in credited:
                state.factors.setdefault(face, []).append(factors)
    return state
