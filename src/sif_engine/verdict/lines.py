from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from ..canon import FAMILIES, MODULE_SLOTS, Pick, Slot, faces_of
from ..errors import StateError, ValidationError
from .table import evidence_verdict, module_verdict

if TYPE_CHECKING:
    from ..bank.loader import QuestionBank
    from ..ledger.answer_log import AnswerEvent

EVIDENCE_PICKS = 2


@dataclass
class LinePath:
    family: str
    kind: Optional[str] = None
    evidence: List[Pick] = field(default_factory=list)
    evidence_slots: List[Slot] = field(default_factory=list)
    module: Dict[Slot, Pick] = field(default_factory=dict)

    def expected_slot(self, kind: Optional[str] = None) -> Optional[Slot]:
        kind = kind or self.kind
        if kind == "evidence":
            if not self.evidence:
                return "CO1"
            if len(self.evidence) == 1:
                return "CF" if self.evidence[0] == "O" else "CO2"
            return None
        if kind == "module":
            for slot in MODULE_SLOTS:
                if slot not in self.module:
                    return slot
            return None
        return "CO1"

    def add(self, phase: str, slot: Optional[Slot], pick: Pick) -> None:
        if phase not in ("evidence", "module"):
            raise ValidationError("NOT_A_LINE_QUESTION", phase)
        if self.kind is not None and self.kind != phase:
            raise ValidationError(
                "PATH_MISMATCH", f"{self.family} is on the {self.kind} path, got {phase}"
            )
        filled = self.evidence_slots if phase == "evidence" else list(self.module)
        if slot in filled:
            raise StateError("SLOT_ALREADY_ANSWERED", f"{self.family} {slot}")
        if self.complete:
            raise StateError("LINE_COMPLETE", self.family)
        expected = self.expected_slot(phase)
        if slot != expected:
            atom = "EVIDENCE_ROUND_MISMATCH" if phase == "evidence" else "MODULE_SLOT_OUT_OF_ORDER"
            raise ValidationError(atom, f"{self.family} expected {expected}, got {slot}")
        self.kind = phase
        if phase == "evidence":
            self.evidence.append(pick)
            self.evidence_slots.append(slot)
        else:
            self.module[slot] = pick

    @property
    def picks(self) -> List[str]:
        if self.kind == "evidence":
            return list(self.evidence)
        return [self.module[slot] for slot in MODULE_SLOTS if slot in self.module]

    @property
    def complete(self) -> bool:
        if self.kind == "evidence":
            return len(self.evidence) == EVIDENCE_PICKS
        if self.kind == "module":
            return all(slot in self.module for slot in MODULE_SLOTS)
        return False

    @property
    def status(self) -> str:
        if self.kind is None:
            return "unanswered"
        return "complete" if self.complete else "incomplete"

    @property
    def key(self) -> Optional[str]:
        return "".join(self.picks) if self.complete else None

    def verdict(self) -> Optional[str]:
        if not self.complete:
            return None
        if self.kind == "evidence":
            return evidence_verdict(self.evidence[0], self.evidence[1])
        return module_verdict(self.module["CO1"], self.module["CO2"], self.module["CF"])

    def pointed_face(self) -> Optional[str]:
        picks = self.picks
        if not picks:
            return None
        first, second = faces_of(self.family)
        c_count = picks.count("C")
        o_count = picks.count("O")
        if c_count > o_count:
            return first
        if o_count > c_count:
            return second
        return second if picks[0] == "O" else first


def empty_paths() -> Dict[str, LinePath]:
    return {family: LinePath(family=family) for family in FAMILIES}


def build_line_paths(events: Iterable["AnswerEvent"], bank: "QuestionBank") -> Dict[str, LinePath]:
    paths = empty_paths()
    for event in events:
        if event.kind != "answer":
            continue
        question = bank.get(event.question_id)
        paths[event.family].add(question.phase, question.slot, event.pick)
    return paths
