from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from ..canon import FACE_KEYS, FAMILY_ARCHETYPES
from .models import Question, QuestionOption

SLOT_PICKS = {
    "CO1": {"C", "O"},
    "CO2": {"C", "O"},
    "CF": {"C", "F"},
}


@dataclass
class BankReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def extend(self, other: "BankReport") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


def _face_family(face: str) -> str:
    return face.split(":", 1)[0]


def _validate_effects(question: Question, option: QuestionOption, report: BankReport) -> None:
    where = f"{question.id}/{option.key}"
    effects = option.effects
    for bucket in ("famC", "famO", "famF", "sevF"):
        for family in getattr(effects, bucket):
            if family not in FAMILY_ARCHETYPES:
                report.errors.append(f"UNKNOWN_FAMILY {where} {bucket}={family}")
    for pick, faces in effects.face_buckets().items():
        if len(set(faces)) != len(faces):
            report.warnings.append(f"DUPLICATE_FACE_CREDIT {where} face{pick}")
        for face in faces:
            if face not in FACE_KEYS:
                report.errors.append(f"UNKNOWN_FACE {where} face{pick}={face}")
                continue
            if pick != option.pick:
                report.errors.append(
                    f"FACE_BUCKET_MISMATCH {where} pick={option.pick} face{pick}={face}"
                )
                continue
            same_family = _face_family(face) == question.family
            if pick == "C" and not same_family:
                report.errors.append(f"C_CREDITS_FOREIGN_FACE {where} {face}")
            if pick in {"O", "F"} and same_family:
                report.errors.append(f"{pick}_CREDITS_OWN_FACE {where} {face}")
    if question.phase != "severity" and not effects.families_for(option.pick):
        report.warnings.append(f"NO_FAMILY_EFFECT {where} fam{option.pick}")


def validate_question(question: Question) -> BankReport:
    report = BankReport()
    if question.family not in FAMILY_ARCHETYPES:
        report.errors.append(f"UNKNOWN_FAMILY {question.id} family={question.family}")
        return report
    if not question.options:
        report.errors.append(f"NO_OPTIONS {question.id}")
        return report
    keys = [option.key for option in question.options]
    if len(set(keys)) != len(keys):
        report.errors.append(f"DUPLICATE_OPTION_KEY {question.id}")

    if question.phase == "severity":
        if question.slot is not None:
            report.errors.append(f"SEVERITY_WITH_SLOT {question.id}")
        probes = set()
        for option in question.options:
            if option.pick != "F":
                report.errors.append(f"SEVERITY_PICK_NOT_F {question.id}/{option.key}")
            if option.probe is None:
                report.errors.append(f"SEVERITY_PROBE_MISSING {question.id}/{option.key}")
            else:
                probes.add(option.probe)
        if probes and probes != {"continue", "collapse"}:
            report.errors.append(f"SEVERITY_PROBE_INCOMPLETE {question.id}")
    else:
        if question.slot is None:
            report.errors.append(f"SLOT_MISSING {question.id}")
            return report
        allowed = SLOT_PICKS[question.slot]
        for option in question.options:
            if option.pick not in allowed:
                report.errors.append(
                    f"PICK_OUT_OF_SLOT_DOMAIN {question.id}/{option.key} "
                    f"slot={question.slot} pick={option.pick}"
                )
            if option.probe is not None:
                report.errors.append(f"PROBE_OUTSIDE_SEVERITY {question.id}/{option.key}")

    for option in question.options:
        _validate_effects(question, option, report)
    return report


def validate_bank(questions: Iterable[Question]) -> BankReport:
    report = BankReport()
    seen: set[str] = set()
    for question in questions:
        if question.id in seen:
            report.errors.append(f"DUPLICATE_QUESTION_ID {question.id}")
        seen.add(question.id)
        report.extend(validate_question(question))
    return report
