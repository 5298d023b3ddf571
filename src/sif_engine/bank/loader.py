from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pydantic

from ..errors import BankValidationError, ValidationError
from ..utils import read_json, stable_hash
from .models import Question
from .validator import BankReport, validate_bank


class QuestionBank:
    def __init__(self, questions: Iterable[Question], report: Optional[BankReport] = None) -> None:
        self.questions: List[Question] = list(questions)
        self._by_id: Dict[str, Question] = {q.id: q for q in self.questions}
        self.report = report or BankReport()

    def get(self, question_id: str) -> Question:
        question = self._by_id.get(question_id)
        if question is None:
            raise ValidationError("UNKNOWN_QUESTION", repr(question_id))
        return question

    def severity_question(self, family: str) -> Optional[Question]:
        for question in self.questions:
            if question.phase == "severity" and question.family == family:
                return question
        return None

    def questions_for(self, family: str, phase: str, slot: Optional[str] = None) -> List[Question]:
        return [
            q
            for q in self.questions
            if q.family == family and q.phase == phase and (slot is None or q.slot == slot)
        ]

    def bank_hash(self) -> str:
        return stable_hash([question.model_dump() for question in self.questions])

    def __len__(self) -> int:
        return len(self.questions)


def parse_questions(raw: Iterable[Dict[str, Any]]) -> List[Question]:
    questions: List[Question] = []
    errors: List[str] = []
    for idx, item in enumerate(raw):
        try:
            questions.append(Question(**item))
        except pydantic.ValidationError as exc:
            ident = item.get("id", idx) if isinstance(item, dict) else idx
            for err in exc.errors():
                loc = ".".join(str(part) for part in err.get("loc", ()))
                errors.append(f"SCHEMA_ERROR {ident} {loc}: {err.get('msg', '')}")
    if errors:
        raise BankValidationError(errors)
    return questions


def build_bank(raw: Iterable[Dict[str, Any]]) -> QuestionBank:
    questions = parse_questions(raw)
    report = validate_bank(questions)
    if not report.ok:
        raise BankValidationError(report.errors, report.warnings)
    return QuestionBank(questions, report)


def load_bank(path: Path) -> QuestionBank:
    data = read_json(path)
    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise ValidationError("BANK_NOT_A_LIST", str(path))
    return build_bank(data)
