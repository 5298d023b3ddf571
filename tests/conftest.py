from __future__ import annotations

import copy
import os
from typing import Any, Dict, List

import pytest

from sif_engine.bank.loader import QuestionBank, build_bank
from sif_engine.canon import FAMILIES, FOREIGN_CREEP, faces_of
from sif_engine.config import Settings
from sif_engine.orchestrator.session import SIFSession
from sif_engine.scoring.purity import LineResult, score_lines
from sif_engine.verdict.lines import LinePath, empty_paths


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    _ = config
    run_slow = os.getenv("RUN_SLOW_TESTS", "")
    if str(run_slow).strip().lower() in {"1", "true", "yes"}:
        return
    skip_slow = pytest.mark.skip(reason="set RUN_SLOW_TESTS=1 to run slow tests")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def foreign_face(family: str) -> str:
    return faces_of(FOREIGN_CREEP[family])[1]


def _option(family: str, key: str, pick: str) -> Dict[str, Any]:
    if pick == "C":
        effects = {"famC": [family], "faceC": [faces_of(family)[0]]}
    else:
        effects = {f"fam{pick}": [family], f"face{pick}": [foreign_face(family)]}
    return {"key": key, "label": f"{family} {key}", "pick": pick, "effects": effects}


def _line_question(family: str, phase: str, slot: str) -> Dict[str, Any]:
    other = "F" if slot == "CF" else "O"
    prefix = "ev" if phase == "evidence" else "mod"
    return {
        "id": f"{prefix}-{family.lower()}-{slot.lower()}",
        "family": family,
        "phase": phase,
        "slot": slot,
        "prompt": f"{family} {slot}",
        "options": [_option(family, "C", "C"), _option(family, other, other)],
    }


def _severity_question(family: str) -> Dict[str, Any]:
    return {
        "id": f"sev-{family.lower()}",
        "family": family,
        "phase": "severity",
        "prompt": f"{family} under pressure",
        "options": [
            {"key": "continue", "pick": "F", "probe": "continue"},
            {"key": "collapse", "pick": "F", "probe": "collapse"},
        ],
    }


def make_bank_data() -> List[Dict[str, Any]]:
    questions: List[Dict[str, Any]] = []
    for family in FAMILIES:
        for phase in ("evidence", "module"):
            for slot in ("CO1", "CO2", "CF"):
                questions.append(_line_question(family, phase, slot))
        questions.append(_severity_question(family))
    return questions


def qid(family: str, phase: str, slot: str) -> str:
    prefix = "ev" if phase == "evidence" else "mod"
    return f"{prefix}-{family.lower()}-{slot.lower()}"


def answer_module(session: SIFSession, family: str, picks: str) -> None:
    for slot, pick in zip(("CO1", "CO2", "CF"), picks):
        session.answer(qid(family, "module", slot), family, pick)


def answer_evidence(session: SIFSession, family: str, picks: str) -> None:
    first, second = picks
    session.answer(qid(family, "evidence", "CO1"), family, first)
    round_two = "CF" if first == "O" else "CO2"
    session.answer(qid(family, "evidence", round_two), family, second)


def make_lines(**answers: str) -> Dict[str, LineResult]:
    """Build scored lines from answers like Control="evidence:CC" or Pace="module:COF"."""
    paths: Dict[str, LinePath] = empty_paths()
    for family, answer in answers.items():
        kind, picks = answer.split(":")
        path = paths[family]
        if kind == "evidence":
            path.add("evidence", "CO1", picks[0])
            path.add("evidence", "CF" if picks[0] == "O" else "CO2", picks[1])
        else:
            for slot, pick in zip(("CO1", "CO2", "CF"), picks):
                path.add("module", slot, pick)
    return score_lines(paths)


@pytest.fixture
def bank_data() -> List[Dict[str, Any]]:
    return copy.deepcopy(make_bank_data())


@pytest.fixture
def bank(bank_data: List[Dict[str, Any]]) -> QuestionBank:
    return build_bank(bank_data)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def session(bank: QuestionBank, settings: Settings) -> SIFSession:
    return SIFSession(bank, settings)
