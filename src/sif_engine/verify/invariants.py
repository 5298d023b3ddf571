from __future__ import annotations

import logging
import time
from typing import Dict, List, Literal, Optional, Tuple

from hypothesis import given
from hypothesis import seed as hypo_seed
from hypothesis import settings as hypo_settings
from hypothesis import strategies as st

from ..anchor.selector import AWAITING_TIE_BREAK
from ..bank.loader import QuestionBank
from ..canon import FAMILIES
from ..config import Settings
from ..errors import SIFError
from ..orchestrator.session import SIFSession
from ..schemas import InvariantReport
from ..scoring.purity import EVIDENCE_BASE, PERFECT_EVIDENCE_PURITY
from ..verdict.table import CF_DOMAIN, CO_DOMAIN, VERDICT_TABLE

log = logging.getLogger(__name__)

LineDraw = Tuple[str, str, str]
Run = Tuple[List[str], Dict[str, LineDraw]]


def sampled_runs(count: int, seed_value: int, max_primary: int) -> List[Run]:
    draw = st.tuples(
        st.sampled_from(CO_DOMAIN),
        st.sampled_from(CO_DOMAIN),
        st.sampled_from(CF_DOMAIN),
    )
    strat = st.tuples(
        st.lists(st.sampled_from(FAMILIES), max_size=max_primary, unique=True),
        st.fixed_dictionaries({family: draw for family in FAMILIES}),
    )
    runs: List[Run] = []

    @hypo_settings(derandomize=True, max_examples=count, database=None)
    @hypo_seed(seed_value)
    @given(run=strat)
    def _collect(run: Run) -> None:
        primary, picks = run
        runs.append((list(primary), dict(picks)))

    _collect()
    return runs[:count]


def line_plan(primary: bool, draw: LineDraw) -> List[Tuple[str, str]]:
    co1, co2, cf = draw
    if not primary:
        return [("CO1", co1), ("CO2", co2), ("CF", cf)]
    if co1 == "O":
        return [("CO1", co1), ("CF", cf)]
    return [("CO1", co1), ("CO2", co2)]


def find_choice(
    bank: QuestionBank, family: str, phase: str, slot: str, pick: str
) -> Optional[Tuple[str, str]]:
    for question in bank.questions_for(family, phase, slot):
        for option in question.options:
            if option.pick == pick:
                return question.id, option.key
    return None


def _plan_run(bank: QuestionBank, run: Run) -> Optional[List[Tuple[str, str, str]]]:
    primary, picks = run
    steps: List[Tuple[str, str, str]] = []
    for family in FAMILIES:
        is_primary = family in primary
        phase = "evidence" if is_primary else "module"
        for slot, pick in line_plan(is_primary, picks[family]):
            choice = find_choice(bank, family, phase, slot, pick)
            if choice is None:
                return None
            steps.append((choice[0], family, choice[1]))
    return steps


def _check_lines(session: SIFSession) -> List[str]:
    atoms: List[str] = []
    for line in session.lines().values():
        if not line.complete or line.purity is None:
            atoms.append("line_incomplete")
            continue
        if line.kind == "evidence":
            if line.verdict not in ("C", "O"):
                atoms.append("evidence_verdict_out_of_domain")
            if not EVIDENCE_BASE <= line.purity <= PERFECT_EVIDENCE_PURITY:
                atoms.append("evidence_purity_out_of_bounds")
            if (line.purity == PERFECT_EVIDENCE_PURITY) != (line.picks == ["C", "C"]):
                atoms.append("perfect_purity_mismatch")
        elif line.key is None or VERDICT_TABLE.get(line.key) != line.verdict:
            atoms.append("module_verdict_mismatch")
    return atoms


def _check_run(
    bank: QuestionBank,
    settings: Settings,
    primary: List[str],
    steps: List[Tuple[str, str, str]],
) -> List[str]:
    session = SIFSession(bank, settings)
    session.begin(primary)
    for question_id, family, key in steps:
        session.answer(question_id, family, key)
    atoms = _check_lines(session)

    before = session.counters()
    session.go_back(1)
    session.answer(*steps[-1])
    if session.counters() != before:
        atoms.append("refold_drift")

    selector = session.anchor()
    if selector.state == AWAITING_TIE_BREAK:
        session.select_anchor(selector.candidates[0].family)
    elif not selector.resolved:
        atoms.append("no_anchor")
        return atoms
    shortlist = session.shortlist()
    session.choose_installed(shortlist.faces[0])
    result = session.finalize()
    if result.primary.face == result.secondary.face:
        atoms.append("secondary_equals_anchor")
    if result.aligned != (result.secondary.face == result.prize.face):
        atoms.append("alignment_mismatch")
    return atoms


def check_bank_invariants(
    bank: QuestionBank,
    settings: Optional[Settings] = None,
    samples: int = 25,
    seed_value: int = 0,
) -> InvariantReport:
    settings = settings or Settings()
    start = time.time_ns()
    failure_atoms: List[str] = []
    skipped = 0
    runs = sampled_runs(samples, seed_value, settings.max_primary_lines)
    for run in runs:
        steps = _plan_run(bank, run)
        if steps is None:
            skipped += 1
            continue
        try:
            atoms = _check_run(bank, settings, run[0], steps)
        except SIFError as exc:
            atoms = [f"error:{exc.failure_atom}"]
        for atom in atoms:
            if atom not in failure_atoms:
                failure_atoms.append(atom)
    verdict: Literal["PASS", "FAIL"] = "PASS" if not failure_atoms else "FAIL"
    log.info(
        "INVARIANTS_CHECKED samples=%s skipped=%s verdict=%s",
        len(runs),
        skipped,
        verdict,
    )
    return InvariantReport(
        verdict=verdict,
        failure_atoms=failure_atoms,
        samples=len(runs),
        skipped=skipped,
        seed=seed_value,
        cost={"ns": time.time_ns() - start},
    )
