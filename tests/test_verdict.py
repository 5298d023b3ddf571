from __future__ import annotations

from typing import get_args

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sif_engine.canon import MODULE_SLOTS, PICKS, Pick, Slot, Verdict
from sif_engine.errors import StateError, ValidationError
from sif_engine.verdict.lines import LinePath
from sif_engine.verdict.table import (
    CF_DOMAIN,
    CO_DOMAIN,
    VERDICT_TABLE,
    evidence_verdict,
    module_verdict,
    table_rows,
)

picks = st.sampled_from(list(get_args(Pick)))


def test_module_table_exact_entries() -> None:
    assert table_rows() == [
        ("CCC", "C"),
        ("CCF", "O"),
        ("COC", "O"),
        ("COF", "F"),
        ("OCC", "O"),
        ("OCF", "F"),
        ("OOC", "O"),
        ("OOF", "F"),
    ]


def test_module_table_covers_full_domain() -> None:
    keys = {a + b + c for a in CO_DOMAIN for b in CO_DOMAIN for c in CF_DOMAIN}
    assert set(VERDICT_TABLE) == keys
    assert set(VERDICT_TABLE.values()) <= set(get_args(Verdict))


def test_pick_and_slot_aliases_match_canon() -> None:
    assert get_args(Pick) == PICKS
    assert get_args(Slot) == MODULE_SLOTS
    assert set(CO_DOMAIN) | set(CF_DOMAIN) == set(get_args(Pick))


@given(p1=picks, p2=picks)
def test_evidence_verdict_clean_iff_both_clean(p1: str, p2: str) -> None:
    verdict = evidence_verdict(p1, p2)
    assert verdict in ("C", "O")
    assert (verdict == "C") == (p1 == "C" and p2 == "C")


@given(
    co1=st.sampled_from(CO_DOMAIN),
    co2=st.sampled_from(CO_DOMAIN),
    cf=st.sampled_from(CF_DOMAIN),
)
def test_module_verdict_is_deterministic(co1: str, co2: str, cf: str) -> None:
    assert module_verdict(co1, co2, cf) == module_verdict(co1, co2, cf)
    assert module_verdict(co1, co2, cf) == VERDICT_TABLE[co1 + co2 + cf]


def test_module_verdict_rejects_offset_in_cf_slot() -> None:
    with pytest.raises(ValidationError) as excinfo:
        module_verdict("C", "C", "O")
    assert excinfo.value.failure_atom == "VERDICT_KEY_OUT_OF_DOMAIN"


def test_evidence_verdict_rejects_unknown_pick() -> None:
    with pytest.raises(ValidationError):
        evidence_verdict("C", "X")


def test_evidence_round_two_follows_first_pick() -> None:
    clean = LinePath("Control")
    clean.add("evidence", "CO1", "C")
    assert clean.expected_slot() == "CO2"

    wobble = LinePath("Control")
    wobble.add("evidence", "CO1", "O")
    assert wobble.expected_slot() == "CF"
    with pytest.raises(ValidationError) as excinfo:
        wobble.add("evidence", "CO2", "C")
    assert excinfo.value.failure_atom == "EVIDENCE_ROUND_MISMATCH"


def test_line_uses_exactly_one_path() -> None:
    path = LinePath("Pace")
    path.add("module", "CO1", "C")
    with pytest.raises(ValidationError) as excinfo:
        path.add("evidence", "CO1", "C")
    assert excinfo.value.failure_atom == "PATH_MISMATCH"


def test_refilling_a_slot_is_a_state_error() -> None:
    path = LinePath("Pace")
    path.add("module", "CO1", "C")
    with pytest.raises(StateError) as excinfo:
        path.add("module", "CO1", "O")
    assert excinfo.value.failure_atom == "SLOT_ALREADY_ANSWERED"
    assert path.picks == ["C"]


def test_module_slots_in_order() -> None:
    path = LinePath("Truth")
    with pytest.raises(ValidationError) as excinfo:
        path.add("module", "CF", "F")
    assert excinfo.value.failure_atom == "MODULE_SLOT_OUT_OF_ORDER"
    assert path.kind is None


def test_incomplete_line_has_no_verdict() -> None:
    path = LinePath("Truth")
    path.add("module", "CO1", "O")
    path.add("module", "CO2", "O")
    assert path.status == "incomplete"
    assert path.verdict() is None
    assert path.key is None
    path.add("module", "CF", "F")
    assert path.key == "OOF"
    assert path.verdict() == "F"


@pytest.mark.parametrize(
    "kind,steps,face",
    [
        ("evidence", [("CO1", "C"), ("CO2", "C")], "Control:Rebel"),
        ("evidence", [("CO1", "O"), ("CF", "F")], "Control:Sovereign"),
        ("evidence", [("CO1", "C"), ("CO2", "O")], "Control:Rebel"),
        ("evidence", [("CO1", "O"), ("CF", "C")], "Control:Sovereign"),
        ("module", [("CO1", "C"), ("CO2", "O"), ("CF", "C")], "Control:Rebel"),
        ("module", [("CO1", "O"), ("CO2", "O"), ("CF", "F")], "Control:Sovereign"),
    ],
)
def test_pointed_face(kind: str, steps: list, face: str) -> None:
    path = LinePath("Control")
    for slot, pick in steps:
        path.add(kind, slot, pick)
    assert path.pointed_face() == face
