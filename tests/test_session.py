from __future__ import annotations

import orjson
import pytest
from conftest import answer_evidence, answer_module, qid

from sif_engine.bank.loader import QuestionBank
from sif_engine.errors import InvalidSelection, StateError, ValidationError
from sif_engine.orchestrator.session import SIFSession
from sif_engine.verify.invariants import check_bank_invariants


def test_clean_primary_line_auto_anchors(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")

    line = session.lines()["Control"]
    assert line.verdict == "C"
    assert line.purity == pytest.approx(2.6)
    assert session.verdicts()["Pace"] is None

    anchor = session.anchor()
    assert anchor.state == "Resolved"
    assert anchor.source == "AutoAnchor"
    assert session.anchor_face == "Control:Rebel"

    shortlist = session.shortlist()
    assert shortlist.faces == [
        "Control:Rebel",
        "Recognition:Spotlight",
        "Bonding:Partner",
        "Boundary:Equalizer",
    ]

    assert session.choose_installed("Control:Rebel") == "Recognition:Spotlight"
    result = session.finalize()
    assert result.primary.face == "Control:Rebel"
    assert result.secondary.face == "Recognition:Spotlight"
    assert result.prize.face == "Recognition:Spotlight"
    assert result.prize_role == "Authority"
    assert result.aligned
    assert result.badge == "Aligned"
    assert result.anchor_source == "AutoAnchor"
    assert result.collision is not None
    assert result.collision.downgraded_to == "Recognition:Spotlight"
    assert result.friction == {}


def test_module_tie_break_flow(session: SIFSession) -> None:
    session.begin([])
    answer_module(session, "Pace", "COC")
    answer_module(session, "Truth", "COC")

    anchor = session.anchor()
    assert anchor.state == "AwaitingTieBreak"
    assert [c.family for c in anchor.candidates] == ["Pace", "Truth"]
    with pytest.raises(InvalidSelection):
        session.select_anchor("Control")
    with pytest.raises(StateError) as excinfo:
        session.finalize()
    assert excinfo.value.failure_atom == "ANCHOR_NOT_RESOLVED"

    assert session.select_anchor("Truth") == "Truth:Seeker"
    assert session.shortlist().faces == [
        "Pace:Visionary",
        "Truth:Seeker",
        "Control:Sovereign",
        "Stress:Catalyst",
    ]
    with pytest.raises(StateError) as excinfo:
        session.finalize()
    assert excinfo.value.failure_atom == "INSTALLED_NOT_CHOSEN"

    session.choose_installed("Control:Sovereign")
    result = session.finalize()
    assert result.anchor_source == "TieBreak"
    assert result.aligned
    assert result.prize_role == "Decider"


def test_failed_line_runs_severity_probe(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    answer_module(session, "Boundary", "OOF")

    line = session.lines()["Boundary"]
    assert line.key == "OOF"
    assert line.verdict == "F"
    assert session.pending_severity() == ["Boundary"]

    with pytest.raises(StateError) as excinfo:
        session.answer_severity("Control", "collapse")
    assert excinfo.value.failure_atom == "SEVERITY_NOT_APPLICABLE"

    finding = session.answer_severity("Boundary", "collapse")
    assert finding.resolved == "Deep F"
    assert finding.creeping_in == "Bonding"
    assert session.counters()["sevF"] == {"Boundary": 1}
    with pytest.raises(StateError) as excinfo:
        session.answer_severity("Boundary", "continue")
    assert excinfo.value.failure_atom == "SLOT_ALREADY_ANSWERED"

    assert session.shortlist().faces == [
        "Boundary:Guardian",
        "Control:Rebel",
        "Recognition:Spotlight",
        "Bonding:Partner",
    ]
    session.choose_installed("Boundary:Guardian")
    result = session.finalize()
    assert not result.aligned
    assert result.badge == "Installed from outside"
    assert result.friction == {"Boundary": 1}
    assert [f.resolved for f in result.severity] == ["Deep F"]
    assert result.pending_severity == []


def test_unanswered_severity_is_reported_pending(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    answer_module(session, "Stress", "COF")
    session.choose_installed("Recognition:Spotlight")
    result = session.finalize()
    assert result.severity == []
    assert result.pending_severity == ["Stress"]


def test_go_back_refolds_from_log(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    assert session.anchor().resolved

    assert session.go_back() == 1
    assert session.lines()["Control"].status == "incomplete"
    assert session.counters()["famC"] == {"Control": 1}
    anchor = session.anchor()
    assert anchor.state == "Building"
    assert anchor.fault == "NO_ANCHOR_CANDIDATES"

    session.answer(qid("Control", "evidence", "CO2"), "Control", "O")
    line = session.lines()["Control"]
    assert line.verdict == "O"
    assert line.purity == pytest.approx(2.2)
    assert session.history[1].prev_hash == session.history[0].hash


def test_go_back_drops_severity_answer(session: SIFSession) -> None:
    session.begin([])
    answer_module(session, "Truth", "OOF")
    session.answer_severity("Truth", "collapse")
    session.go_back()
    assert session.counters()["sevF"] == {}
    assert session.pending_severity() == ["Truth"]


def test_session_guards(session: SIFSession) -> None:
    with pytest.raises(StateError) as excinfo:
        session.answer(qid("Pace", "module", "CO1"), "Pace", "C")
    assert excinfo.value.failure_atom == "SESSION_NOT_STARTED"

    with pytest.raises(ValidationError) as excinfo:
        session.begin(["Control", "Pace", "Truth", "Stress"])
    assert excinfo.value.failure_atom == "TOO_MANY_PRIMARY_LINES"

    session.begin(["Control"])
    with pytest.raises(StateError) as excinfo:
        session.begin(["Pace"])
    assert excinfo.value.failure_atom == "ALREADY_STARTED"

    with pytest.raises(StateError) as excinfo:
        session.finalize()
    assert excinfo.value.failure_atom == "NO_ANSWERS"

    cases = [
        (qid("Pace", "evidence", "CO1"), "Pace", "C", "PATH_MISMATCH"),
        (qid("Control", "module", "CO1"), "Control", "C", "PATH_MISMATCH"),
        (qid("Pace", "module", "CO1"), "Truth", "C", "FAMILY_MISMATCH"),
        ("sev-pace", "Pace", "collapse", "SEVERITY_QUESTION"),
    ]
    for question_id, family, key, atom in cases:
        with pytest.raises(ValidationError) as excinfo:
            session.answer(question_id, family, key)
        assert excinfo.value.failure_atom == atom

    with pytest.raises(InvalidSelection):
        session.answer(qid("Pace", "module", "CO1"), "Pace", "F")

    session.answer(qid("Pace", "module", "CO1"), "Pace", "C")
    with pytest.raises(StateError) as excinfo:
        session.answer(qid("Pace", "module", "CO1"), "Pace", "O")
    assert excinfo.value.failure_atom == "SLOT_ALREADY_ANSWERED"
    assert len(session.history) == 1


def test_finalized_session_is_frozen_until_reset(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    session.choose_installed("Recognition:Spotlight")
    session.finalize()
    with pytest.raises(StateError) as excinfo:
        session.answer(qid("Pace", "module", "CO1"), "Pace", "C")
    assert excinfo.value.failure_atom == "SESSION_FINALIZED"
    with pytest.raises(StateError):
        session.go_back()

    session.reset()
    assert len(session.history) == 0
    session.begin(["Pace"])
    assert session.primary_lines == ("Pace",)


def test_archetype_override_moves_prize(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    session.choose_installed("Recognition:Spotlight")
    assert session.choose_archetype("Sovereign") == "Control:Sovereign"
    assert session.installed is None

    session.choose_installed("Recognition:Spotlight")
    result = session.finalize()
    assert result.primary.face == "Control:Sovereign"
    assert result.prize.face == "Recognition:Diplomat"
    assert not result.aligned
    assert result.badge == "Not yet aligned"


def test_diagnostic_export(session: SIFSession) -> None:
    session.begin(["Control"])
    answer_evidence(session, "Control", "CC")
    answer_module(session, "Boundary", "OOF")
    session.choose_installed("Recognition:Spotlight")
    result = session.finalize()

    extract = session.export_diagnostics()
    orjson.dumps(extract)
    assert extract["config_fingerprint"] == session.settings.fingerprint()
    assert extract["answer_log"]["head_hash"] == session.answer_log.head_hash
    assert extract["lines"]["Control"]["purity"] == 2.6
    assert extract["lines"]["Boundary"]["needs_severity"] is True
    assert extract["lines"]["Pace"]["status"] == "unanswered"
    assert extract["il"]["Boundary:Guardian"]["base"] == pytest.approx(2.2)
    assert extract["anchor"]["state"] == "Resolved"
    assert extract["shortlist"]["faces"][0] == "Boundary:Guardian"
    assert extract["severity"]["pending"] == ["Boundary"]
    assert extract["result_hash"] == result.stable_hash()
    assert extract["classification"]["Control:Rebel"]["label"] in {
        "Match",
        "Outside-only",
        "Inside-only",
        "Low-both",
    }


def test_bank_invariants_hold_for_fixture_bank(bank: QuestionBank) -> None:
    report = check_bank_invariants(bank, samples=10, seed_value=3)
    assert report.verdict == "PASS", report.failure_atoms
    assert report.skipped == 0
    assert 0 < report.samples <= 10


@pytest.mark.slow
def test_bank_invariants_hold_across_many_seeds(bank: QuestionBank) -> None:
    for seed_value in range(5):
        report = check_bank_invariants(bank, samples=60, seed_value=seed_value)
        assert report.verdict == "PASS", (seed_value, report.failure_atoms)
