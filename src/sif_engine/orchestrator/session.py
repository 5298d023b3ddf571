from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..anchor.selector import BUILDING, AnchorSelector
from ..bank.loader import QuestionBank
from ..canon import FAMILIES, family_of, require_face, require_family
from ..config import Settings
from ..errors import InvalidSelection, StateError, ValidationError
from ..ledger.answer_log import AnswerEvent, AnswerLog
from ..ledger.counters import LedgerState, fold_ledger
from ..prize.mirror import friction, judge
from ..schemas import CollisionRecord, FaceRef, SeverityFinding, SIFResult
from ..scoring.face_score import FaceScore, face_scores
from ..scoring.installed import ILBreakdown, classify_faces, compute_il
from ..scoring.purity import LineResult, score_lines
from ..severity.probe import SeverityResolver
from ..shortlist.resolver import ShortlistFormation, build_shortlist, resolve_secondary
from ..verdict.lines import LinePath, build_line_paths
from .extract import build_extract

log = logging.getLogger(__name__)


def _face_ref(face: str) -> FaceRef:
    return FaceRef(family=family_of(face), face=face)


class SIFSession:
    """One quiz session: answer log in, SIF result out.

    Every derived view (counters, line paths, verdicts) is a fold over the
    answer log, so undo is truncate-and-refold.
    """

    def __init__(
        self,
        bank: QuestionBank,
        settings: Optional[Settings] = None,
        severity: Optional[SeverityResolver] = None,
    ) -> None:
        self.bank = bank
        self.settings = settings or Settings()
        self.severity_resolver = severity or SeverityResolver(
            monitor_days=self.settings.deep_f_monitor_days
        )
        self.reset()

    # lifecycle

    def reset(self) -> None:
        self.answer_log = AnswerLog()
        self.primary_lines: Tuple[str, ...] = ()
        self.started = False
        self.finalized = False
        self.anchor_selector = AnchorSelector()
        self.installed: Optional[str] = None
        self.secondary: Optional[str] = None
        self.collision: Optional[CollisionRecord] = None
        self.result: Optional[SIFResult] = None
        self._refold()
        log.debug("SESSION_RESET")

    def begin(self, primary_lines: Iterable[str]) -> None:
        if self.finalized:
            raise StateError("SESSION_FINALIZED")
        if self.started:
            raise StateError("ALREADY_STARTED")
        lines = [require_family(family) for family in primary_lines]
        if len(set(lines)) != len(lines):
            raise ValidationError("DUPLICATE_PRIMARY_LINE", ",".join(lines))
        if len(lines) > self.settings.max_primary_lines:
            raise ValidationError(
                "TOO_MANY_PRIMARY_LINES",
                f"{len(lines)} > {self.settings.max_primary_lines}",
            )
        self.primary_lines = tuple(family for family in FAMILIES if family in lines)
        self.started = True
        log.info("SESSION_STARTED primary=%s", ",".join(self.primary_lines))

    def _require_mutable(self) -> None:
        if self.finalized:
            raise StateError("SESSION_FINALIZED")
        if not self.started:
            raise StateError("SESSION_NOT_STARTED")

    def _refold(self) -> None:
        events = self.answer_log.events
        self._state: LedgerState = fold_ledger(events, self.bank)
        self._paths: Dict[str, LinePath] = build_line_paths(events, self.bank)
        self._lines: Dict[str, LineResult] = score_lines(self._paths)

    def _invalidate_anchor(self) -> None:
        self.anchor_selector.reset()
        self._invalidate_installed()

    def _invalidate_installed(self) -> None:
        self.installed = None
        self.secondary = None
        self.collision = None

    # answers

    def answer(self, question_id: str, family: str, key: str) -> AnswerEvent:
        self._require_mutable()
        question = self.bank.get(question_id)
        if question.family != family:
            raise ValidationError("FAMILY_MISMATCH", f"{question_id} belongs to {question.family}")
        if question.phase == "severity":
            raise ValidationError("SEVERITY_QUESTION", question_id)
        primary = family in self.primary_lines
        if (question.phase == "evidence") != primary:
            raise ValidationError(
                "PATH_MISMATCH",
                f"{family} is {'primary' if primary else 'not primary'}, got {question.phase}",
            )
        option = question.option(key)
        if option is None:
            raise InvalidSelection("UNKNOWN_OPTION", f"{question_id}/{key}")
        trial = copy.deepcopy(self._paths[family])
        trial.add(question.phase, question.slot, option.pick)

        event = self.answer_log.append("answer", question_id, family, key, option.pick)
        self._refold()
        self._invalidate_anchor()
        log.debug("ANSWER_RECORDED seq=%s question=%s pick=%s", event.seq, question_id, option.pick)
        return event

    def answer_severity(self, family: str, key: str) -> SeverityFinding:
        self._require_mutable()
        require_family(family)
        line = self._lines[family]
        if line.verdict != "F":
            raise StateError("SEVERITY_NOT_APPLICABLE", f"{family} verdict={line.verdict}")
        if family in self.severity_outcomes():
            raise StateError("SLOT_ALREADY_ANSWERED", f"{family} severity")
        question = self.bank.severity_question(family)
        if question is None:
            raise ValidationError("NO_SEVERITY_QUESTION", family)
        option = question.option(key)
        if option is None or option.probe is None:
            raise InvalidSelection("UNKNOWN_OPTION", f"{question.id}/{key}")
        self.answer_log.append("severity", question.id, family, key, option.pick)
        self._refold()
        return self.severity_resolver.resolve(family, line.verdict, option.probe)

    def go_back(self, steps: int = 1) -> int:
        self._require_mutable()
        if steps < 1:
            raise ValidationError("INVALID_STEPS", str(steps))
        if not len(self.answer_log):
            raise StateError("NOTHING_TO_UNDO")
        removed = self.answer_log.truncate(len(self.answer_log) - steps)
        self._refold()
        if any(event.kind == "answer" for event in removed):
            self._invalidate_anchor()
        log.info("ANSWERS_REVERTED count=%s head=%s", len(removed), len(self.answer_log))
        return len(removed)

    # read models

    @property
    def history(self) -> Tuple[AnswerEvent, ...]:
        return self.answer_log.events

    def counters(self) -> Dict[str, Dict[str, int]]:
        return self._state.counters.snapshot()

    def lines(self) -> Dict[str, LineResult]:
        return dict(self._lines)

    def paths(self) -> Dict[str, LinePath]:
        return copy.deepcopy(self._paths)

    def verdicts(self) -> Dict[str, Optional[str]]:
        return {family: line.verdict for family, line in self._lines.items()}

    def severity_outcomes(self) -> Dict[str, str]:
        outcomes: Dict[str, str] = {}
        for event in self.answer_log.events:
            if event.kind != "severity":
                continue
            option = self.bank.get(event.question_id).option(event.key)
            if option is not None and option.probe is not None:
                outcomes[event.family] = option.probe
        return outcomes

    def pending_severity(self) -> List[str]:
        answered = self.severity_outcomes()
        return [
            family
            for family in FAMILIES
            if self._lines[family].verdict == "F" and family not in answered
        ]

    def anchor(self) -> AnchorSelector:
        if self.anchor_selector.state == BUILDING:
            self.anchor_selector.build_candidates(self._lines)
        return self.anchor_selector

    @property
    def anchor_face(self) -> Optional[str]:
        selector = self.anchor()
        return selector.face if selector.resolved else None

    def select_anchor(self, family: str) -> str:
        self._require_mutable()
        candidate = self.anchor().select(family)
        self._invalidate_installed()
        return candidate.face

    def choose_archetype(self, archetype: str) -> str:
        self._require_mutable()
        face = self.anchor().choose_archetype(archetype)
        self._invalidate_installed()
        return face

    def face_scores(self) -> Dict[str, FaceScore]:
        return face_scores(self._state.counters)

    def il_breakdown(self) -> Dict[str, ILBreakdown]:
        candidates = [c.family for c in self.anchor().candidates]
        return compute_il(self._lines, self._state.factors, candidates, self.settings)

    def classification(self) -> Dict[str, Dict[str, Any]]:
        return classify_faces(self.face_scores(), self.il_breakdown(), self.settings.bands)

    def shortlist(self) -> ShortlistFormation:
        return build_shortlist(
            self.il_breakdown(),
            size=self.settings.shortlist_size,
            max_per_family=self.settings.max_faces_per_family,
        )

    def choose_installed(self, face: str) -> str:
        self._require_mutable()
        require_face(face)
        anchor_face = self.anchor_face
        if anchor_face is None:
            raise StateError("ANCHOR_NOT_RESOLVED", self.anchor_selector.state)
        secondary, collision = resolve_secondary(self.shortlist(), face, anchor_face)
        self.installed = face
        self.secondary = secondary
        self.collision = collision
        log.info("INSTALLED_CHOSEN face=%s secondary=%s", face, secondary)
        return secondary

    # terminal

    def finalize(self) -> SIFResult:
        self._require_mutable()
        if not len(self.answer_log):
            raise StateError("NO_ANSWERS")
        selector = self.anchor()
        if not selector.resolved or selector.face is None or selector.source is None:
            raise StateError("ANCHOR_NOT_RESOLVED", selector.fault or selector.state)
        if self.installed is None or self.secondary is None:
            raise StateError("INSTALLED_NOT_CHOSEN")

        outcomes = self.severity_outcomes()
        findings = [
            self.severity_resolver.resolve(family, self._lines[family].verdict, outcomes[family])
            for family in FAMILIES
            if family in outcomes
        ]
        counters = self._state.counters
        judgment = judge(selector.face, self.secondary, counters)
        self.result = SIFResult(
            primary=_face_ref(selector.face),
            secondary=_face_ref(self.secondary),
            prize=_face_ref(judgment.prize_face),
            prize_role=judgment.prize_role,
            aligned=judgment.aligned,
            badge=judgment.badge,
            anchor_source=selector.source,
            installed_choice=self.installed,
            collision=self.collision,
            friction=friction(counters),
            severity=findings,
            pending_severity=self.pending_severity(),
        )
        self.finalized = True
        log.info(
            "SESSION_FINALIZED primary=%s secondary=%s badge=%s",
            selector.face,
            self.secondary,
            judgment.badge,
        )
        return self.result

    def export_diagnostics(self) -> Dict[str, Any]:
        return build_extract(self)
