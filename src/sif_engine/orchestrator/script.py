from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..anchor.selector import AWAITING_TIE_BREAK
from ..errors import StateError
from ..schemas import SIFResult
from ..utils import read_json
from .session import SIFSession

log = logging.getLogger(__name__)


class ScriptedAnswer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    question_id: str
    family: str
    key: str


class ScriptedSeverity(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    family: str
    key: str


class SessionScript(BaseModel):
    """A recorded quiz run: everything the presentation layer would feed in."""

    model_config = ConfigDict(extra="forbid")

    primary_lines: List[str] = Field(default_factory=list)
    answers: List[ScriptedAnswer] = Field(default_factory=list)
    severity: List[ScriptedSeverity] = Field(default_factory=list)
    tie_break: Optional[str] = None
    archetype: Optional[str] = None
    installed: Optional[str] = None


def load_script(path: Path) -> SessionScript:
    return SessionScript(**read_json(path))


def replay_script(session: SIFSession, script: SessionScript) -> SIFResult:
    session.begin(script.primary_lines)
    for item in script.answers:
        session.answer(item.question_id, item.family, item.key)
    for item in script.severity:
        session.answer_severity(item.family, item.key)

    selector = session.anchor()
    if selector.state == AWAITING_TIE_BREAK:
        if script.tie_break is None:
            raise StateError(
                "TIE_BREAK_REQUIRED",
                ",".join(c.family for c in selector.candidates),
            )
        session.select_anchor(script.tie_break)
    if script.archetype is not None:
        session.choose_archetype(script.archetype)
    if script.installed is None:
        raise StateError("INSTALLED_NOT_CHOSEN", "script has no installed choice")
    session.choose_installed(script.installed)
    log.debug("SCRIPT_REPLAYED answers=%s severity=%s", len(script.answers), len(script.severity))
    return session.finalize()
