from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..canon import FOREIGN_CREEP, require_family
from ..errors import StateError, ValidationError
from ..schemas import SeverityFinding

log = logging.getLogger(__name__)

LIGHT_F = "Light F"
DEEP_F = "Deep F"
MONITOR_ACTION = "Track pattern; no install needed"


class SeverityResolver:
    """Classifies a failed line from its single probe answer.

    The creeping-in family comes from a per-family table supplied at
    construction; the default is the static canon table.
    """

    def __init__(
        self,
        creep_table: Optional[Mapping[str, str]] = None,
        monitor_days: int = 30,
        creep_source: str = "static",
    ) -> None:
        self.creep_table = dict(creep_table if creep_table is not None else FOREIGN_CREEP)
        self.monitor_days = monitor_days
        self.creep_source = creep_source

    def creeping_in(self, family: str) -> str:
        # TODO: weight by live famO/famF credits once banks tag cross-family spill on failed lines.
        require_family(family)
        creep = self.creep_table.get(family)
        if creep is None:
            raise ValidationError("NO_CREEP_ENTRY", family)
        return creep

    def resolve(self, family: str, verdict: Optional[str], outcome: str) -> SeverityFinding:
        require_family(family)
        if verdict != "F":
            raise StateError("SEVERITY_NOT_APPLICABLE", f"{family} verdict={verdict}")
        if outcome == "continue":
            resolved, action, days = LIGHT_F, MONITOR_ACTION, None
        elif outcome == "collapse":
            resolved = DEEP_F
            action = f"Install counter-routine; monitor {self.monitor_days} days"
            days = self.monitor_days
        else:
            raise ValidationError("UNKNOWN_PROBE_OUTCOME", repr(outcome))
        finding = SeverityFinding(
            family=family,
            outcome=outcome,
            resolved=resolved,
            action=action,
            monitor_days=days,
            creeping_in=self.creeping_in(family),
            creep_source=self.creep_source,
        )
        log.info("SEVERITY_RESOLVED line=%s resolved=%s creep=%s", family, resolved, finding.creeping_in)
        return finding
