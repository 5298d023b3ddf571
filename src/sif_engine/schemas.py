from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field

from .utils import CANONICALIZATION, HASH_ALGORITHM, stable_hash

Badge = Literal["Aligned", "Installed from outside", "Not yet aligned"]
AnchorSource = Literal["AutoAnchor", "TieBreak"]


class HashableModel(BaseModel):
    schema_version: str = "v1"
    canonicalization: str = CANONICALIZATION
    hash_algorithm: str = HASH_ALGORITHM
    hash_inputs: List[str] = Field(default_factory=list)

    def hash_payload(self) -> Dict[str, Any]:
        data = self.model_dump()
        keys = self.hash_inputs or [key for key in data.keys() if key != "hash_inputs"]
        return {key: data[key] for key in keys if key in data}

    def stable_hash(self) -> str:
        return stable_hash(self.hash_payload())


class FaceRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    family: str
    face: str


class CollisionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    anchor_face: str
    installed_face: str
    downgraded_to: str


class SeverityFinding(BaseModel):
    model_config = ConfigDict(frozen=True)

    family: str
    outcome: Literal["continue", "collapse"]
    resolved: Literal["Light F", "Deep F"]
    action: str
    monitor_days: Optional[int] = None
    creeping_in: str
    creep_source: str = "static"


class SIFResult(HashableModel):
    model_config = ConfigDict(frozen=True)

    primary: FaceRef
    secondary: FaceRef
    prize: FaceRef
    prize_role: str
    aligned: bool
    badge: Badge
    anchor_source: AnchorSource
    installed_choice: str
    collision: Optional[CollisionRecord] = None
    friction: Dict[str, int] = Field(default_factory=dict)
    severity: List[SeverityFinding] = Field(default_factory=list)
    pending_severity: List[str] = Field(default_factory=list)


class InvariantReport(BaseModel):
    verdict: Literal["PASS", "FAIL"]
    failure_atoms: List[str] = Field(default_factory=list)
    samples: int = 0
    skipped: int = 0
    seed: int = 0
    cost: Dict[str, int] = Field(default_factory=dict)


def export_schemas(output_dir: str) -> None:
    from pathlib import Path

    from .bank.models import Question
    from .ledger.answer_log import AnswerEvent

    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)
    models = [
        Question,
        AnswerEvent,
        SIFResult,
        SeverityFinding,
        CollisionRecord,
        InvariantReport,
    ]
    for model in models:
        schema = model.model_json_schema()  # type: ignore[attr-defined]
        path = output / f"{model.__name__}.schema.json"
        path.write_bytes(orjson.dumps(schema, option=orjson.OPT_SORT_KEYS))
