from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict

from ..canon import CANON_VERSION, FAMILIES, VERDICT_TABLE_VERSION
from ..utils import ensure_dir, to_jsonable, write_json

if TYPE_CHECKING:
    from .session import SIFSession

EXTRACT_VERSION = "sif-extract-v1"


def _line_entry(session: "SIFSession", family: str) -> Dict[str, Any]:
    path = session.paths()[family]
    line = session.lines()[family]
    entry = line.to_dict()
    entry["primary"] = family in session.primary_lines
    entry["module"] = dict(path.module)
    entry["evidence"] = list(path.evidence)
    entry["next_slot"] = None if path.complete else path.expected_slot()
    return entry


def build_extract(session: "SIFSession") -> Dict[str, Any]:
    anchor = session.anchor()
    shortlist = session.shortlist()
    breakdown = session.il_breakdown()
    scores = session.face_scores()
    secondary: Dict[str, Any] = {
        "installed_choice": session.installed,
        "face": session.secondary,
        "collision": session.collision.model_dump() if session.collision else None,
    }
    result = session.result
    extract: Dict[str, Any] = {
        "extract_version": EXTRACT_VERSION,
        "canon_version": CANON_VERSION,
        "verdict_table_version": VERDICT_TABLE_VERSION,
        "config_fingerprint": session.settings.fingerprint(),
        "bank_hash": session.bank.bank_hash(),
        "answer_log": {
            "length": len(session.answer_log),
            "head_hash": session.answer_log.head_hash,
        },
        "primary_lines": list(session.primary_lines),
        "lines": {family: _line_entry(session, family) for family in FAMILIES},
        "counters": session.counters(),
        "face_scores": {face: asdict(score) for face, score in scores.items()},
        "il": {face: entry.to_dict() for face, entry in breakdown.items()},
        "classification": session.classification(),
        "anchor": anchor.to_dict(),
        "shortlist": shortlist.to_dict(),
        "secondary": secondary,
        "severity": {
            "answered": session.severity_outcomes(),
            "pending": session.pending_severity(),
        },
        "result": result.model_dump() if result else None,
        "result_hash": result.stable_hash() if result else None,
        "finalized": session.finalized,
    }
    return to_jsonable(extract)


def write_extract(session: "SIFSession", out_dir: Path) -> Dict[str, Path]:
    ensure_dir(out_dir)
    extract_path = out_dir / "sif_extract.json"
    log_path = out_dir / "answer_log.jsonl"
    write_json(extract_path, build_extract(session))
    session.answer_log.write(log_path)
    return {"extract": extract_path, "answer_log": log_path}
