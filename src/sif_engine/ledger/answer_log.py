from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from ..errors import ValidationError
from ..utils import read_jsonl, stable_hash, write_jsonl

GENESIS_HASH = ""


class AnswerEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    seq: int
    kind: Literal["answer", "severity"]
    question_id: str
    family: str
    key: str
    pick: Literal["C", "O", "F"]
    prev_hash: str
    hash: str


def _event_hash(body: Dict[str, Any]) -> str:
    return stable_hash(
        {
            "seq": body.get("seq"),
            "kind": body.get("kind"),
            "question_id": body.get("question_id"),
            "family": body.get("family"),
            "key": body.get("key"),
            "pick": body.get("pick"),
            "prev_hash": body.get("prev_hash"),
        }
    )


class AnswerLog:
    """Append-only, hash-chained record of every answer in a session.

    Going back never edits an entry: the log is truncated and everything
    downstream is re-folded from the surviving prefix.
    """

    def __init__(self) -> None:
        self._events: List[AnswerEvent] = []

    @property
    def events(self) -> Tuple[AnswerEvent, ...]:
        return tuple(self._events)

    @property
    def head_hash(self) -> str:
        return self._events[-1].hash if self._events else GENESIS_HASH

    def __len__(self) -> int:
        return len(self._events)

    def append(
        self,
        kind: Literal["answer", "severity"],
        question_id: str,
        family: str,
        key: str,
        pick: Literal["C", "O", "F"],
    ) -> AnswerEvent:
        body: Dict[str, Any] = {
            "seq": len(self._events),
            "kind": kind,
            "question_id": question_id,
            "family": family,
            "key": key,
            "pick": pick,
            "prev_hash": self.head_hash,
        }
        event = AnswerEvent(**body, hash=_event_hash(body))
        self._events.append(event)
        return event

    def truncate(self, length: int) -> List[AnswerEvent]:
        length = max(0, min(length, len(self._events)))
        removed = self._events[length:]
        self._events = self._events[:length]
        return removed

    def to_records(self) -> List[Dict[str, Any]]:
        return [event.model_dump() for event in self._events]

    def write(self, path: Path) -> None:
        write_jsonl(path, self.to_records())

    @staticmethod
    def verify_records(entries: Sequence[Dict[str, Any]]) -> Tuple[bool, str]:
        prev_hash = GENESIS_HASH
        for idx, entry in enumerate(entries):
            if entry.get("seq") != idx:
                return False, f"seq mismatch at {idx}"
            if entry.get("prev_hash") != prev_hash:
                return False, f"prev_hash mismatch at {idx}"
            if _event_hash(entry) != entry.get("hash", ""):
                return False, f"hash mismatch at {idx}"
            prev_hash = entry["hash"]
        return True, "ok"

    @staticmethod
    def verify_chain(path: Path) -> Tuple[bool, str]:
        return AnswerLog.verify_records(read_jsonl(path))

    @staticmethod
    def load(path: Path) -> "AnswerLog":
        entries = read_jsonl(path)
        ok, message = AnswerLog.verify_records(entries)
        if not ok:
            raise ValidationError("ANSWER_LOG_CORRUPT", message)
        log = AnswerLog()
        log._events = [AnswerEvent(**entry) for entry in entries]
        return log
