from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

import orjson
from blake3 import blake3

CANONICALIZATION = "orjson_sort_keys_utf8"
HASH_ALGORITHM = "blake3"
FLOAT_PLACES = 6


def canonical_dumps(data: Any) -> bytes:
    return orjson.dumps(data, option=orjson.OPT_SORT_KEYS)


def stable_hash(data: Any) -> str:
    return blake3(canonical_dumps(data)).hexdigest()


def round_score(value: float) -> float:
    return round(float(value), FLOAT_PLACES)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_json(path: Path, data: Any) -> None:
    ensure_dir(path.parent)
    path.write_bytes(canonical_dumps(data))


def read_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def write_jsonl(path: Path, rows: Iterable[Any]) -> None:
    ensure_dir(path.parent)
    with path.open("wb") as handle:
        for row in rows:
            handle.write(canonical_dumps(row) + b"\n")


def read_jsonl(path: Path) -> list[Any]:
    if not path.exists():
        return []
    lines = path.read_bytes().splitlines()
    return [orjson.loads(line) for line in lines if line]


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else value
        return [to_jsonable(item) for item in items]
    if isinstance(value, dict):
        return {str(key): to_jsonable(val) for key, val in value.items()}
    if isinstance(value, (int, str, bool)) or value is None:
        return value
    if isinstance(value, float):
        return round_score(value)
    if hasattr(value, "model_dump"):
        return to_jsonable(value.model_dump())
    return json.loads(json.dumps(value, default=str))
