from __future__ import annotations

from typing import Dict, List, Tuple

from ..canon import Pick, Verdict
from ..errors import ValidationError

VERDICT_TABLE: Dict[str, Verdict] = {
    "CCC": "C",
    "CCF": "O",
    "COC": "O",
    "COF": "F",
    "OCC": "O",
    "OCF": "F",
    "OOC": "O",
    "OOF": "F",
}

CO_DOMAIN = ("C", "O")
CF_DOMAIN = ("C", "F")


def evidence_verdict(pick1: Pick, pick2: Pick) -> Verdict:
    # F reads as O here; only a perfect pair is clean.
    for pick in (pick1, pick2):
        if pick not in ("C", "O", "F"):
            raise ValidationError("UNKNOWN_PICK", repr(pick))
    return "C" if pick1 == "C" and pick2 == "C" else "O"


def module_key(co1: Pick, co2: Pick, cf: Pick) -> str:
    return f"{co1}{co2}{cf}"


def module_verdict(co1: Pick, co2: Pick, cf: Pick) -> Verdict:
    key = module_key(co1, co2, cf)
    verdict = VERDICT_TABLE.get(key)
    if verdict is None:
        raise ValidationError("VERDICT_KEY_OUT_OF_DOMAIN", key)
    return verdict


def table_rows() -> List[Tuple[str, Verdict]]:
    return [(key, VERDICT_TABLE[key]) for key in sorted(VERDICT_TABLE)]
