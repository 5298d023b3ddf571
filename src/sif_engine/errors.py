from __future__ import annotations

from typing import List, Optional


class SIFError(Exception):
    def __init__(self, failure_atom: str, detail: str = "") -> None:
        message = f"{failure_atom}: {detail}" if detail else failure_atom
        super().__init__(message)
        self.failure_atom = failure_atom
        self.detail = detail


class ValidationError(SIFError):
    """Malformed or out-of-domain input."""


class InvalidSelection(ValidationError):
    """A user selection that is not one of the offered options."""


class StateError(SIFError):
    """Operation attempted in a state that does not allow it."""


class BankValidationError(ValidationError):
    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None) -> None:
        super().__init__("BANK_INVALID", f"{len(errors)} error(s); first: {errors[0]}")
        self.errors = list(errors)
        self.warnings = list(warnings or [])
