from .bank.loader import QuestionBank, build_bank, load_bank
from .config import Settings, load_settings
from .errors import BankValidationError, InvalidSelection, SIFError, StateError, ValidationError
from .orchestrator.session import SIFSession
from .schemas import SIFResult

__version__ = "0.1.0"

__all__ = [
    "QuestionBank",
    "build_bank",
    "load_bank",
    "Settings",
    "load_settings",
    "SIFError",
    "ValidationError",
    "InvalidSelection",
    "StateError",
    "BankValidationError",
    "SIFSession",
    "SIFResult",
]
