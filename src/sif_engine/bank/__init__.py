from .loader import QuestionBank, build_bank, load_bank, parse_questions
from .models import Effects, ILFactorsTag, Question, QuestionOption
from .validator import BankReport, validate_bank, validate_question

__all__ = [
    "QuestionBank",
    "build_bank",
    "load_bank",
    "parse_questions",
    "Effects",
    "ILFactorsTag",
    "Question",
    "QuestionOption",
    "BankReport",
    "validate_bank",
    "validate_question",
]
