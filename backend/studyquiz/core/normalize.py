"""Answer presence checks and text/number normalization used by the graders."""

import math
import re
from typing import Any, Mapping, Optional

from .schemas import AnswerValue, QuestionId

NUMERIC_TOLERANCE = 0.05

_NON_NUMERIC = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")


def has_answer(value: Any) -> bool:
    """An answer counts as given unless it is None, "" or an empty list."""
    if value is None or value == "":
        return False
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return False
    return True


def answer_for(answers: Mapping[Any, AnswerValue], question_id: QuestionId) -> AnswerValue:
    """Look an answer up by question id; JSON payloads stringify integer ids."""
    if question_id in answers:
        return answers[question_id]
    return answers.get(str(question_id))


def normalize_text(s: Any) -> str:
    return str(s).strip().lower()


def first_token(s: str) -> str:
    parts = normalize_text(s).split()
    return parts[0] if parts else ""


def matches_reference(user: str, reference: str) -> bool:
    """Exact match after normalizing, or the reference's first word appears in the answer."""
    user_norm = normalize_text(user)
    ref_norm = normalize_text(reference)
    if user_norm == ref_norm:
        return True
    token = first_token(ref_norm)
    return bool(token) and token in user_norm


def leading_number(s: Any) -> Optional[float]:
    """Drop everything but digits and dots, then read the leading number (None if there is none)."""
    cleaned = _NON_NUMERIC.sub("", str(s))
    m = _LEADING_NUMBER.match(cleaned)
    if not m:
        return None
    return float(m.group())


def within_tolerance(user: Any, reference: Any, tolerance: float = NUMERIC_TOLERANCE) -> bool:
    u = leading_number(user)
    r = leading_number(reference)
    if u is None or r is None:
        return False
    return abs(u - r) <= abs(r) * tolerance


def floor_ratio(points: int, numerator: int, denominator: int) -> int:
    """floor(points * numerator / denominator) in exact integer arithmetic."""
    if denominator <= 0:
        return 0
    return (points * numerator) // denominator


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))
