# backend/studyquiz/core/__init__.py
"""
Core package for the Study Quiz app.
Exposes the grading engine, final scoring and the question models.
"""

from .grading import grade_answer
from .scoring import score_quiz
from .session import QuizSession
from .schemas import (
    GradeKind,
    GradeResult,
    Question,
    Quiz,
    QuizResult,
    parse_question,
)

__all__ = [
    "grade_answer",
    "score_quiz",
    "QuizSession",
    "GradeKind",
    "GradeResult",
    "Question",
    "Quiz",
    "QuizResult",
    "parse_question",
]
