"""Whole-quiz scoring used when an attempt is submitted.

Final scoring only checks single and multiple choice questions. Every other
type that has an answer is counted correct for full points, so a submitted
score can differ from the per-question feedback given by ``grade_answer``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from .normalize import answer_for, has_answer, round_half_up
from .schemas import (
    AnswerValue,
    MultipleChoiceQuestion,
    Question,
    QuestionResult,
    QuizResult,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
)

logger = logging.getLogger("quiz.scoring")


def is_correct(question: Question, answer: AnswerValue) -> bool:
    if isinstance(question, MultipleChoiceQuestion):
        user = sorted(str(a) for a in answer) if isinstance(answer, list) else []
        return sorted(question.correct_answers) == user
    if isinstance(question, SingleChoiceQuestion):
        return answer == question.correct_answer
    # free-text, calculation, multi-part and matching answers earn full points here
    return True


def correct_answer_for(question: Question) -> Optional[str]:
    """Reference answer shown next to the user's answer on the results page."""
    if isinstance(question, MultipleChoiceQuestion):
        return ", ".join(question.correct_answers)
    if isinstance(question, SingleChoiceQuestion):
        return question.correct_answer
    if isinstance(question, ShortAnswerQuestion):
        return question.answer
    return "N/A"


def score_quiz(
    questions: Iterable[Question],
    answers: Mapping[Any, AnswerValue],
    elapsed_seconds: int,
    *,
    quiz_id: Optional[str] = None,
    quiz_title: Optional[str] = None,
    completed_at: Optional[datetime] = None,
) -> QuizResult:
    total_points = 0
    earned_points = 0
    correct_count = 0
    incorrect_count = 0
    unanswered = 0
    details: List[QuestionResult] = []

    for q in questions:
        total_points += q.points
        user_answer = answer_for(answers, q.id)

        if not has_answer(user_answer):
            unanswered += 1
            details.append(
                QuestionResult(
                    question_id=q.id,
                    question=q.question,
                    user_answer=None,
                    correct_answer=correct_answer_for(q),
                    is_correct=False,
                    points_earned=0,
                    total_points=q.points,
                    status="unanswered",
                )
            )
            continue

        ok = is_correct(q, user_answer)
        earned = q.points if ok else 0
        if ok:
            correct_count += 1
            earned_points += earned
        else:
            incorrect_count += 1

        details.append(
            QuestionResult(
                question_id=q.id,
                question=q.question,
                user_answer=user_answer,
                correct_answer=correct_answer_for(q),
                is_correct=ok,
                points_earned=earned,
                total_points=q.points,
                status="correct" if ok else "incorrect",
            )
        )

    score = round_half_up(earned_points / total_points * 100) if total_points > 0 else 0
    logger.info(
        f"Scored quiz={quiz_id} earned={earned_points}/{total_points} score={score}% "
        f"correct={correct_count} incorrect={incorrect_count} unanswered={unanswered}"
    )

    return QuizResult(
        quiz_id=quiz_id,
        quiz_title=quiz_title,
        score=score,
        earned_points=earned_points,
        total_points=total_points,
        correct_answers=correct_count,
        incorrect_answers=incorrect_count,
        unanswered=unanswered,
        time_spent=elapsed_seconds,
        completed_at=completed_at or datetime.now(timezone.utc),
        detailed_results=details,
    )
