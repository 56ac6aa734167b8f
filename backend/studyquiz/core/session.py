"""Answer bookkeeping for one quiz attempt."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .grading import grade_answer
from .normalize import has_answer, round_half_up
from .schemas import AnswerValue, GradeResult, Question, QuestionId, Quiz, QuizResult
from .scoring import score_quiz

logger = logging.getLogger("quiz.session")


class QuestionNotFoundError(KeyError):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QuizSession:
    """Holds the quiz being taken, the answers given so far and the start time."""

    def __init__(self, quiz: Quiz, started_at: Optional[datetime] = None):
        self.quiz = quiz
        self.started_at = started_at or _now()
        # keyed by str(question id); every question starts unanswered
        self.answers: Dict[str, AnswerValue] = {str(q.id): None for q in quiz.questions}

    def _question(self, question_id: QuestionId) -> Question:
        q = self.quiz.get_question(question_id)
        if q is None:
            raise QuestionNotFoundError(question_id)
        return q

    def answer(self, question_id: QuestionId) -> AnswerValue:
        self._question(question_id)
        return self.answers.get(str(question_id))

    def save_answer(self, question_id: QuestionId, value: AnswerValue) -> None:
        self._question(question_id)
        # an empty selection is stored as no answer
        if isinstance(value, list) and not value:
            value = None
        self.answers[str(question_id)] = value
        logger.debug(f"quiz={self.quiz.id} qid={question_id} saved answer={value!r}")

    def save_part_answer(self, question_id: QuestionId, key: QuestionId, value: str) -> None:
        """Store one multi-part part or one matching item inside the question's mapping."""
        self._question(question_id)
        current = self.answers.get(str(question_id))
        if not isinstance(current, dict):
            current = {}
        current = {**current, str(key): value}
        self.answers[str(question_id)] = current
        logger.debug(f"quiz={self.quiz.id} qid={question_id} part={key} saved answer={value!r}")

    def answer_statuses(self) -> List[Dict[str, object]]:
        return [
            {
                "question_id": q.id,
                "status": "answered" if has_answer(self.answers.get(str(q.id))) else "unanswered",
            }
            for q in self.quiz.questions
        ]

    def answered_count(self) -> int:
        return sum(1 for q in self.quiz.questions if has_answer(self.answers.get(str(q.id))))

    def grade(self, question_id: QuestionId) -> GradeResult:
        q = self._question(question_id)
        return grade_answer(q, self.answers.get(str(q.id)))

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        end = now or _now()
        return round_half_up((end - self.started_at).total_seconds())

    def submit(self, now: Optional[datetime] = None) -> QuizResult:
        end = now or _now()
        return score_quiz(
            self.quiz.questions,
            self.answers,
            self.elapsed_seconds(end),
            quiz_id=self.quiz.id,
            quiz_title=self.quiz.title,
            completed_at=end,
        )
