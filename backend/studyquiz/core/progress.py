"""Per-quiz progress: attempts, last and best score, dashboard figures."""

from typing import Dict, List, Mapping, Optional, Tuple

from .normalize import round_half_up
from .schemas import ProgressRecord, QuizResult


def record_attempt(previous: Optional[ProgressRecord], result: QuizResult) -> ProgressRecord:
    """Fold a submitted attempt into the stored progress for its quiz."""
    attempts = previous.attempts if previous else 0
    best = previous.best_score if previous else 0
    return ProgressRecord(
        completed=True,
        score=result.score,
        last_attempted=result.completed_at,
        attempts=attempts + 1,
        best_score=max(result.score, best),
    )


class ProgressStore:
    """In-memory progress keyed by quiz id."""

    def __init__(self) -> None:
        self._records: Dict[str, ProgressRecord] = {}

    def get(self, quiz_id: str) -> Optional[ProgressRecord]:
        return self._records.get(quiz_id)

    def record(self, result: QuizResult) -> ProgressRecord:
        quiz_id = result.quiz_id or ""
        updated = record_attempt(self._records.get(quiz_id), result)
        self._records[quiz_id] = updated
        return updated

    def all(self) -> Dict[str, ProgressRecord]:
        return dict(self._records)

    def clear(self) -> None:
        self._records.clear()


def dashboard_stats(progress: Mapping[str, ProgressRecord], total_quizzes: int) -> Dict[str, int]:
    completed = [p for p in progress.values() if p.completed]
    scores = [p.score for p in completed]
    average = round_half_up(sum(scores) / len(scores)) if scores else 0
    return {
        "total_quizzes": total_quizzes,
        "completed_quizzes": len(completed),
        "average_score": average,
    }


def recent_activity(
    progress: Mapping[str, ProgressRecord], limit: int = 5
) -> List[Tuple[str, ProgressRecord]]:
    attempted = [(qid, p) for qid, p in progress.items() if p.last_attempted is not None]
    attempted.sort(key=lambda item: item[1].last_attempted, reverse=True)
    return attempted[:limit]
