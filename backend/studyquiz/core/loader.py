import json, logging, re
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from .schemas import Quiz, QuizSummary

logger = logging.getLogger("quiz.loader")

CATALOG_FILE = "quizzes.json"
_QUIZ_ID = re.compile(r"^[A-Za-z0-9_-]+$")


# ------------------------------------------------------------
# Errors
# ------------------------------------------------------------
class QuizContentError(Exception):
    pass


class QuizNotFoundError(QuizContentError):
    pass


class QuizFormatError(QuizContentError):
    pass


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def _read_json(path: Path):
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise QuizNotFoundError(f"No such quiz file: {path.name}")
    except json.JSONDecodeError as e:
        raise QuizFormatError(f"Invalid JSON in {path.name}: {e}")


# ------------------------------------------------------------
# Loaders
# ------------------------------------------------------------
def load_catalog(data_dir: Union[str, Path]) -> List[QuizSummary]:
    path = Path(data_dir) / CATALOG_FILE
    data = _read_json(path)
    entries = data.get("quizzes", []) if isinstance(data, dict) else []
    try:
        catalog = [QuizSummary.model_validate(e) for e in entries]
    except ValidationError as e:
        raise QuizFormatError(f"Invalid catalog entry in {path.name}: {e}")
    logger.debug(f"Loaded catalog with {len(catalog)} quizzes from {path}")
    return catalog


def load_quiz(data_dir: Union[str, Path], quiz_id: str) -> Quiz:
    """Read ``<quiz_id>.json`` from the data directory."""
    if not _QUIZ_ID.match(quiz_id or ""):
        raise QuizNotFoundError(f"Invalid quiz id: {quiz_id!r}")

    path = Path(data_dir) / f"{quiz_id}.json"
    data = _read_json(path)
    if isinstance(data, dict):
        data.setdefault("id", quiz_id)
    try:
        quiz = Quiz.model_validate(data)
    except ValidationError as e:
        raise QuizFormatError(f"Invalid quiz content in {path.name}: {e}")
    logger.info(f"Loaded quiz={quiz.id} with {len(quiz.questions)} questions")
    return quiz
