from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

QuestionId = Union[int, str]

# str for text/single choice, list for multiple choice,
# mapping for multi-part (part id -> text) and matching (item id -> option)
AnswerValue = Union[str, List[str], Dict[str, str], None]


class _Content(BaseModel):
    # quiz files use camelCase keys; accept either spelling, never mutate
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


# ------------------------------------------------------------
# Question models
# ------------------------------------------------------------
class Keywords(_Content):
    required: List[str] = []
    bonus: List[str] = []


class QuestionPart(_Content):
    part: QuestionId
    question: str = ""


class MatchingItem(_Content):
    id: QuestionId
    description: str = ""
    correct_answer: Optional[str] = Field(default=None, alias="correctAnswer")
    answer: Optional[str] = None

    @property
    def reference(self) -> Optional[str]:
        return self.correct_answer if self.correct_answer is not None else self.answer


class Question(_Content):
    id: QuestionId
    type: str
    question: str = ""
    points: int = 1
    hint: Optional[str] = None
    image: Optional[str] = None

    @field_validator("points", mode="before")
    @classmethod
    def _default_points(cls, v):
        # a missing, null or zero value counts as one point
        return v or 1


class ShortAnswerQuestion(Question):
    keywords: Optional[Keywords] = None
    answer: Optional[str] = None


class SingleChoiceQuestion(Question):
    options: List[str] = []
    correct_answer: Optional[str] = Field(default=None, alias="correctAnswer")


class MultipleChoiceQuestion(Question):
    options: List[str] = []
    correct_answers: List[str] = Field(default_factory=list, alias="correctAnswers")


class CalculationQuestion(Question):
    expected_answers: Optional[List[str]] = Field(default=None, alias="expectedAnswers")
    answer: Optional[str] = None

    @property
    def references(self) -> List[str]:
        if self.expected_answers:
            return list(self.expected_answers)
        return [self.answer] if self.answer is not None else []


class MultiPartQuestion(Question):
    parts: List[QuestionPart] = []
    expected_answers: Optional[Dict[str, List[str]]] = Field(
        default=None, alias="expectedAnswers"
    )


class MatchingQuestion(Question):
    items: List[MatchingItem] = []
    options: List[str] = []


class UnknownQuestion(Question):
    """Any question whose type this version does not know how to grade."""

    model_config = ConfigDict(extra="allow")


QUESTION_MODELS: Dict[str, type] = {
    "short_answer": ShortAnswerQuestion,
    "single_choice": SingleChoiceQuestion,
    "multiple_choice": MultipleChoiceQuestion,
    "calculation": CalculationQuestion,
    "multi_part": MultiPartQuestion,
    "matching": MatchingQuestion,
}


def parse_question(data: Union[Dict[str, Any], Question]) -> Question:
    """Build the question variant selected by the ``type`` tag."""
    if isinstance(data, Question):
        return data
    if not isinstance(data, dict):
        raise ValueError(f"question must be an object, got {type(data).__name__}")
    model = QUESTION_MODELS.get(str(data.get("type", "")), UnknownQuestion)
    return model.model_validate(data)


class Quiz(_Content):
    id: str
    title: str = ""
    description: Optional[str] = None
    questions: List[Question] = []

    @field_validator("questions", mode="before")
    @classmethod
    def _parse_questions(cls, v):
        return [parse_question(q) for q in v or []]

    def get_question(self, question_id: QuestionId) -> Optional[Question]:
        key = str(question_id)
        return next((q for q in self.questions if str(q.id) == key), None)


class QuizSummary(_Content):
    id: str
    title: str = ""
    description: str = ""
    total_questions: int = Field(default=0, alias="totalQuestions")
    estimated_time: Optional[str] = Field(default=None, alias="estimatedTime")
    difficulty: Optional[str] = None


# ------------------------------------------------------------
# Grading results
# ------------------------------------------------------------
class GradeKind(str, Enum):
    CORRECT = "correct"
    PARTIAL = "partial"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"


class GradeResult(BaseModel):
    kind: GradeKind
    message: str
    score: int = 0


class QuestionResult(BaseModel):
    question_id: QuestionId
    question: str
    user_answer: AnswerValue = None
    correct_answer: Optional[str] = None
    is_correct: bool
    points_earned: int
    total_points: int
    status: str                    # "correct", "incorrect" or "unanswered"


class QuizResult(BaseModel):
    quiz_id: Optional[str] = None
    quiz_title: Optional[str] = None
    score: int                     # percentage 0..100
    earned_points: int
    total_points: int
    correct_answers: int
    incorrect_answers: int
    unanswered: int
    time_spent: int                # seconds
    completed_at: datetime
    detailed_results: List[QuestionResult]


class ProgressRecord(BaseModel):
    completed: bool = True
    score: int = 0
    last_attempted: Optional[datetime] = None
    attempts: int = 0
    best_score: int = 0


# ------------------------------------------------------------
# Request models
# ------------------------------------------------------------
class StartQuizRequest(BaseModel):
    quiz_id: str


class SaveAnswerRequest(BaseModel):
    session_id: str
    question_id: QuestionId
    user_answer: AnswerValue = None
    part_id: Optional[QuestionId] = None  # multi-part part id or matching item id


class CheckAnswerRequest(BaseModel):
    session_id: str
    question_id: QuestionId
    user_answer: AnswerValue = None  # graded against the stored answer when omitted


class SessionRequest(BaseModel):
    session_id: str


class ReviewRequest(BaseModel):
    session_id: str
    question_id: QuestionId


# ------------------------------------------------------------
# Response models
# ------------------------------------------------------------
class SafeQuestion(BaseModel):
    id: QuestionId
    type: str
    type_label: str
    question: str
    points: int
    options: Optional[List[str]] = None
    parts: Optional[List[QuestionPart]] = None
    items: Optional[List[Dict[str, Any]]] = None
    hint: Optional[str] = None
    image: Optional[str] = None


class StartQuizResponse(BaseModel):
    status: str
    session_id: str
    quiz_id: str
    title: str
    questions: List[SafeQuestion]


class AnswerStatus(BaseModel):
    question_id: QuestionId
    status: str                    # "answered" or "unanswered"


class SaveAnswerResponse(BaseModel):
    status: str
    answered: int
    total: int
    navigation: List[AnswerStatus]


class CheckAnswerResponse(BaseModel):
    status: str
    result: GradeResult


class SubmitResponse(BaseModel):
    status: str
    result: QuizResult
    progress: ProgressRecord
    tier: str
    message: str
