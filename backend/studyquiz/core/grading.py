"""Per-question grading for instant feedback.

``grade_answer`` dispatches on the question variant. Every path returns a
``GradeResult``; configurations the engine cannot decide (no keywords, no
expected answers, unknown question types, answers of the wrong shape) come
back as ``partial`` with a score of 0 and a manual-review message.
"""

import logging
from typing import Callable, Dict, List

from .normalize import (
    answer_for,
    floor_ratio,
    has_answer,
    matches_reference,
    normalize_text,
    within_tolerance,
)
from .schemas import (
    AnswerValue,
    CalculationQuestion,
    GradeKind,
    GradeResult,
    MatchingQuestion,
    MultiPartQuestion,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
)

logger = logging.getLogger("quiz.grading")

MANUAL_REVIEW_MESSAGE = "This answer requires manual review."

SHORT_ANSWER_PASS = 0.8
SHORT_ANSWER_PARTIAL = 0.5
MULTI_PART_PARTIAL = 0.5
MATCHING_PARTIAL = 0.6


def manual_review(message: str = MANUAL_REVIEW_MESSAGE) -> GradeResult:
    return GradeResult(kind=GradeKind.PARTIAL, message=message, score=0)


def _correct(points: int, message: str = "Correct!") -> GradeResult:
    return GradeResult(kind=GradeKind.CORRECT, message=message, score=points)


def _incorrect(message: str) -> GradeResult:
    return GradeResult(kind=GradeKind.INCORRECT, message=message, score=0)


# ------------------------------------------------------------
# Type-specific graders
# ------------------------------------------------------------
def grade_single_choice(q: SingleChoiceQuestion, answer: AnswerValue) -> GradeResult:
    if answer == q.correct_answer:
        return _correct(q.points)
    return _incorrect(f"Incorrect. The correct answer is {q.correct_answer}.")


def grade_multiple_choice(q: MultipleChoiceQuestion, answer: AnswerValue) -> GradeResult:
    if not isinstance(answer, list):
        return manual_review()

    correct = sorted(q.correct_answers)
    user = sorted(str(a) for a in answer)
    if user == correct:
        return _correct(q.points)

    overlap = len(set(user) & set(correct))
    expected = ", ".join(correct)
    if overlap == 0:
        return _incorrect(f"Incorrect. The correct answers are {expected}.")
    score = floor_ratio(q.points, overlap, len(correct))
    return GradeResult(
        kind=GradeKind.PARTIAL,
        message=f"Partially correct: {overlap} of {len(correct)} correct options selected. "
        f"The correct answers are {expected}.",
        score=score,
    )


def grade_calculation(q: CalculationQuestion, answer: AnswerValue) -> GradeResult:
    references = q.references
    if not references:
        return manual_review()
    if not isinstance(answer, (str, int, float)):
        return manual_review()

    user = normalize_text(answer)
    if any(matches_reference(user, ref) for ref in references):
        return _correct(q.points)

    # only the first reference is used for the numeric fallback
    if within_tolerance(user, references[0]):
        return _correct(q.points, "Correct! (within tolerance)")

    return _incorrect(f"Incorrect. Expected: {references[0]}")


def grade_short_answer(q: ShortAnswerQuestion, answer: AnswerValue) -> GradeResult:
    kw = q.keywords
    if kw is None or (not kw.required and not kw.bonus):
        return manual_review("Short answer recorded. Manual review required.")
    if not isinstance(answer, str):
        return manual_review()

    text = answer.lower()
    feedback: List[str] = []
    matched_required = 0
    matched_bonus = 0

    for word in kw.required:
        if word.lower() in text:
            matched_required += 1
            feedback.append(f"Good: mentioned {word}")
        else:
            feedback.append(f"Missing: {word}")

    for word in kw.bonus:
        if word.lower() in text:
            matched_bonus += 1
            feedback.append(f"Bonus: mentioned {word}")

    # bonus-only keyword sets are judged on their bonus hits
    if kw.required:
        required_ratio = matched_required / len(kw.required)
    else:
        required_ratio = matched_bonus / len(kw.bonus)

    # required hits count 1, bonus hits 0.5; doubled to stay in integers
    raw2 = 2 * matched_required + matched_bonus
    max2 = 2 * len(kw.required) + len(kw.bonus)
    score = min(floor_ratio(q.points, raw2, max2), q.points)

    logger.debug(
        f"short_answer qid={q.id} required={matched_required}/{len(kw.required)} "
        f"bonus={matched_bonus}/{len(kw.bonus)} ratio={required_ratio:.2f} score={score}"
    )

    details = "\n".join(feedback)
    if required_ratio >= SHORT_ANSWER_PASS:
        return GradeResult(kind=GradeKind.CORRECT, message=f"Good answer!\n{details}", score=score)
    if required_ratio >= SHORT_ANSWER_PARTIAL:
        return GradeResult(kind=GradeKind.PARTIAL, message=f"Partially correct.\n{details}", score=score)
    return _incorrect(f"Needs improvement.\n{details}")


def grade_multi_part(q: MultiPartQuestion, answer: AnswerValue) -> GradeResult:
    expected = q.expected_answers
    if not expected or not isinstance(answer, dict):
        return manual_review("Multi-part answer recorded. Manual review required.")

    total_parts = len(expected)
    correct_parts = 0
    feedback: List[str] = []
    for part_id, acceptable in expected.items():
        user = answer.get(part_id)
        if not has_answer(user):
            feedback.append(f"Part {part_id}: not answered")
            continue
        if any(matches_reference(str(user), ref) for ref in acceptable):
            correct_parts += 1
            feedback.append(f"Part {part_id}: correct")
        else:
            feedback.append(f"Part {part_id}: incorrect")

    details = "\n".join(feedback)
    if correct_parts == total_parts:
        return _correct(q.points, f"All parts correct!\n{details}")
    if correct_parts / total_parts >= MULTI_PART_PARTIAL:
        return GradeResult(
            kind=GradeKind.PARTIAL,
            message=f"{correct_parts} of {total_parts} parts correct.\n{details}",
            score=floor_ratio(q.points, correct_parts, total_parts),
        )
    return _incorrect(f"{correct_parts} of {total_parts} parts correct.\n{details}")


def grade_matching(q: MatchingQuestion, answer: AnswerValue) -> GradeResult:
    if not q.items or not isinstance(answer, dict):
        return manual_review()

    total = len(q.items)
    correct = 0
    for item in q.items:
        user = answer_for(answer, item.id)
        if user is not None and user == item.reference:
            correct += 1

    if correct == total:
        return _correct(q.points, "All matches correct!")
    if correct / total >= MATCHING_PARTIAL:
        return GradeResult(
            kind=GradeKind.PARTIAL,
            message=f"{correct} of {total} matches correct.",
            score=floor_ratio(q.points, correct, total),
        )
    return _incorrect(f"{correct} of {total} matches correct.")


GRADERS: Dict[type, Callable[..., GradeResult]] = {
    SingleChoiceQuestion: grade_single_choice,
    MultipleChoiceQuestion: grade_multiple_choice,
    CalculationQuestion: grade_calculation,
    ShortAnswerQuestion: grade_short_answer,
    MultiPartQuestion: grade_multi_part,
    MatchingQuestion: grade_matching,
}


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------
def grade_answer(question: Question, answer: AnswerValue) -> GradeResult:
    """Grade one answer against its question for instant feedback."""
    if not has_answer(answer):
        return GradeResult(kind=GradeKind.UNANSWERED, message="No answer provided.", score=0)

    grader = GRADERS.get(type(question))
    if grader is None:
        logger.debug(f"No grader for type={question.type!r} qid={question.id}, manual review")
        return manual_review()

    result = grader(question, answer)
    logger.debug(f"Graded qid={question.id} type={question.type} -> {result.kind.value} {result.score}/{question.points}")
    return result
