import os, json, re, logging
from typing import Any, Dict

from openai import OpenAI

from .grading import manual_review
from .schemas import AnswerValue, GradeKind, GradeResult, Question

logger = logging.getLogger("quiz.review")

# ------------------------------------------------------------
# OpenAI setup
# ------------------------------------------------------------
def configure_openai(api_key: str | None = None) -> OpenAI:
    key = api_key or os.getenv("OPENAI_API_KEY", "")
    if not key:
        raise RuntimeError("OPENAI_API_KEY missing. Provide via env or param.")
    return OpenAI(api_key=key)


# ------------------------------------------------------------
# Reviewer system prompt
# ------------------------------------------------------------
REVIEWER_SYSTEM_PROMPT = (
    "You are a fair grader for a self-study quiz.\n"
    "You receive a question, its reference material (may be empty), the number of points "
    "it is worth and the student's answer.\n"
    "Rules:\n"
    "- 'correct' only if the answer covers every essential idea; award full points.\n"
    "- 'partial' if some essential ideas are present; award proportional points.\n"
    "- 'incorrect' if the answer is wrong or off-topic; award 0 points.\n"
    "- Never award more than the question's points.\n"
    "Output STRICT JSON only:\n"
    "{ \"kind\": \"correct\"|\"partial\"|\"incorrect\", \"score\": <int>, \"feedback\": \"short explanation\" }"
)


# ------------------------------------------------------------
# Safe JSON extraction
# ------------------------------------------------------------
def _safe_json(text: str) -> dict:
    """Try to extract/clean JSON from model output."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Strip common markdown fences
    cleaned = re.sub(r"^```(json)?|```$", "", text.strip(), flags=re.M)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    raise ValueError(f"Invalid JSON: {text[:200]}")


def _build_payload(question: Question, answer: AnswerValue) -> Dict[str, Any]:
    reference = question.model_dump(
        exclude={"id", "type", "question", "points", "hint", "image"}, by_alias=True
    )
    return {
        "type": question.type,
        "question": question.question,
        "points": question.points,
        "reference": reference,
        "student_answer": answer,
    }


def parse_review(raw: str, points: int) -> GradeResult:
    """Turn the model reply into a GradeResult with the score clamped to [0, points]."""
    try:
        data = _safe_json(raw)
        kind = GradeKind(str(data.get("kind", "")).lower())
        score = int(data.get("score", 0))
    except (ValueError, TypeError, AttributeError, OverflowError):
        logger.warning(f"Unusable reviewer reply: {raw[:200]!r}")
        return manual_review("Reviewer error, manual review required.")

    if kind is GradeKind.UNANSWERED:
        return manual_review("Reviewer error, manual review required.")
    if kind is GradeKind.CORRECT:
        score = points
    elif kind is GradeKind.INCORRECT:
        score = 0
    score = max(0, min(score, points))
    return GradeResult(kind=kind, message=str(data.get("feedback") or "No feedback provided"), score=score)


# ------------------------------------------------------------
# Main reviewer
# ------------------------------------------------------------
def review_with_llm(
    question: Question,
    answer: AnswerValue,
    api_key: str | None = None,
    model: str | None = None,
) -> GradeResult:
    """
    Ask an OpenAI chat model to grade an answer the rule-based engine
    leaves for manual review.
    """
    client = configure_openai(api_key)
    model = model or os.getenv("OPENAI_REVIEW_MODEL", "gpt-4.1-mini")

    resp = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": REVIEWER_SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(_build_payload(question, answer), ensure_ascii=False)},
        ],
    )

    raw = resp.choices[0].message.content or "{}"
    result = parse_review(raw, question.points)
    logger.info(f"LLM review qid={question.id} model={model} -> {result.kind.value} {result.score}/{question.points}")
    return result
