from typing import Tuple

QUESTION_TYPE_LABELS = {
    "short_answer": "Short Answer",
    "multiple_choice": "Multiple Choice (Multiple Select)",
    "single_choice": "Single Choice",
    "calculation": "Calculation",
    "multi_part": "Multi-Part Question",
    "matching": "Matching",
}


def question_type_label(question_type: str) -> str:
    return QUESTION_TYPE_LABELS.get(question_type, "Unknown")


def encouragement_for(score: int) -> Tuple[str, str]:
    """Return (tier, message) for a final percentage score."""
    if score >= 90:
        return "success", "Excellent work! You have mastered these concepts!"
    if score >= 70:
        return "good", "Good job! You have a solid understanding with room for improvement."
    if score >= 50:
        return "needs-work", "Keep studying! You're on the right track but need more practice."
    return "needs-work", "Don't give up! Review the material and try again. You can do this!"
