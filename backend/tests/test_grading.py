import pytest

from studyquiz.core.grading import grade_answer
from studyquiz.core.schemas import GradeKind, UnknownQuestion, parse_question


def q(**fields):
    fields.setdefault("id", 1)
    return parse_question(fields)


MC = dict(type="multiple_choice", options=["A. x", "B. y", "C. z"], correctAnswers=["A", "B"], points=10)


# ------------------------------------------------------------
# Presence and fallback
# ------------------------------------------------------------
@pytest.mark.parametrize("answer", [None, "", []])
def test_unanswered_short_circuits(answer):
    res = grade_answer(q(**MC), answer)
    assert res.kind is GradeKind.UNANSWERED
    assert res.score == 0


def test_unknown_type_falls_back_to_manual_review():
    question = q(type="essay", question="Discuss.", points=5)
    assert isinstance(question, UnknownQuestion)
    res = grade_answer(question, "Some text")
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 0
    assert "manual review" in res.message.lower()


def test_points_default_to_one():
    assert q(type="single_choice", correctAnswer="A").points == 1
    assert q(type="single_choice", correctAnswer="A", points=0).points == 1
    assert q(type="single_choice", correctAnswer="A", points=None).points == 1


# ------------------------------------------------------------
# Single and multiple choice
# ------------------------------------------------------------
def test_single_choice_exact_match():
    question = q(type="single_choice", options=["A. x", "B. y"], correctAnswer="B", points=3)
    assert grade_answer(question, "B").kind is GradeKind.CORRECT
    assert grade_answer(question, "B").score == 3
    wrong = grade_answer(question, "A")
    assert wrong.kind is GradeKind.INCORRECT
    assert wrong.score == 0


def test_multiple_choice_partial_credit():
    res = grade_answer(q(**MC), ["A"])
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 5


def test_multiple_choice_full_and_none():
    assert grade_answer(q(**MC), ["A", "B"]).kind is GradeKind.CORRECT
    assert grade_answer(q(**MC), ["A", "B"]).score == 10
    res = grade_answer(q(**MC), ["C"])
    assert res.kind is GradeKind.INCORRECT
    assert res.score == 0


def test_multiple_choice_selection_order_does_not_matter():
    assert grade_answer(q(**MC), ["B", "A"]) == grade_answer(q(**MC), ["A", "B"])
    assert grade_answer(q(**MC), ["C", "A"]) == grade_answer(q(**MC), ["A", "C"])


def test_multiple_choice_does_not_mutate_answer():
    answer = ["B", "A"]
    grade_answer(q(**MC), answer)
    assert answer == ["B", "A"]


def test_multiple_choice_wrong_shape_is_manual_review():
    res = grade_answer(q(**MC), "A")
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 0


# ------------------------------------------------------------
# Calculation
# ------------------------------------------------------------
def test_calculation_first_token_match():
    question = q(type="calculation", expectedAnswers=["100 Mbps"], points=2)
    res = grade_answer(question, "100mbps")
    assert res.kind is GradeKind.CORRECT
    assert res.score == 2


def test_calculation_tolerance():
    question = q(type="calculation", answer="100", points=2)
    assert grade_answer(question, "104").kind is GradeKind.CORRECT
    assert grade_answer(question, " 95 ").kind is GradeKind.CORRECT
    res = grade_answer(question, "110")
    assert res.kind is GradeKind.INCORRECT
    assert res.score == 0


def test_calculation_non_numeric_is_incorrect():
    question = q(type="calculation", answer="100", points=2)
    res = grade_answer(question, "about a hundred")
    assert res.kind is GradeKind.INCORRECT


def test_calculation_without_reference_needs_review():
    res = grade_answer(q(type="calculation", points=2), "42")
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 0


# ------------------------------------------------------------
# Short answer
# ------------------------------------------------------------
SHORT = dict(
    type="short_answer",
    points=4,
    keywords={"required": ["TCP", "handshake"], "bonus": ["SYN"]},
)


def test_short_answer_all_keywords():
    res = grade_answer(q(**SHORT), "TCP opens with a three-way handshake starting with SYN")
    assert res.kind is GradeKind.CORRECT
    assert res.score == 4
    assert "Good: mentioned TCP" in res.message


def test_short_answer_half_required_is_partial():
    res = grade_answer(q(**SHORT), "tcp is reliable")
    assert res.kind is GradeKind.PARTIAL
    # floor(4 * 1 / 2.5)
    assert res.score == 1
    assert "Missing: handshake" in res.message


def test_short_answer_no_required_is_incorrect():
    res = grade_answer(q(**SHORT), "UDP sends a SYN")
    assert res.kind is GradeKind.INCORRECT
    assert res.score == 0


def test_short_answer_bonus_only_keywords():
    question = q(type="short_answer", points=2, keywords={"required": [], "bonus": ["SYN"]})
    miss = grade_answer(question, "nothing relevant")
    assert miss.kind is GradeKind.INCORRECT
    assert miss.score == 0
    hit = grade_answer(question, "starts with a SYN")
    assert hit.kind is GradeKind.CORRECT
    assert hit.score == 2


def test_short_answer_without_keywords_needs_review():
    res = grade_answer(q(type="short_answer", answer="ref", points=3), "anything")
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 0
    assert "Manual review required" in res.message


# ------------------------------------------------------------
# Multi-part
# ------------------------------------------------------------
MULTI = dict(
    type="multi_part",
    points=4,
    parts=[{"part": "a", "question": "Network?"}, {"part": "b", "question": "Mask?"}],
    expectedAnswers={"a": ["192.168.1.0"], "b": ["255.255.255.0", "/24"]},
)


def test_multi_part_all_correct():
    res = grade_answer(q(**MULTI), {"a": "192.168.1.0", "b": "/24"})
    assert res.kind is GradeKind.CORRECT
    assert res.score == 4


def test_multi_part_counts_unanswered_parts():
    res = grade_answer(q(**MULTI), {"a": "192.168.1.0"})
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 2


def test_multi_part_below_half_is_incorrect():
    res = grade_answer(q(**MULTI), {"a": "10.0.0.0", "b": "255.0.0.0"})
    assert res.kind is GradeKind.INCORRECT
    assert res.score == 0


def test_multi_part_needs_mapping_and_expected_answers():
    assert grade_answer(q(**MULTI), "192.168.1.0").kind is GradeKind.PARTIAL
    no_expected = {k: v for k, v in MULTI.items() if k != "expectedAnswers"}
    res = grade_answer(q(**no_expected), {"a": "x"})
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 0


# ------------------------------------------------------------
# Matching
# ------------------------------------------------------------
MATCHING = dict(
    type="matching",
    points=10,
    items=[
        {"id": 1, "description": "Web", "correctAnswer": "HTTP"},
        {"id": 2, "description": "Names", "correctAnswer": "DNS"},
        {"id": 3, "description": "Mail", "answer": "SMTP"},
    ],
    options=["HTTP", "DNS", "SMTP"],
)


def test_matching_all_correct_gets_full_points():
    res = grade_answer(q(**MATCHING), {"1": "HTTP", "2": "DNS", "3": "SMTP"})
    assert res.kind is GradeKind.CORRECT
    assert res.score == 10


def test_matching_one_wrong_is_partial():
    res = grade_answer(q(**MATCHING), {"1": "HTTP", "2": "SMTP", "3": "SMTP"})
    assert res.kind is GradeKind.PARTIAL
    assert res.score == 6


def test_matching_two_wrong_is_incorrect():
    res = grade_answer(q(**MATCHING), {"1": "DNS", "2": "HTTP", "3": "SMTP"})
    assert res.kind is GradeKind.INCORRECT
    assert res.score == 0


# ------------------------------------------------------------
# Score bounds
# ------------------------------------------------------------
@pytest.mark.parametrize(
    "fields, answer",
    [
        (MC, ["A", "B", "C"]),
        (MC, ["A"]),
        (SHORT, "TCP handshake SYN SYN"),
        (MULTI, {"a": "192.168.1.0", "b": "x"}),
        (MATCHING, {"1": "HTTP"}),
        (dict(type="calculation", answer="7"), "7"),
    ],
)
def test_score_within_points(fields, answer):
    question = q(**fields)
    res = grade_answer(question, answer)
    assert 0 <= res.score <= question.points
