"""Grader for quiz attempts.

Scoring is pure and deterministic: no model calls, no storage. Every question
type has its own correctness rule; blanks, matches and orderings are
all-or-nothing, and essays are left for manual review.
"""
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from backend.schemas import (
    EssayQuestion,
    FillInBlankQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    QuestionResult,
    ScoreResult,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


def is_unanswered(answer: Any) -> bool:
    """None and empty strings/collections count as no answer; `False` is an answer."""
    if answer is None:
        return True
    if isinstance(answer, (str, list, tuple, dict)) and len(answer) == 0:
        return True
    return False


def _as_text(value: Any) -> Optional[str]:
    """Scalar answer as text, the form ids and accepted answers are stored in."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_text_map(answer: Mapping) -> Dict[Optional[str], Optional[str]]:
    return {_as_text(k): _as_text(v) for k, v in answer.items()}


def _normalize(text: str, case_sensitive: bool) -> str:
    return text if case_sensitive else text.lower()


def _matches_any(answer: Any, accepted: List[str], case_sensitive: bool) -> bool:
    answer = _as_text(answer)
    if not answer:
        return False
    return _normalize(answer, case_sensitive) in {_normalize(a, case_sensitive) for a in accepted}


def _check_multiple_choice(question: MultipleChoiceQuestion, answer: Any) -> bool:
    answer = _as_text(answer)
    return any(option.id == answer and option.is_correct for option in question.options)


def _check_true_false(question: TrueFalseQuestion, answer: Any) -> bool:
    return isinstance(answer, bool) and answer == question.correct_answer


def _check_short_answer(question: ShortAnswerQuestion, answer: Any) -> bool:
    return _matches_any(answer, question.correct_answers, question.case_sensitive)


def _check_fill_in_blank(question: FillInBlankQuestion, answer: Any) -> bool:
    if not question.blanks or not isinstance(answer, Mapping):
        return False
    answer = _as_text_map(answer)
    return all(
        _matches_any(answer.get(blank.id), blank.correct_answers, blank.case_sensitive)
        for blank in question.blanks
    )


def _check_matching(question: MatchingQuestion, answer: Any) -> bool:
    if not question.correct_matches or not isinstance(answer, Mapping):
        return False
    answer = _as_text_map(answer)
    return all(answer.get(m.left_id) == m.right_id for m in question.correct_matches)


def _check_ordering(question: OrderingQuestion, answer: Any) -> bool:
    if not question.items or not isinstance(answer, (list, tuple)):
        return False
    positions = {}
    for index, item_id in enumerate(answer):
        item_id = _as_text(item_id)
        if item_id is not None:
            positions.setdefault(item_id, index)
    return all(positions.get(item.id) == item.correct_order - 1 for item in question.items)


def is_answer_correct(question: Any, answer: Any) -> bool:
    """Whether `answer` fully satisfies `question`. Essays always return False."""
    if is_unanswered(answer):
        return False

    if isinstance(question, MultipleChoiceQuestion):
        return _check_multiple_choice(question, answer)
    if isinstance(question, TrueFalseQuestion):
        return _check_true_false(question, answer)
    if isinstance(question, ShortAnswerQuestion):
        return _check_short_answer(question, answer)
    if isinstance(question, FillInBlankQuestion):
        return _check_fill_in_blank(question, answer)
    if isinstance(question, MatchingQuestion):
        return _check_matching(question, answer)
    if isinstance(question, OrderingQuestion):
        return _check_ordering(question, answer)
    if isinstance(question, EssayQuestion):
        return False
    raise TypeError(f"Unsupported question type: {type(question).__name__}")


def percentage(earned: int, total: int) -> int:
    """earned/total as a whole percent, rounded half-up; 0 when total is 0."""
    if total <= 0:
        return 0
    return math.floor(earned * 100 / total + 0.5)


def score_quiz(questions: Iterable[Any], answers: Mapping[str, Any]) -> ScoreResult:
    """Score `answers` (question id -> submitted answer) against `questions`."""
    answers = {_as_text(k): v for k, v in (answers or {}).items()}
    results: List[QuestionResult] = []
    total = earned = correct_count = 0

    for question in questions:
        correct = is_answer_correct(question, answers.get(question.id))
        gained = question.points if correct else 0
        total += question.points
        earned += gained
        correct_count += int(correct)
        results.append(
            QuestionResult(
                question_id=question.id,
                type=question.type,
                correct=correct,
                points=question.points,
                earned_points=gained,
                needs_review=isinstance(question, EssayQuestion),
            )
        )

    return ScoreResult(
        total_points=total,
        earned_points=earned,
        percentage=percentage(earned, total),
        correct_count=correct_count,
        results=results,
    )

