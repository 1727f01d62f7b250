"""Shared fixtures for the quiz engine tests."""
import os
import sys
from datetime import datetime, timezone

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from backend.schemas import (  # noqa: E402
    Blank,
    ChoiceOption,
    EssayQuestion,
    FillInBlankQuestion,
    MatchItem,
    MatchPair,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderItem,
    OrderingQuestion,
    Quiz,
    QuizMetadata,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from core.config import Settings  # noqa: E402
from storage.store import SQLiteQuizStore  # noqa: E402


class StubLLM:
    """Stands in for LLMClient: returns a canned reply or raises a canned error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def complete(self, messages, max_tokens=1000, temperature=0.7, timeout=30.0):
        self.calls.append({
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": timeout,
        })
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def settings(tmp_path):
    return Settings(openai_api_key="sk-test", db_path=str(tmp_path / "quiz.db"))


@pytest.fixture
def store(settings):
    return SQLiteQuizStore(settings.db_path)


def sample_questions():
    """One question of every type, with known correct answers."""
    return [
        MultipleChoiceQuestion(
            id="mc",
            question="Which gas do plants absorb?",
            options=[
                ChoiceOption(id="a", text="Oxygen"),
                ChoiceOption(id="b", text="Carbon dioxide", is_correct=True),
            ],
            points=1,
        ),
        TrueFalseQuestion(id="tf", question="Plants need light.", correct_answer=True, points=1),
        ShortAnswerQuestion(
            id="sa",
            question="Name the green pigment.",
            correct_answers=["Chlorophyll"],
            points=2,
        ),
        EssayQuestion(id="es", question="Explain photosynthesis.", sample_answer="...", points=5),
        FillInBlankQuestion(
            id="fb",
            question="The {blank} is the powerhouse of the {blank}.",
            blanks=[
                Blank(id="b1", correct_answers=["mitochondria"]),
                Blank(id="b2", correct_answers=["Cell"], case_sensitive=True),
            ],
            points=2,
        ),
        MatchingQuestion(
            id="mt",
            question="Match the terms.",
            left_items=[MatchItem(id="a", text="Sun"), MatchItem(id="b", text="Leaf")],
            right_items=[MatchItem(id="x", text="Light"), MatchItem(id="y", text="Organ")],
            correct_matches=[MatchPair(left_id="a", right_id="x"), MatchPair(left_id="b", right_id="y")],
            points=2,
        ),
        OrderingQuestion(
            id="or",
            question="Order the steps.",
            items=[
                OrderItem(id="i1", text="Absorb light", correct_order=1),
                OrderItem(id="i2", text="Split water", correct_order=2),
                OrderItem(id="i3", text="Make sugar", correct_order=3),
            ],
            points=1,
        ),
    ]


CORRECT_ANSWERS = {
    "mc": "b",
    "tf": True,
    "sa": "chlorophyll",
    "es": "Plants turn light into sugar.",
    "fb": {"b1": "Mitochondria", "b2": "Cell"},
    "mt": {"a": "x", "b": "y"},
    "or": ["i1", "i2", "i3"],
}


def make_quiz(questions=None, **overrides):
    questions = sample_questions() if questions is None else questions
    now = datetime(2025, 7, 15, 8, 0, 49, tzinfo=timezone.utc)
    fields = dict(
        id=1,
        title="光合成クイズ",
        description="Photosynthesis basics",
        conversation_id=7,
        user_id="user-1",
        difficulty="medium",
        estimated_time=14,
        questions=questions,
        metadata=QuizMetadata(generated_at=now, source_message_count=4),
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return Quiz(**fields)
