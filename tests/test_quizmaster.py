"""Tests for quiz generation and assembly."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from backend.schemas import (
    ConversationMessage,
    MultipleChoiceQuestion,
    QuestionType,
    QuizGenerationOptions,
)
from core.agents.quizmaster import QuizMasterAgent, estimate_time, extract_conversation_text
from core.llm.errors import BackendUnavailable, RateLimited
from core.quiz.fallback import FALLBACK_TITLE
from conftest import StubLLM

QUIZ_REPLY = json.dumps({
    "title": "Photosynthesis quiz",
    "description": "Light reactions",
    "difficulty": "hard",
    "questions": [
        {"id": "q1", "type": "true_false", "question": "Plants need light.", "correct_answer": True},
        {"id": "q2", "type": "essay", "question": "Explain the Calvin cycle.", "points": 5},
    ],
})


@pytest.fixture
def conversation(store):
    conversation = store.create_conversation("user-1", "Biology")
    store.add_message(conversation.id, "user", "Tell me about photosynthesis")
    store.add_message(conversation.id, "assistant", "Photosynthesis turns light into sugar.")
    store.add_message(conversation.id, "user", "Thanks")
    return conversation


def test_estimate_time():
    assert estimate_time(["multiple_choice", "essay", "true_false"]) == 7
    assert estimate_time([QuestionType.TRUE_FALSE]) == 1
    assert estimate_time([]) == 1
    assert estimate_time(["true_false", "fill_in_blank"]) == 2
    assert estimate_time(["riddle", "riddle"]) == 2


def test_extract_conversation_text_orders_by_creation():
    t0 = datetime(2025, 1, 1, tzinfo=timezone.utc)
    messages = [
        ConversationMessage(id=2, conversation_id=1, role="assistant", content="Hi!", created_at=t0 + timedelta(seconds=1)),
        ConversationMessage(id=1, conversation_id=1, role="user", content="Hello", created_at=t0),
    ]
    assert extract_conversation_text(messages) == "User: Hello\n\nAssistant: Hi!\n\n"


def test_generate_quiz_from_model(store, settings, conversation):
    llm = StubLLM(response="```json\n" + QUIZ_REPLY + "\n```")
    agent = QuizMasterAgent(llm, store, settings)
    options = QuizGenerationOptions(question_types=["true_false", "essay"], language="English")

    result = agent.generate_quiz(conversation, options)

    assert result.fallback is False
    assert result.error_message is None
    quiz = result.quiz
    assert quiz.id is not None
    assert quiz.title == "Photosynthesis quiz"
    assert quiz.difficulty == "hard"
    assert quiz.estimated_time == 6
    assert quiz.conversation_id == conversation.id
    assert quiz.user_id == "user-1"
    assert quiz.metadata.source_message_count == 3
    assert quiz.metadata.generation_options == options
    assert store.get_quiz(quiz.id).questions_count == 2

    call = llm.calls[0]
    assert call["max_tokens"] == settings.quiz_max_tokens
    assert call["timeout"] == settings.quiz_timeout
    assert "User: Tell me about photosynthesis" in call["messages"][1]["content"]


def test_rate_limited_falls_back_to_multiple_choice(store, settings, conversation):
    llm = StubLLM(error=RateLimited())
    agent = QuizMasterAgent(llm, store, settings)
    options = QuizGenerationOptions(
        question_count=5, difficulty="medium", question_types=["true_false"], language="English"
    )

    result = agent.generate_quiz(conversation, options)

    assert result.fallback is True
    assert result.error_message == RateLimited.default_message
    quiz = result.quiz
    assert quiz.title == FALLBACK_TITLE
    assert quiz.difficulty == "medium"
    assert 1 <= len(quiz.questions) <= 3
    assert all(isinstance(q, MultipleChoiceQuestion) for q in quiz.questions)
    assert quiz.estimated_time == len(quiz.questions)


def test_unparseable_reply_falls_back(store, settings, conversation):
    agent = QuizMasterAgent(StubLLM(response="I cannot do that."), store, settings)
    result = agent.generate_quiz(conversation, QuizGenerationOptions(difficulty="easy"))
    assert result.fallback is True
    assert result.error_message.startswith("Invalid JSON response from AI")
    assert result.quiz.difficulty == "easy"


def test_invalid_model_difficulty_uses_requested(store, settings, conversation):
    reply = json.loads(QUIZ_REPLY)
    reply["difficulty"] = "impossible"
    reply["title"] = "   "
    agent = QuizMasterAgent(StubLLM(response=json.dumps(reply)), store, settings)

    draft, fallback, _ = agent.assemble(
        conversation, store.list_messages(conversation.id), QuizGenerationOptions(difficulty="easy")
    )
    assert fallback is False
    assert draft.difficulty == "easy"
    assert draft.title == FALLBACK_TITLE


def test_empty_transcript_still_produces_quiz(store, settings):
    conversation = store.create_conversation("user-1", "Empty")
    agent = QuizMasterAgent(StubLLM(error=BackendUnavailable()), store, settings)
    result = agent.generate_quiz(conversation, QuizGenerationOptions(), messages=[])
    assert result.fallback is True
    assert result.quiz.questions == []
    assert result.quiz.estimated_time == 1


def test_generate_quiz_needs_store(settings, conversation):
    agent = QuizMasterAgent(StubLLM(response=QUIZ_REPLY), None, settings)
    with pytest.raises(RuntimeError):
        agent.generate_quiz(conversation, QuizGenerationOptions())
