"""Basic tests for the Conversation Quiz modules and schemas."""
import pytest
from pydantic import ValidationError

from backend.schemas import (
    QuestionType,
    QuizGenerationOptions,
    MultipleChoiceQuestion,
    question_adapter,
)
from conftest import make_quiz


def test_imports():
    """Test that all modules can be imported."""
    from backend.schemas import Quiz, QuizDraft, ScoreResult  # noqa: F401
    from core.llm.openai_compat import LLMClient  # noqa: F401
    from core.agents.quizmaster import QuizMasterAgent  # noqa: F401
    from core.agents.chat import ChatAgent  # noqa: F401
    from core.agents.grader import score_quiz  # noqa: F401
    from core.quiz.export import export_json, export_yaml  # noqa: F401
    from core.orchestration.runner import OrchestrationRunner  # noqa: F401
    from storage import SQLiteQuizStore  # noqa: F401


def test_generation_options_defaults():
    options = QuizGenerationOptions()
    assert options.question_count == 5
    assert options.difficulty == "medium"
    assert options.language == "Japanese"
    assert options.question_types == [
        QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE,
        QuestionType.SHORT_ANSWER,
    ]


@pytest.mark.parametrize("payload", [
    {"question_count": 0},
    {"question_count": 21},
    {"difficulty": "extreme"},
    {"question_types": []},
    {"question_types": ["riddle"]},
    {"language": "French"},
])
def test_generation_options_rejects_out_of_range(payload):
    with pytest.raises(ValidationError):
        QuizGenerationOptions(**payload)


def test_generation_options_dedupes_types():
    options = QuizGenerationOptions(question_types=["essay", "matching", "essay"])
    assert options.question_types == [QuestionType.ESSAY, QuestionType.MATCHING]


def test_question_union_dispatches_on_type():
    question = question_adapter.validate_python({
        "id": 3,
        "type": "multiple_choice",
        "question": "Pick one",
        "options": [{"id": 1, "text": "A", "is_correct": True}],
    })
    assert isinstance(question, MultipleChoiceQuestion)
    assert question.id == "3"
    assert question.options[0].id == "1"
    assert question.points == 1


def test_question_union_rejects_unknown_type():
    with pytest.raises(ValidationError):
        question_adapter.validate_python({"id": "q1", "type": "riddle", "question": "?"})


def test_short_answer_accepts_single_string():
    question = question_adapter.validate_python({
        "id": "q1", "type": "short_answer", "question": "Capital of France?", "correct_answers": "Paris",
    })
    assert question.correct_answers == ["Paris"]


def test_quiz_accessors():
    quiz = make_quiz()
    assert quiz.questions_count == 7
    assert quiz.total_points == 14
    assert [q.id for q in quiz.questions_by_type(QuestionType.ESSAY)] == ["es"]
    assert [q.id for q in quiz.questions_by_type("true_false")] == ["tf"]
