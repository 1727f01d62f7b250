"""Backend schemas for the Conversation Quiz service."""
from enum import Enum
from typing import Annotated, List, Optional, Any, Literal, Union
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


Difficulty = Literal["easy", "medium", "hard"]
Language = Literal["Japanese", "English"]

CONVERSATION_TITLE_MAX_LENGTH = 100
QUIZ_TITLE_MAX_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, Enum):
    """Closed set of question types a quiz may contain."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"
    FILL_IN_BLANK = "fill_in_blank"
    MATCHING = "matching"
    ORDERING = "ordering"


DEFAULT_QUESTION_TYPES = [
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.TRUE_FALSE,
    QuestionType.SHORT_ANSWER,
]


# ── Conversations ─────────────────────────────────────────────────────────────

class ConversationMessage(BaseModel):
    """A single chat turn. Immutable once stored."""
    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime


class Conversation(BaseModel):
    """Conversation owned by one user."""
    id: int
    user_id: str
    title: str = Field(max_length=CONVERSATION_TITLE_MAX_LENGTH)
    created_at: datetime
    updated_at: datetime
    messages: List[ConversationMessage] = Field(default_factory=list)


class ChatReply(BaseModel):
    """Assistant reply to a chat message; `fallback` marks a canned response."""
    message: ConversationMessage
    fallback: bool = False
    error_message: Optional[str] = None


# ── Quiz generation options ───────────────────────────────────────────────────

class QuizGenerationOptions(BaseModel):
    """Per-request generation options. Defaults are resolved here, not in the prompt."""
    question_count: int = Field(default=5, ge=1, le=20)
    difficulty: Difficulty = "medium"
    question_types: List[QuestionType] = Field(
        default_factory=lambda: list(DEFAULT_QUESTION_TYPES), min_length=1
    )
    language: Language = "Japanese"

    @field_validator("question_types")
    @classmethod
    def dedupe_types(cls, v: List[QuestionType]) -> List[QuestionType]:
        seen: List[QuestionType] = []
        for t in v:
            if t not in seen:
                seen.append(t)
        return seen


# ── Questions (tagged union on `type`) ────────────────────────────────────────

class _QuizItem(BaseModel):
    # model output often uses numeric ids
    model_config = ConfigDict(coerce_numbers_to_str=True)


class ChoiceOption(_QuizItem):
    id: str
    text: str = ""
    is_correct: bool = False


class GradingCriterion(_QuizItem):
    criterion: str
    points: int = 1


class Blank(_QuizItem):
    id: str
    correct_answers: List[str] = Field(default_factory=list)
    case_sensitive: bool = False

    @field_validator("correct_answers", mode="before")
    @classmethod
    def wrap_single_answer(cls, v):
        return [v] if isinstance(v, str) else v


class MatchItem(_QuizItem):
    id: str
    text: str = ""


class MatchPair(_QuizItem):
    left_id: str
    right_id: str


class OrderItem(_QuizItem):
    id: str
    text: str = ""
    correct_order: int


class QuestionBase(_QuizItem):
    id: str
    question: str = ""
    explanation: Optional[str] = None
    points: int = Field(default=1, ge=1)


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[ChoiceOption] = Field(default_factory=list)


class TrueFalseQuestion(QuestionBase):
    type: Literal["true_false"] = "true_false"
    correct_answer: bool = True


class ShortAnswerQuestion(QuestionBase):
    type: Literal["short_answer"] = "short_answer"
    correct_answers: List[str] = Field(default_factory=list)
    case_sensitive: bool = False

    @field_validator("correct_answers", mode="before")
    @classmethod
    def wrap_single_answer(cls, v):
        return [v] if isinstance(v, str) else v


class EssayQuestion(QuestionBase):
    type: Literal["essay"] = "essay"
    sample_answer: Optional[str] = None
    grading_criteria: List[GradingCriterion] = Field(default_factory=list)
    min_words: Optional[int] = None
    max_words: Optional[int] = None


class FillInBlankQuestion(QuestionBase):
    """Question text holds one `{blank}` placeholder per entry in `blanks`."""
    type: Literal["fill_in_blank"] = "fill_in_blank"
    blanks: List[Blank] = Field(default_factory=list)


class MatchingQuestion(QuestionBase):
    type: Literal["matching"] = "matching"
    left_items: List[MatchItem] = Field(default_factory=list)
    right_items: List[MatchItem] = Field(default_factory=list)
    correct_matches: List[MatchPair] = Field(default_factory=list)


class OrderingQuestion(QuestionBase):
    type: Literal["ordering"] = "ordering"
    items: List[OrderItem] = Field(default_factory=list)


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        ShortAnswerQuestion,
        EssayQuestion,
        FillInBlankQuestion,
        MatchingQuestion,
        OrderingQuestion,
    ],
    Field(discriminator="type"),
]

question_adapter: TypeAdapter = TypeAdapter(Question)
question_list_adapter: TypeAdapter = TypeAdapter(List[Question])


# ── Quizzes ───────────────────────────────────────────────────────────────────

class QuizPayload(BaseModel):
    """Quiz content as produced by the model (after repair) or by the fallback."""
    title: str
    description: Optional[str] = None
    difficulty: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)


class QuizMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    generated_at: datetime = Field(default_factory=utcnow)
    source_message_count: int = 0
    generation_options: QuizGenerationOptions = Field(default_factory=QuizGenerationOptions)


class QuizDraft(BaseModel):
    """Assembled quiz not yet persisted."""
    title: str = Field(max_length=QUIZ_TITLE_MAX_LENGTH)
    description: Optional[str] = None
    conversation_id: int
    user_id: str
    difficulty: Difficulty = "medium"
    estimated_time: int = Field(ge=1)
    questions: List[Question] = Field(default_factory=list)
    metadata: QuizMetadata = Field(default_factory=QuizMetadata)


class Quiz(QuizDraft):
    """Persisted quiz."""
    id: int
    created_at: datetime
    updated_at: datetime

    @property
    def questions_count(self) -> int:
        return len(self.questions)

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def questions_by_type(self, question_type: Union[QuestionType, str]) -> List[Any]:
        return [q for q in self.questions if q.type == question_type]


class GenerationResult(BaseModel):
    """Outcome of quiz generation; `fallback` is set when the model path failed."""
    quiz: Quiz
    fallback: bool = False
    error_message: Optional[str] = None


# ── Scoring ───────────────────────────────────────────────────────────────────

class QuestionResult(BaseModel):
    question_id: str
    type: str
    correct: bool
    points: int
    earned_points: int
    needs_review: bool = False


class ScoreResult(BaseModel):
    """Score of one quiz attempt."""
    total_points: int
    earned_points: int
    percentage: int  # 0-100
    correct_count: int
    results: List[QuestionResult] = Field(default_factory=list)
