"""QuizMaster Agent for generating quizzes from conversations."""
import logging
import math
from typing import Iterable, List, Optional, Tuple

from backend.schemas import (
    QUIZ_TITLE_MAX_LENGTH,
    Conversation,
    ConversationMessage,
    GenerationResult,
    QuizDraft,
    QuizGenerationOptions,
    QuizMetadata,
    QuizPayload,
    utcnow,
)
from core.config import Settings, get_settings
from core.llm.errors import CompletionError
from core.llm.openai_compat import LLMClient, get_llm_client
from core.orchestration.prompts import build_quiz_messages
from core.quiz.fallback import FALLBACK_TITLE, generate_fallback_quiz
from core.quiz.parser import QuizParseError, parse_quiz_response
from storage.store import SQLiteQuizStore

logger = logging.getLogger(__name__)

# minutes per question
TIME_PER_QUESTION = {
    "multiple_choice": 1,
    "true_false": 0.5,
    "short_answer": 2,
    "essay": 5,
    "fill_in_blank": 1.5,
    "matching": 2,
    "ordering": 1.5,
}
DEFAULT_QUESTION_TIME = 1

DIFFICULTIES = ("easy", "medium", "hard")


def extract_conversation_text(messages: Iterable[ConversationMessage]) -> str:
    """Role-labelled transcript in creation order."""
    text = ""
    for message in sorted(messages, key=lambda m: (m.created_at, m.id)):
        role = "User" if message.role == "user" else "Assistant"
        text += f"{role}: {message.content}\n\n"
    return text


def estimate_time(question_types: Iterable[str]) -> int:
    """Minutes needed for the given question types, rounded half-up, at least 1."""
    total = sum(TIME_PER_QUESTION.get(t, DEFAULT_QUESTION_TIME) for t in question_types)
    return max(1, math.floor(total + 0.5))


class QuizMasterAgent:
    """Builds quizzes from conversations, falling back to a keyword quiz on any model failure."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        store: Optional[SQLiteQuizStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.llm = llm or get_llm_client()
        self.store = store

    def generate_payload(
        self, conversation_text: str, options: QuizGenerationOptions
    ) -> Tuple[QuizPayload, bool, Optional[str]]:
        """Run prompt -> completion -> parse. Returns (payload, fallback, error_message)."""
        messages = build_quiz_messages(conversation_text, options)
        try:
            response = self.llm.complete(
                messages,
                max_tokens=self.settings.quiz_max_tokens,
                temperature=self.settings.temperature,
                timeout=self.settings.quiz_timeout,
            )
            return parse_quiz_response(response), False, None
        except (CompletionError, QuizParseError) as e:
            logger.warning(f"[Quiz] generation failed, using fallback quiz: {e}")
            payload = generate_fallback_quiz(
                conversation_text, options.question_count, options.difficulty
            )
            return payload, True, str(e)

    def assemble(
        self,
        conversation: Conversation,
        messages: List[ConversationMessage],
        options: QuizGenerationOptions,
    ) -> Tuple[QuizDraft, bool, Optional[str]]:
        """Build an unsaved quiz for `conversation`."""
        conversation_text = extract_conversation_text(messages)
        payload, fallback, error_message = self.generate_payload(conversation_text, options)

        difficulty = payload.difficulty if payload.difficulty in DIFFICULTIES else options.difficulty
        title = (payload.title or "").strip() or FALLBACK_TITLE

        draft = QuizDraft(
            title=title[:QUIZ_TITLE_MAX_LENGTH],
            description=payload.description,
            conversation_id=conversation.id,
            user_id=conversation.user_id,
            difficulty=difficulty,
            estimated_time=estimate_time(q.type for q in payload.questions),
            questions=payload.questions,
            metadata=QuizMetadata(
                generated_at=utcnow(),
                source_message_count=len(messages),
                generation_options=options,
            ),
        )
        return draft, fallback, error_message

    def generate_quiz(
        self,
        conversation: Conversation,
        options: QuizGenerationOptions,
        messages: Optional[List[ConversationMessage]] = None,
    ) -> GenerationResult:
        """Generate and persist a quiz. Never fails because of the model backend."""
        if self.store is None:
            raise RuntimeError("QuizMasterAgent needs a store to persist quizzes")
        if messages is None:
            messages = self.store.list_messages(conversation.id)

        draft, fallback, error_message = self.assemble(conversation, messages, options)
        quiz = self.store.create_quiz(draft)
        logger.info(
            f"[Quiz] created quiz {quiz.id} for conversation {conversation.id}: "
            f"{quiz.questions_count} questions, {quiz.estimated_time} min, fallback={fallback}"
        )
        return GenerationResult(quiz=quiz, fallback=fallback, error_message=error_message)
