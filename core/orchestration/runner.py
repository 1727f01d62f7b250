"""Main orchestration runner."""
import logging
from typing import Any, Dict, List, Optional

from backend.schemas import (
    CONVERSATION_TITLE_MAX_LENGTH,
    QUIZ_TITLE_MAX_LENGTH,
    ChatReply,
    Conversation,
    GenerationResult,
    QuestionType,
    Quiz,
    QuizGenerationOptions,
    ScoreResult,
)
from core.agents.chat import ChatAgent
from core.agents.grader import score_quiz
from core.agents.quizmaster import QuizMasterAgent
from core.config import Settings, get_settings
from core.errors import ForbiddenError, NotFoundError, PreconditionError
from core.llm.openai_compat import LLMClient
from core.quiz.export import ExportedFile, export_quiz
from storage.store import SQLiteQuizStore

logger = logging.getLogger(__name__)

MIN_MESSAGES_FOR_QUIZ = 2

QUESTION_TYPE_INFO = {
    QuestionType.MULTIPLE_CHOICE: ("Multiple Choice", "Questions with multiple options, one correct answer"),
    QuestionType.TRUE_FALSE: ("True/False", "Questions with true or false answers"),
    QuestionType.SHORT_ANSWER: ("Short Answer", "Questions requiring brief written responses"),
    QuestionType.ESSAY: ("Essay", "Questions requiring longer written responses"),
    QuestionType.FILL_IN_BLANK: ("Fill in the Blank", "Questions with missing words to be filled in"),
    QuestionType.MATCHING: ("Matching", "Questions requiring matching items between two lists"),
    QuestionType.ORDERING: ("Ordering", "Questions requiring items to be put in correct order"),
}


def _checked_title(title: str, max_length: int) -> str:
    title = (title or "").strip()
    if not title:
        raise PreconditionError("Title is required")
    if len(title) > max_length:
        raise PreconditionError(f"Title must be at most {max_length} characters")
    return title


class OrchestrationRunner:
    """Entry point for chat and quiz operations.

    Owns ownership checks and preconditions; the agents below it never see
    another user's data.
    """

    def __init__(
        self,
        store: Optional[SQLiteQuizStore] = None,
        llm: Optional[LLMClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.llm = llm or LLMClient.from_settings(self.settings)
        self.store = store or SQLiteQuizStore(self.settings.db_path)

        self.chat_agent = ChatAgent(self.llm, self.settings)
        self.quizmaster = QuizMasterAgent(self.llm, self.store, self.settings)

    # ── ownership helpers ─────────────────────────────────────────────────────

    def _owned_conversation(self, user_id: str, conversation_id: int) -> Conversation:
        conversation = self.store.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if conversation.user_id != user_id:
            raise ForbiddenError("Unauthorized")
        return conversation

    def _owned_quiz(self, user_id: str, quiz_id: int) -> Quiz:
        quiz = self.store.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if quiz.user_id != user_id:
            raise ForbiddenError("Unauthorized")
        return quiz

    # ── conversations & chat ──────────────────────────────────────────────────

    def create_conversation(self, user_id: str, title: str) -> Conversation:
        title = _checked_title(title, CONVERSATION_TITLE_MAX_LENGTH)
        return self.store.create_conversation(user_id, title)

    def list_conversations(self, user_id: str) -> List[Conversation]:
        return self.store.list_conversations(user_id)

    def delete_conversation(self, user_id: str, conversation_id: int) -> None:
        """Delete a conversation; its messages and quizzes go with it."""
        self._owned_conversation(user_id, conversation_id)
        self.store.delete_conversation(conversation_id)

    def send_message(self, user_id: str, conversation_id: int, message: str) -> ChatReply:
        """Store the user's message, answer it, store the answer."""
        self._owned_conversation(user_id, conversation_id)
        history = [
            {"role": m.role, "content": m.content}
            for m in self.store.list_messages(conversation_id)
        ]
        self.store.add_message(conversation_id, "user", message)

        text, fallback, error_message = self.chat_agent.reply(message, history)
        assistant_message = self.store.add_message(conversation_id, "assistant", text)
        return ChatReply(message=assistant_message, fallback=fallback, error_message=error_message)

    # ── quizzes ───────────────────────────────────────────────────────────────

    def generate_quiz(
        self,
        user_id: str,
        conversation_id: int,
        options: Optional[QuizGenerationOptions] = None,
    ) -> GenerationResult:
        """Generate a quiz from a conversation the user owns."""
        conversation = self._owned_conversation(user_id, conversation_id)
        messages = self.store.list_messages(conversation_id)
        if len(messages) < MIN_MESSAGES_FOR_QUIZ:
            raise PreconditionError(
                "Conversation must have at least 2 messages to generate a quiz"
            )
        return self.quizmaster.generate_quiz(
            conversation, options or QuizGenerationOptions(), messages=messages
        )

    def list_quizzes(self, user_id: str) -> List[Quiz]:
        return self.store.list_quizzes(user_id)

    def get_quiz(self, user_id: str, quiz_id: int) -> Quiz:
        return self._owned_quiz(user_id, quiz_id)

    def rename_quiz(self, user_id: str, quiz_id: int, title: str) -> Quiz:
        self._owned_quiz(user_id, quiz_id)
        title = _checked_title(title, QUIZ_TITLE_MAX_LENGTH)
        return self.store.update_quiz(quiz_id, title=title)

    def delete_quiz(self, user_id: str, quiz_id: int) -> None:
        self._owned_quiz(user_id, quiz_id)
        self.store.delete_quiz(quiz_id)

    def score_quiz(self, user_id: str, quiz_id: int, answers: Dict[str, Any]) -> ScoreResult:
        quiz = self._owned_quiz(user_id, quiz_id)
        return score_quiz(quiz.questions, answers)

    def export_quiz(self, user_id: str, quiz_id: int, fmt: str) -> ExportedFile:
        quiz = self._owned_quiz(user_id, quiz_id)
        return export_quiz(quiz, fmt)

    @staticmethod
    def question_types() -> List[Dict[str, str]]:
        return [
            {"value": qtype.value, "label": label, "description": description}
            for qtype, (label, description) in QUESTION_TYPE_INFO.items()
        ]
