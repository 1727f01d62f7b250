"""SQLite-based storage for conversations, messages and quizzes."""
import sqlite3
import json
import logging
import os
from datetime import datetime
from typing import List, Dict, Any, Optional

from backend.schemas import (
    CONVERSATION_TITLE_MAX_LENGTH,
    QUIZ_TITLE_MAX_LENGTH,
    Conversation,
    ConversationMessage,
    Quiz,
    QuizDraft,
    QuizMetadata,
    question_list_adapter,
    utcnow,
)

logger = logging.getLogger(__name__)


def _check_title_length(title: str, max_length: int):
    # rows are re-validated on read; an over-long title would make them unreadable
    if len(title) > max_length:
        raise ValueError(f"title must be at most {max_length} characters")


class SQLiteQuizStore:
    """Three tables: conversations, messages and quizzes.

    Deleting a conversation cascades to its messages and quizzes.
    """

    def __init__(self, db_path: str = None):
        if db_path is None:
            db_path = os.getenv("QUIZ_DB_PATH", "./data/quiz.db")
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        self.db_path = db_path
        self._init_tables()
        logger.info(f"[Store] using {self.db_path}")

    # ── internals ─────────────────────────────────────────────────────────────

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _init_tables(self):
        with self._conn() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS conversations (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id     TEXT NOT NULL,
                    title       TEXT NOT NULL,
                    created_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_conv_user
                    ON conversations(user_id, updated_at DESC);

                CREATE TABLE IF NOT EXISTS messages (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    conversation_id INTEGER NOT NULL
                                    REFERENCES conversations(id) ON DELETE CASCADE,
                    role            TEXT NOT NULL,    -- 'user' | 'assistant'
                    content         TEXT NOT NULL,
                    created_at      TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_msg_conv
                    ON messages(conversation_id, created_at, id);

                CREATE TABLE IF NOT EXISTS quizzes (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    title           TEXT NOT NULL,
                    description     TEXT,
                    conversation_id INTEGER NOT NULL
                                    REFERENCES conversations(id) ON DELETE CASCADE,
                    user_id         TEXT NOT NULL,
                    difficulty      TEXT NOT NULL DEFAULT 'medium',
                    estimated_time  INTEGER,          -- minutes
                    questions       TEXT NOT NULL,    -- JSON list of questions
                    metadata        TEXT DEFAULT '{}',
                    created_at      TEXT NOT NULL,
                    updated_at      TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_quiz_user
                    ON quizzes(user_id, created_at DESC);
            """)

    @staticmethod
    def _now() -> str:
        return utcnow().isoformat()

    @staticmethod
    def _row_to_quiz(row: sqlite3.Row) -> Quiz:
        d = dict(row)
        return Quiz(
            id=d["id"],
            title=d["title"],
            description=d["description"],
            conversation_id=d["conversation_id"],
            user_id=d["user_id"],
            difficulty=d["difficulty"],
            estimated_time=d["estimated_time"] or 1,
            questions=question_list_adapter.validate_python(json.loads(d["questions"])),
            metadata=QuizMetadata.model_validate(json.loads(d["metadata"] or "{}")),
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> ConversationMessage:
        d = dict(row)
        d["created_at"] = datetime.fromisoformat(d["created_at"])
        return ConversationMessage(**d)

    # ── conversations ─────────────────────────────────────────────────────────

    def create_conversation(self, user_id: str, title: str) -> Conversation:
        _check_title_length(title, CONVERSATION_TITLE_MAX_LENGTH)
        now = self._now()
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO conversations (user_id, title, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (user_id, title, now, now),
            )
            conversation_id = cur.lastrowid
        return self.get_conversation(conversation_id)

    def get_conversation(self, conversation_id: int, with_messages: bool = False) -> Optional[Conversation]:
        """Fetch one conversation, or None if it does not exist."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
            ).fetchone()
        if row is None:
            return None
        d = dict(row)
        conversation = Conversation(
            id=d["id"],
            user_id=d["user_id"],
            title=d["title"],
            created_at=datetime.fromisoformat(d["created_at"]),
            updated_at=datetime.fromisoformat(d["updated_at"]),
        )
        if with_messages:
            conversation.messages = self.list_messages(conversation_id)
        return conversation

    def list_conversations(self, user_id: str) -> List[Conversation]:
        """Conversations of a user, most recently updated first, with messages."""
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT id FROM conversations WHERE user_id = ? ORDER BY updated_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [self.get_conversation(row["id"], with_messages=True) for row in rows]

    def delete_conversation(self, conversation_id: int) -> bool:
        """Delete a conversation with its messages and quizzes."""
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM conversations WHERE id = ?", (conversation_id,))
        if cur.rowcount:
            logger.info(f"[Store] deleted conversation {conversation_id} with its messages and quizzes")
        return cur.rowcount > 0

    # ── messages ──────────────────────────────────────────────────────────────

    def add_message(self, conversation_id: int, role: str, content: str) -> ConversationMessage:
        now = self._now()
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT INTO messages (conversation_id, role, content, created_at) VALUES (?, ?, ?, ?)",
                (conversation_id, role, content, now),
            )
            conn.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?", (now, conversation_id)
            )
            row = conn.execute("SELECT * FROM messages WHERE id = ?", (cur.lastrowid,)).fetchone()
        return self._row_to_message(row)

    def list_messages(self, conversation_id: int) -> List[ConversationMessage]:
        """Messages in creation order."""
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM messages WHERE conversation_id = ? ORDER BY created_at ASC, id ASC",
                (conversation_id,),
            ).fetchall()
        return [self._row_to_message(row) for row in rows]

    def count_messages(self, conversation_id: int) -> int:
        with self._conn() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM messages WHERE conversation_id = ?", (conversation_id,)
            ).fetchone()[0]

    # ── quizzes ───────────────────────────────────────────────────────────────

    def create_quiz(self, draft: QuizDraft) -> Quiz:
        """Persist an assembled quiz and return the stored record."""
        now = self._now()
        questions = json.dumps(
            [q.model_dump(mode="json", exclude_none=True) for q in draft.questions],
            ensure_ascii=False,
        )
        metadata = json.dumps(draft.metadata.model_dump(mode="json"), ensure_ascii=False)
        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO quizzes
                    (title, description, conversation_id, user_id, difficulty,
                     estimated_time, questions, metadata, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    draft.title,
                    draft.description,
                    draft.conversation_id,
                    draft.user_id,
                    draft.difficulty,
                    draft.estimated_time,
                    questions,
                    metadata,
                    now,
                    now,
                ),
            )
            quiz_id = cur.lastrowid
        return self.get_quiz(quiz_id)

    def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM quizzes WHERE id = ?", (quiz_id,)).fetchone()
        return self._row_to_quiz(row) if row is not None else None

    def list_quizzes(self, user_id: str) -> List[Quiz]:
        """Quizzes of a user, newest first."""
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT * FROM quizzes WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_quiz(row) for row in rows]

    def update_quiz(
        self,
        quiz_id: int,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Quiz]:
        """Edit title and/or merge metadata keys. Question content is immutable."""
        quiz = self.get_quiz(quiz_id)
        if quiz is None:
            return None
        new_title = title if title is not None else quiz.title
        _check_title_length(new_title, QUIZ_TITLE_MAX_LENGTH)
        meta = quiz.metadata.model_dump(mode="json")
        if metadata:
            meta.update(metadata)
        meta = QuizMetadata.model_validate(meta).model_dump(mode="json")
        with self._conn() as conn:
            conn.execute(
                "UPDATE quizzes SET title = ?, metadata = ?, updated_at = ? WHERE id = ?",
                (new_title, json.dumps(meta, ensure_ascii=False), self._now(), quiz_id),
            )
        return self.get_quiz(quiz_id)

    def delete_quiz(self, quiz_id: int) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM quizzes WHERE id = ?", (quiz_id,))
        return cur.rowcount > 0
