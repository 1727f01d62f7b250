"""Storage subsystem: SQLite conversations, messages and quizzes.

Usage:
    from storage import SQLiteQuizStore
    store = SQLiteQuizStore("./data/quiz.db")
    conv = store.create_conversation("user-1", "Photosynthesis")
"""
from storage.store import SQLiteQuizStore

__all__ = ["SQLiteQuizStore"]
