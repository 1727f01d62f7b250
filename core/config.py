"""Environment-driven settings."""
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    """Runtime configuration. Built once from the environment and injected where needed."""

    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-3.5-turbo"

    # chat prompts are small, quiz prompts carry the whole transcript
    chat_timeout: float = 30.0
    quiz_timeout: float = 60.0
    chat_max_tokens: int = 1000
    quiz_max_tokens: int = 2000
    temperature: float = 0.7
    chat_history_limit: int = 10

    db_path: str = "./data/quiz.db"
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from process environment (after `.env` is loaded)."""
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
            model=os.getenv("DEFAULT_MODEL", "gpt-3.5-turbo"),
            chat_timeout=float(os.getenv("CHAT_TIMEOUT", "30")),
            quiz_timeout=float(os.getenv("QUIZ_TIMEOUT", "60")),
            chat_max_tokens=int(os.getenv("CHAT_MAX_TOKENS", "1000")),
            quiz_max_tokens=int(os.getenv("QUIZ_MAX_TOKENS", "2000")),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            chat_history_limit=int(os.getenv("CHAT_HISTORY_LIMIT", "10")),
            db_path=os.getenv("QUIZ_DB_PATH", "./data/quiz.db"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            api_host=os.getenv("API_HOST", "0.0.0.0"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
