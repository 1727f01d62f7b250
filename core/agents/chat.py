"""Chat Agent for conversational replies."""
import logging
import re
from typing import List, Dict, Optional, Tuple

from core.config import Settings, get_settings
from core.llm.errors import CompletionError
from core.llm.openai_compat import LLMClient, get_llm_client
from core.orchestration.prompts import CHAT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

# (pattern, reply); first match wins
FALLBACK_REPLIES: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(r"\b(hello|hi)\b"),
        "👋 Hello! I'm currently running in limited mode due to OpenAI API issues. "
        "I can provide basic responses, but for full AI capabilities, please try again "
        "later when the service is restored.",
    ),
    (
        re.compile(r"how are you"),
        "🤖 I'm experiencing some technical difficulties with the AI service right now, "
        "but I'm here to help as best I can with basic responses. Please try again later "
        "for enhanced AI functionality.",
    ),
    (
        re.compile(r"\bhelp"),
        "🆘 I'm currently running in limited mode due to OpenAI API issues. I can provide "
        "basic keyword-based responses, but for full AI capabilities and detailed help, "
        "please try again later.",
    ),
    (
        re.compile(r"\b(what|how|why)\b"),
        "❓ I'd love to help you with that question, but I'm currently experiencing "
        "technical difficulties with the AI service. Please try again later for a more "
        "detailed and intelligent response.",
    ),
    (
        re.compile(r"\bthank"),
        "🙏 You're welcome! I'm sorry I can only provide basic responses right now due to "
        "AI service issues. Please try again later for full functionality.",
    ),
    (
        re.compile(r"\b(bye|goodbye)\b"),
        "👋 Goodbye! I hope the AI service will be fully restored when you return. "
        "Thank you for your patience!",
    ),
]

DEFAULT_FALLBACK_REPLY = (
    "🚧 I apologize, but I'm currently experiencing technical difficulties with the "
    "OpenAI API and cannot provide my usual intelligent responses. This is a basic "
    "fallback message. Please try again later when the AI service is restored. "
    "Thank you for your patience!"
)


def fallback_chat_reply(message: str) -> str:
    """Canned reply picked by keyword when the backend cannot answer."""
    lowered = (message or "").lower()
    for pattern, reply in FALLBACK_REPLIES:
        if pattern.search(lowered):
            return reply
    return DEFAULT_FALLBACK_REPLY


class ChatAgent:
    """Answers chat messages with the recent conversation as context."""

    def __init__(self, llm: Optional[LLMClient] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.llm = llm or get_llm_client()

    def build_messages(self, message: str, history: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
        """System prompt + last N history turns + the new message."""
        messages: List[Dict[str, str]] = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
        if history:
            limit = self.settings.chat_history_limit
            for msg in history[-limit:]:
                role = msg.get("role", "user")
                content = msg.get("content", "")
                if role in ("user", "assistant") and content:
                    messages.append({"role": role, "content": content})
        messages.append({"role": "user", "content": message})
        return messages

    def reply(self, message: str, history: Optional[List[Dict[str, str]]] = None) -> Tuple[str, bool, Optional[str]]:
        """Return (reply_text, fallback, error_message). Never raises on backend failure."""
        try:
            text = self.llm.complete(
                self.build_messages(message, history),
                max_tokens=self.settings.chat_max_tokens,
                temperature=self.settings.temperature,
                timeout=self.settings.chat_timeout,
            )
            return text, False, None
        except CompletionError as e:
            logger.warning(f"[Chat] backend failed, sending canned reply: {e}")
            return fallback_chat_reply(message), True, str(e)
