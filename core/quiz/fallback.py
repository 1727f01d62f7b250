"""Deterministic quiz used when the model path fails."""
import re
from typing import List

from backend.schemas import ChoiceOption, MultipleChoiceQuestion, QuizPayload

# letters with inner apostrophes/hyphens, in any script
WORD_RE = re.compile(r"[^\W\d_]+(?:['\-][^\W\d_]+)*")

MAX_TOPICS = 10
MAX_FALLBACK_QUESTIONS = 3

FALLBACK_TITLE = "Quiz from Conversation"
FALLBACK_DESCRIPTION = "A quiz generated from your conversation."
FALLBACK_EXPLANATION = "This question is based on the conversation content."


def extract_topics(conversation_text: str, limit: int = MAX_TOPICS) -> List[str]:
    """First `limit` distinct words of the transcript, in order of appearance."""
    topics: List[str] = []
    for match in WORD_RE.finditer(conversation_text or ""):
        word = match.group(0)
        if word not in topics:
            topics.append(word)
            if len(topics) == limit:
                break
    return topics


def _placeholder_options() -> List[ChoiceOption]:
    return [
        ChoiceOption(id="a", text="Option A", is_correct=True),
        ChoiceOption(id="b", text="Option B", is_correct=False),
        ChoiceOption(id="c", text="Option C", is_correct=False),
        ChoiceOption(id="d", text="Option D", is_correct=False),
    ]


def generate_fallback_quiz(conversation_text: str, question_count: int, difficulty: str) -> QuizPayload:
    """Build a multiple-choice quiz from transcript keywords. Never raises.

    At most `min(question_count, 3)` questions, one per topic word; an empty
    transcript gives an empty question list.
    """
    topics = extract_topics(conversation_text)
    count = max(0, min(question_count, MAX_FALLBACK_QUESTIONS, len(topics)))

    questions = [
        MultipleChoiceQuestion(
            id=f"q{i + 1}",
            question=f"What was discussed about {topics[i]} in the conversation?",
            options=_placeholder_options(),
            explanation=FALLBACK_EXPLANATION,
            points=1,
        )
        for i in range(count)
    ]
    return QuizPayload(
        title=FALLBACK_TITLE,
        description=FALLBACK_DESCRIPTION,
        difficulty=difficulty,
        questions=questions,
    )
