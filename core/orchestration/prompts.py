"""Prompt templates and the quiz prompt builder."""
from typing import Dict, List

from backend.schemas import QuizGenerationOptions


CHAT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Please provide helpful, accurate, "
    "and conversational responses."
)

QUIZ_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates educational quizzes from "
    "conversations. Always respond with valid JSON only."
)

LANGUAGE_INSTRUCTIONS = {
    "Japanese": "Generate all questions, options, and explanations in Japanese language.",
    "English": "Generate all questions, options, and explanations in English language.",
}

# Output contract read back by core.quiz.parser; keep keys in sync with backend.schemas.
QUIZ_JSON_SCHEMA = """{{
    "title": "Quiz title based on conversation topic",
    "description": "Brief description of what the quiz covers",
    "difficulty": "{difficulty}",
    "questions": [
        {{
            "id": "q1",
            "type": "multiple_choice",
            "question": "Question text",
            "options": [
                {{"id": "a", "text": "Option A", "is_correct": true}},
                {{"id": "b", "text": "Option B", "is_correct": false}},
                {{"id": "c", "text": "Option C", "is_correct": false}},
                {{"id": "d", "text": "Option D", "is_correct": false}}
            ],
            "explanation": "Explanation of the correct answer",
            "points": 1
        }},
        {{
            "id": "q2",
            "type": "true_false",
            "question": "Question text",
            "correct_answer": true,
            "explanation": "Explanation",
            "points": 1
        }},
        {{
            "id": "q3",
            "type": "short_answer",
            "question": "Question text",
            "correct_answers": ["answer1", "answer2"],
            "case_sensitive": false,
            "explanation": "Explanation",
            "points": 1
        }},
        {{
            "id": "q4",
            "type": "essay",
            "question": "Question text",
            "sample_answer": "A model answer",
            "grading_criteria": [
                {{"criterion": "Covers the main idea", "points": 2}},
                {{"criterion": "Gives a concrete example", "points": 1}}
            ],
            "min_words": 50,
            "max_words": 200,
            "explanation": "Explanation",
            "points": 3
        }},
        {{
            "id": "q5",
            "type": "fill_in_blank",
            "question": "The {{blank}} is the powerhouse of the {{blank}}.",
            "blanks": [
                {{"id": "b1", "correct_answers": ["mitochondria"], "case_sensitive": false}},
                {{"id": "b2", "correct_answers": ["cell"], "case_sensitive": false}}
            ],
            "explanation": "Explanation",
            "points": 1
        }},
        {{
            "id": "q6",
            "type": "matching",
            "question": "Match each term with its definition",
            "left_items": [{{"id": "l1", "text": "Term 1"}}, {{"id": "l2", "text": "Term 2"}}],
            "right_items": [{{"id": "r1", "text": "Definition 1"}}, {{"id": "r2", "text": "Definition 2"}}],
            "correct_matches": [
                {{"left_id": "l1", "right_id": "r1"}},
                {{"left_id": "l2", "right_id": "r2"}}
            ],
            "explanation": "Explanation",
            "points": 2
        }},
        {{
            "id": "q7",
            "type": "ordering",
            "question": "Put these steps in the correct order",
            "items": [
                {{"id": "i1", "text": "First step", "correct_order": 1}},
                {{"id": "i2", "text": "Second step", "correct_order": 2}},
                {{"id": "i3", "text": "Third step", "correct_order": 3}}
            ],
            "explanation": "Explanation",
            "points": 1
        }}
    ]
}}"""

QUIZ_GENERATION_PROMPT = """Based on the following conversation, generate a quiz with {question_count} questions of {difficulty} difficulty.

Use these question types: {question_types}

{language_instruction}

Conversation:
{conversation}

Generate a JSON response with the following structure (only include the question types listed above):
""" + QUIZ_JSON_SCHEMA + """

In fill_in_blank questions write one {{blank}} placeholder per entry in "blanks", in the same order.
In ordering questions "correct_order" starts at 1.

Make sure all questions are directly related to the conversation content and test understanding of the topics discussed."""


def build_quiz_prompt(conversation_text: str, options: QuizGenerationOptions) -> str:
    """Render the quiz generation prompt. Every option is reflected verbatim."""
    return QUIZ_GENERATION_PROMPT.format(
        question_count=options.question_count,
        difficulty=options.difficulty,
        question_types=", ".join(t.value for t in options.question_types),
        language_instruction=LANGUAGE_INSTRUCTIONS[options.language],
        conversation=conversation_text,
    )


def build_quiz_messages(conversation_text: str, options: QuizGenerationOptions) -> List[Dict[str, str]]:
    """System + user messages for a quiz generation call."""
    return [
        {"role": "system", "content": QUIZ_SYSTEM_PROMPT},
        {"role": "user", "content": build_quiz_prompt(conversation_text, options)},
    ]
