"""Parse and repair the model's quiz JSON."""
import json
import logging
import random
import re
import string
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError

from backend.schemas import QuestionType, QuizPayload, question_adapter

logger = logging.getLogger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
OPEN_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*")

ID_ALPHABET = string.ascii_letters + string.digits
ID_LENGTH = 8

KNOWN_TYPES = {t.value for t in QuestionType}


class QuizParseError(Exception):
    """Model output could not be turned into a quiz."""


class InvalidJsonResponse(QuizParseError):
    pass


class MissingRequiredFields(QuizParseError):
    pass


class NoUsableQuestions(QuizParseError):
    pass


def strip_code_fence(raw: str) -> str:
    """Unwrap a fenced reply.

    A reply that opens with a fence loses the opening fence and, if present,
    the final closing one; fences inside the body are kept. Otherwise the
    first fenced block in surrounding prose is returned, or the stripped
    text when there is none.
    """
    text = (raw or "").strip()
    if text.startswith("```"):
        body = OPEN_FENCE_RE.sub("", text).rstrip()
        if body.endswith("```"):
            body = body[:-3]
        return body.strip()
    m = CODE_FENCE_RE.search(text)
    if m:
        return m.group(1).strip()
    return text


def decode_quiz_json(raw: str) -> Dict[str, Any]:
    """Decode the model's reply and check the top-level contract.

    Bare JSON is decoded as is, so fences inside string values survive;
    fence stripping only applies when that fails.
    """
    text = (raw or "").strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise InvalidJsonResponse(f"Invalid JSON response from AI: {e}") from e

    if not isinstance(data, dict) or data.get("title") is None or data.get("questions") is None:
        raise MissingRequiredFields("Missing required fields in AI response")
    if not isinstance(data["questions"], list):
        raise MissingRequiredFields("AI response field 'questions' must be a list")
    return data


def synthesize_id(used: Set[str], rng: Optional[random.Random] = None) -> str:
    """Random 8-character id not present in `used`."""
    rng = rng or random.SystemRandom()
    while True:
        candidate = "".join(rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
        if candidate not in used:
            return candidate


def _valid_points(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float) and value.is_integer() and value >= 1:
        return int(value)
    # decimal digits only: int() rejects superscripts such as '²'
    if isinstance(value, str) and value.strip().isdecimal() and int(value) >= 1:
        return int(value)
    return None


def repair_questions(items: List[Any], rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    """Fill in missing ids and points so every question dict is complete.

    Ids are made unique within the list: a missing, empty or repeated id is
    replaced by a synthesized one. Missing or unusable points become 1.
    Non-object entries are dropped.
    """
    used: Set[str] = set()
    repaired: List[Dict[str, Any]] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            logger.warning(f"[Quiz] quarantined question #{index}: not an object")
            continue
        question = dict(item)

        qid = question.get("id")
        qid = str(qid).strip() if qid is not None else ""
        if not qid or qid in used:
            qid = synthesize_id(used, rng)
        question["id"] = qid
        used.add(qid)

        question["points"] = _valid_points(question.get("points")) or 1

        if isinstance(question.get("type"), str):
            question["type"] = question["type"].strip().lower()
        repaired.append(question)
    return repaired


def validate_questions(items: List[Dict[str, Any]]) -> List[Any]:
    """Turn repaired dicts into typed questions; unknown or broken ones are quarantined."""
    questions = []
    for item in items:
        qtype = item.get("type")
        if qtype not in KNOWN_TYPES:
            logger.warning(f"[Quiz] quarantined question {item['id']}: unknown type {qtype!r}")
            continue
        try:
            questions.append(question_adapter.validate_python(item))
        except ValidationError as e:
            logger.warning(
                f"[Quiz] quarantined question {item['id']} ({qtype}): "
                f"{e.error_count()} validation error(s)"
            )
    return questions


def parse_quiz_response(raw: str, rng: Optional[random.Random] = None) -> QuizPayload:
    """Decode, repair and type the model's quiz reply.

    Raises:
        InvalidJsonResponse: the reply is not JSON.
        MissingRequiredFields: `title` or `questions` is absent.
        NoUsableQuestions: no question survived validation.
    """
    data = decode_quiz_json(raw)
    questions = validate_questions(repair_questions(data["questions"], rng))
    if not questions:
        raise NoUsableQuestions("AI response contained no usable questions")

    description = data.get("description")
    difficulty = data.get("difficulty")
    return QuizPayload(
        title=str(data["title"]),
        description=str(description) if description is not None else None,
        difficulty=str(difficulty) if difficulty is not None else None,
        questions=questions,
    )
