"""JSON / YAML export of stored quizzes."""
import json
from typing import Any, Dict, NamedTuple

import yaml

from backend.schemas import Quiz

YAML_INLINE_LEVEL = 4
YAML_INDENT = 2

CONTENT_TYPES = {
    "json": "application/json",
    "yaml": "application/x-yaml",
}


class ExportedFile(NamedTuple):
    content: bytes
    content_type: str
    filename: str


class _QuizDumper(yaml.SafeDumper):
    """Block style down to YAML_INLINE_LEVEL levels, flow style below that."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._depth = 0

    def ignore_aliases(self, data):
        return True

    def represent_data(self, data):
        self._depth += 1
        try:
            node = super().represent_data(data)
        finally:
            self._depth -= 1
        if isinstance(node, (yaml.MappingNode, yaml.SequenceNode)):
            node.flow_style = self._depth > YAML_INLINE_LEVEL
        return node


def quiz_export_payload(quiz: Quiz) -> Dict[str, Any]:
    """The exported subset of a quiz."""
    return {
        "quiz": {
            "id": quiz.id,
            "title": quiz.title,
            "description": quiz.description,
            "conversation_id": quiz.conversation_id,
            "created_at": quiz.created_at.isoformat(),
            "difficulty": quiz.difficulty,
            "estimated_time": quiz.estimated_time,
            "questions": [q.model_dump(mode="json", exclude_none=True) for q in quiz.questions],
        }
    }


def export_json(quiz: Quiz) -> bytes:
    return json.dumps(quiz_export_payload(quiz), indent=4, ensure_ascii=False).encode("utf-8")


def export_yaml(quiz: Quiz) -> bytes:
    text = yaml.dump(
        quiz_export_payload(quiz),
        Dumper=_QuizDumper,
        indent=YAML_INDENT,
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )
    return text.encode("utf-8")


def export_quiz(quiz: Quiz, fmt: str) -> ExportedFile:
    """Serialize `quiz` as `json` or `yaml` with its download metadata."""
    fmt = (fmt or "").lower()
    if fmt == "yml":
        fmt = "yaml"
    if fmt == "json":
        content = export_json(quiz)
    elif fmt == "yaml":
        content = export_yaml(quiz)
    else:
        raise ValueError(f"Unsupported export format: {fmt!r}")
    return ExportedFile(content, CONTENT_TYPES[fmt], f"quiz-{quiz.id}.{fmt}")
