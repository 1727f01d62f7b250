"""API smoke tests with an in-process client."""
import pytest
import yaml
from fastapi.testclient import TestClient

from backend.api import app, get_runner
from core.llm.errors import RateLimited
from core.orchestration.runner import OrchestrationRunner
from conftest import StubLLM

USER = {"X-User-Id": "user-1"}
OTHER = {"X-User-Id": "user-2"}


@pytest.fixture
def llm():
    return StubLLM(response="Mitochondria produce ATP.")


@pytest.fixture
def client(store, llm, settings):
    runner = OrchestrationRunner(store=store, llm=llm, settings=settings)
    app.dependency_overrides[get_runner] = lambda: runner
    yield TestClient(app)
    app.dependency_overrides.clear()


def _conversation_with_messages(client):
    r = client.post("/api/chat/conversations", json={"title": "Cells"}, headers=USER)
    assert r.status_code == 200
    conversation_id = r.json()["conversation"]["id"]
    r = client.post("/api/chat/send", json={"conversation_id": conversation_id, "message": "What are mitochondria?"}, headers=USER)
    assert r.status_code == 200
    return conversation_id


def test_root(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["message"] == "Conversation Quiz API"


def test_user_header_required(client):
    assert client.get("/api/quizzes").status_code == 422


def test_chat_flow(client):
    conversation_id = _conversation_with_messages(client)
    conversations = client.get("/api/chat/conversations", headers=USER).json()["conversations"]
    assert conversations[0]["id"] == conversation_id
    assert [m["role"] for m in conversations[0]["messages"]] == ["user", "assistant"]
    assert client.get("/api/chat/conversations", headers=OTHER).json()["conversations"] == []


def test_send_message_validation(client):
    conversation_id = _conversation_with_messages(client)
    r = client.post("/api/chat/send", json={"conversation_id": conversation_id, "message": "x" * 2001}, headers=USER)
    assert r.status_code == 422


def test_generate_quiz_precondition(client):
    r = client.post("/api/chat/conversations", json={"title": "Empty"}, headers=USER)
    conversation_id = r.json()["conversation"]["id"]
    r = client.post(f"/api/conversations/{conversation_id}/quiz", headers=USER)
    assert r.status_code == 400
    assert r.json() == {
        "success": False,
        "error": "Conversation must have at least 2 messages to generate a quiz",
    }


def test_generate_quiz_with_fallback(client, llm):
    conversation_id = _conversation_with_messages(client)
    llm.error = RateLimited()

    r = client.post(
        f"/api/conversations/{conversation_id}/quiz",
        json={"question_count": 5, "difficulty": "medium", "question_types": ["true_false"], "language": "English"},
        headers=USER,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["fallback"] is True
    assert body["error_message"] == RateLimited.default_message
    quiz = body["quiz"]
    assert quiz["difficulty"] == "medium"
    assert 1 <= quiz["questions_count"] <= 3
    assert {q["type"] for q in quiz["questions"]} == {"multiple_choice"}


def test_generate_quiz_rejects_bad_options(client):
    conversation_id = _conversation_with_messages(client)
    r = client.post(f"/api/conversations/{conversation_id}/quiz", json={"question_count": 50}, headers=USER)
    assert r.status_code == 422


def test_quiz_lifecycle(client, llm):
    conversation_id = _conversation_with_messages(client)
    llm.error = RateLimited()
    quiz_id = client.post(f"/api/conversations/{conversation_id}/quiz", headers=USER).json()["quiz"]["id"]

    assert client.get(f"/api/quizzes/{quiz_id}", headers=OTHER).status_code == 403
    assert client.get("/api/quizzes/9999", headers=USER).status_code == 404

    r = client.patch(f"/api/quizzes/{quiz_id}", json={"title": "Renamed"}, headers=USER)
    assert r.json()["quiz"]["title"] == "Renamed"

    r = client.post(f"/api/quizzes/{quiz_id}/score", json={"answers": {"q1": "a"}}, headers=USER)
    score = r.json()["score"]
    assert score["earned_points"] == 1
    assert score["correct_count"] == 1

    assert client.delete(f"/api/quizzes/{quiz_id}", headers=OTHER).status_code == 403
    assert client.delete(f"/api/quizzes/{quiz_id}", headers=USER).json()["success"] is True
    assert client.get("/api/quizzes", headers=USER).json()["quizzes"] == []


def test_export_headers(client, llm):
    conversation_id = _conversation_with_messages(client)
    llm.error = RateLimited()
    quiz_id = client.post(f"/api/conversations/{conversation_id}/quiz", headers=USER).json()["quiz"]["id"]

    r = client.get(f"/api/quizzes/{quiz_id}/export/yaml", headers=USER)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("application/x-yaml")
    assert r.headers["content-disposition"] == f'attachment; filename="quiz-{quiz_id}.yaml"'
    assert yaml.safe_load(r.text)["quiz"]["id"] == quiz_id

    r = client.get(f"/api/quizzes/{quiz_id}/export/json", headers=USER)
    assert r.headers["content-type"].startswith("application/json")
    assert r.json()["quiz"]["title"] == "Quiz from Conversation"

    assert client.get(f"/api/quizzes/{quiz_id}/export/xml", headers=USER).status_code == 400
    assert client.get(f"/api/quizzes/{quiz_id}/export/json", headers=OTHER).status_code == 403


def test_question_types(client):
    r = client.get("/api/quizzes/question-types")
    assert len(r.json()["question_types"]) == 7


def test_delete_conversation(client):
    conversation_id = _conversation_with_messages(client)
    assert client.delete(f"/api/chat/conversations/{conversation_id}", headers=OTHER).status_code == 403
    assert client.delete(f"/api/chat/conversations/{conversation_id}", headers=USER).status_code == 200
    assert client.delete(f"/api/chat/conversations/{conversation_id}", headers=USER).status_code == 404
