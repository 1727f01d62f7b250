"""FastAPI backend for the Conversation Quiz service."""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from backend.schemas import Quiz, QuizGenerationOptions
from core.config import get_settings
from core.errors import QuizServiceError
from core.orchestration.runner import OrchestrationRunner

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Conversation Quiz API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_runner: Optional[OrchestrationRunner] = None


def get_runner() -> OrchestrationRunner:
    """Get or create the global runner."""
    global _runner
    if _runner is None:
        _runner = OrchestrationRunner()
    return _runner


def current_user(x_user_id: str = Header(..., min_length=1)) -> str:
    """Identity of the caller; authentication happens upstream."""
    return x_user_id


@app.exception_handler(QuizServiceError)
async def quiz_service_error_handler(request: Request, exc: QuizServiceError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc)})


class CreateConversationRequest(BaseModel):
    title: str = Field(min_length=1, max_length=100)


class SendMessageRequest(BaseModel):
    conversation_id: int
    message: str = Field(min_length=1, max_length=2000)


class RenameQuizRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)


class ScoreRequest(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)


def format_quiz(quiz: Quiz) -> Dict[str, Any]:
    data = quiz.model_dump(mode="json", exclude_none=True)
    data["questions_count"] = quiz.questions_count
    data["total_points"] = quiz.total_points
    return data


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Conversation Quiz API",
        "version": "0.1.0"
    }


# ── chat ──────────────────────────────────────────────────────────────────────

@app.post("/api/chat/conversations")
def create_conversation(
    request: CreateConversationRequest,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    conversation = runner.create_conversation(user_id, request.title)
    return {"success": True, "conversation": conversation.model_dump(mode="json")}


@app.get("/api/chat/conversations")
def list_conversations(
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    conversations = runner.list_conversations(user_id)
    return {"conversations": [c.model_dump(mode="json") for c in conversations]}


@app.delete("/api/chat/conversations/{conversation_id}")
def delete_conversation(
    conversation_id: int,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    runner.delete_conversation(user_id, conversation_id)
    return {"success": True, "message": "Conversation deleted successfully"}


@app.post("/api/chat/send")
def send_message(
    request: SendMessageRequest,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    reply = runner.send_message(user_id, request.conversation_id, request.message)
    body = {"success": True, "message": reply.message.model_dump(mode="json")}
    if reply.fallback:
        body["fallback"] = True
        body["error_message"] = reply.error_message
    return body


# ── quizzes ───────────────────────────────────────────────────────────────────

@app.get("/api/quizzes/question-types")
def question_types():
    return {"success": True, "question_types": OrchestrationRunner.question_types()}


@app.post("/api/conversations/{conversation_id}/quiz")
def generate_quiz(
    conversation_id: int,
    options: Optional[QuizGenerationOptions] = None,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    result = runner.generate_quiz(user_id, conversation_id, options)
    body = {"success": True, "quiz": format_quiz(result.quiz)}
    if result.fallback:
        body["fallback"] = True
        body["error_message"] = result.error_message
    return body


@app.get("/api/quizzes")
def list_quizzes(
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    return {"success": True, "quizzes": [format_quiz(q) for q in runner.list_quizzes(user_id)]}


@app.get("/api/quizzes/{quiz_id}")
def show_quiz(
    quiz_id: int,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    return {"success": True, "quiz": format_quiz(runner.get_quiz(user_id, quiz_id))}


@app.patch("/api/quizzes/{quiz_id}")
def rename_quiz(
    quiz_id: int,
    request: RenameQuizRequest,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    return {"success": True, "quiz": format_quiz(runner.rename_quiz(user_id, quiz_id, request.title))}


@app.delete("/api/quizzes/{quiz_id}")
def delete_quiz(
    quiz_id: int,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    runner.delete_quiz(user_id, quiz_id)
    return {"success": True, "message": "Quiz deleted successfully"}


@app.post("/api/quizzes/{quiz_id}/score")
def score_quiz(
    quiz_id: int,
    request: ScoreRequest,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    result = runner.score_quiz(user_id, quiz_id, request.answers)
    return {"success": True, "score": result.model_dump(mode="json")}


@app.get("/api/quizzes/{quiz_id}/export/{fmt}")
def export_quiz(
    quiz_id: int,
    fmt: str,
    user_id: str = Depends(current_user),
    runner: OrchestrationRunner = Depends(get_runner),
):
    try:
        exported = runner.export_quiz(user_id, quiz_id, fmt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(
        content=exported.content,
        media_type=exported.content_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "backend.api:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
