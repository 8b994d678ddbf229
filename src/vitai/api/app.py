"""
Core API backend for VitAI.

The agent loop runs in a background task; callers poll the conversation to watch it think.
It exposes the following endpoints:
- **GET /health**        - liveness probe for health checks.
- **GET /repositories**  - the repository allow-list.
- **POST /questions**    - start a run: {"question": "..."}; supersedes any run in progress.
- **GET /conversation**  - snapshot of the current turns and the action in progress.
"""

import logging
from typing import List

from fastapi import (
    BackgroundTasks,
    FastAPI,
    HTTPException,
)

from vitai.agent.agent_loop import AgentLoop
from vitai.agent.planner_interface import (
    BasePlanner,
    load_planner,
)
from vitai.api.models import (
    QuestionRequest,
    QuestionResponse,
)
from vitai.config import settings
from vitai.core.conversation import Conversation
from vitai.core.repositories import REPOSITORIES
from vitai.core.schema import (
    ConversationSnapshot,
    RepositoryDescriptor,
)

logger = logging.getLogger(__name__)

# A single conversation per process; nothing survives a restart.
conversation = Conversation()

app = FastAPI(title="VitAI API", version="0.1.0", description="Ask questions about GitHub code")


def _run_agent(planner: BasePlanner, run_id: str, question: str) -> None:
    AgentLoop(planner, conversation).run(run_id, question)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/repositories", response_model=List[RepositoryDescriptor], summary="Allow-list")
async def list_repositories() -> List[RepositoryDescriptor]:
    """List the repositories the agent may reference."""
    return list(REPOSITORIES)


@app.post("/questions", response_model=QuestionResponse, summary="Ask a question")
def ask_question(req: QuestionRequest, background_tasks: BackgroundTasks) -> QuestionResponse:
    """Start a new agent run for *req.question*."""
    question = req.question.strip()
    if not question:
        raise HTTPException(status_code=422, detail="Question must not be blank.")
    try:
        planner = load_planner()
    except ValueError as exc:
        logger.error("Cannot load planner: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    run_id, turn = conversation.start_run(question)
    background_tasks.add_task(_run_agent, planner, run_id, question)
    return QuestionResponse(run_id=run_id, turn_id=turn.id)


@app.get("/conversation", response_model=ConversationSnapshot, summary="Conversation snapshot")
async def get_conversation() -> ConversationSnapshot:
    """Return the turns of the current question, including partial progress."""
    return conversation.snapshot()


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in development).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting VitAI API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    if not settings.GITHUB_TOKEN:
        logger.warning("GITHUB_TOKEN is not set; every tool call will report missing configuration")

    uvicorn.run(
        "vitai.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m vitai.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
