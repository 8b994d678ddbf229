"""
Pydantic models for VitAI API requests and responses.
"""

from pydantic import (
    BaseModel,
    Field,
)


class QuestionRequest(BaseModel):
    """A new question; replaces whatever run is in progress."""

    question: str = Field(..., min_length=1, description="Question about the repositories")


class QuestionResponse(BaseModel):
    """Identifiers of the run started for a question."""

    run_id: str
    turn_id: int
