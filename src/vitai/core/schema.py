"""
Schema definitions for planner <-> agent <-> tool messages and conversation state.

These data models serve as the contract between the planner LLM, the agent loop, the tools and
whatever renders the conversation.  We keep them separate from runtime logic so they can be imported
anywhere without side-effects.
"""

from enum import Enum
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class RepositoryDescriptor(BaseModel):
    """A repository the agent is allowed to reference."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    description: str = ""

    @property
    def full_name(self) -> str:
        """Return the ``owner/name`` form used in tool arguments."""
        return f"{self.owner}/{self.name}"


class ToolCall(BaseModel):
    """A call that the planner wants the agent to execute."""

    name: str = Field(..., description="Registered tool name")
    args: Dict[str, Any] = Field(default_factory=dict, description="Keyword arguments for the tool")


class PlannerResult(BaseModel):
    """One planner response: free text plus at most one selected tool call."""

    text: str = ""
    tool_call: Optional[ToolCall] = None


class Action(BaseModel):
    """The action half of a thinking step, as shown to the user."""

    model_config = ConfigDict(frozen=True)

    tool: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ThinkingStep(BaseModel):
    """One Thought/Action/Observation iteration.  Never mutated once recorded."""

    model_config = ConfigDict(frozen=True)

    thought: str
    action: Action
    observation: str


class AgentStatus(str, Enum):
    """Lifecycle of an agent turn."""

    THINKING = "thinking"
    DONE = "done"
    ERROR = "error"


class ErrorKind(str, Enum):
    """Why a run ended in ``AgentStatus.ERROR``."""

    PROTOCOL = "protocol"  # planner returned no tool call
    MAX_ITERATIONS = "max_iterations"
    TIME_BUDGET = "time_budget"
    TIMEOUT = "timeout"  # a single planner call timed out
    UNEXPECTED = "unexpected"


class UserTurn(BaseModel):
    """The user's question."""

    model_config = ConfigDict(frozen=True)

    type: Literal["user"] = "user"
    id: int
    content: str


class AgentTurn(BaseModel):
    """The agent's multi-step response to a question."""

    type: Literal["agent"] = "agent"
    id: int
    run_id: str
    thinking_steps: List[ThinkingStep] = Field(default_factory=list)
    final_answer: Optional[str] = None
    status: AgentStatus = AgentStatus.THINKING
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


Turn = Annotated[Union[UserTurn, AgentTurn], Field(discriminator="type")]


class ConversationSnapshot(BaseModel):
    """Read-only copy of the conversation handed to observers."""

    run_id: Optional[str] = None
    current_action: str = ""
    turns: List[Turn] = Field(default_factory=list)
