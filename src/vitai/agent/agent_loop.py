"""
Main orchestration loop for VitAI.

One run answers one question through a bounded Thought -> Action -> Observation cycle:

    THINKING --finish_answer--> DONE
    THINKING --no tool call / iteration cap / time budget / planner failure--> ERROR

The transcript fed back to the planner is a local accumulator owned by the run.  Progress visible
to observers (thinking steps, final answer, error) goes through :class:`Conversation`, which
discards writes once a newer question has superseded the run.
"""

from __future__ import annotations

import json
import logging
import time
from typing import (
    Callable,
    List,
    Optional,
    Sequence,
)

from vitai.agent.planner_interface import (
    BasePlanner,
    PlannerTimeoutError,
)
from vitai.agent.prompt_builder import build_prompt
from vitai.agent.tool_executor import (
    ToolExecutionError,
    UnknownToolError,
    execute_tool,
)
from vitai.config import settings
from vitai.core.conversation import Conversation
from vitai.core.repositories import REPOSITORIES
from vitai.core.schema import (
    Action,
    AgentTurn,
    ErrorKind,
    RepositoryDescriptor,
    ThinkingStep,
    ToolCall,
)
from vitai.tools import (
    FINISH_TOOL,
    get_tool_schemas,
)

logger = logging.getLogger(__name__)

NO_THOUGHT = "(No thought generated)"


def describe_action(call: ToolCall) -> str:
    """Short progress label for the action about to run."""
    if call.name == "search_code":
        return f'Searching code for "{call.args.get("query")}"...'
    if call.name == "read_file":
        return f"Reading file: {call.args.get('path')}..."
    if call.name == "list_directory_contents":
        return f"Listing contents of: {call.args.get('path')}..."
    return f"Running {call.name}..."


def format_action(call: ToolCall) -> str:
    """The transcript line recorded for a non-terminal action."""
    return f"Action: Calling tool {call.name} with arguments {json.dumps(call.args, default=str)}"


def observe(call: ToolCall) -> str:
    """Run *call* and always come back with an observation string."""
    try:
        result = execute_tool(call.name, call.args)
    except UnknownToolError:
        logger.warning("Planner called unknown tool '%s'", call.name)
        return f'Observation: Unknown tool "{call.name}" was called.'
    except ToolExecutionError as exc:
        logger.warning("Tool failure: %s", exc)
        return f"Observation: {exc}"
    return str(result)


class _Superseded(Exception):
    """A newer run took over the conversation."""


# ---------------------------------------------------------------------------
# Agent Loop
# ---------------------------------------------------------------------------
class AgentLoop:
    """
    Drives one planner through the ReAct cycle for a single run.

    Parameters
    ----------
    planner:
        Any :class:`BasePlanner`.
    conversation:
        Where progress is published; the loop only writes to the turn of the run it was given.
    repositories:
        Allow-list shown to the planner.
    max_iterations:
        Tool calls allowed before the run fails (default ``settings.MAX_ITERATIONS``).
    time_budget:
        Wall-clock seconds allowed per run; ``0`` disables (default ``settings.RUN_TIME_BUDGET``).
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        planner: BasePlanner,
        conversation: Conversation,
        repositories: Sequence[RepositoryDescriptor] = REPOSITORIES,
        max_iterations: int | None = None,
        time_budget: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.planner = planner
        self.conversation = conversation
        self.repositories = tuple(repositories)
        self.max_iterations = (
            max_iterations if max_iterations is not None else settings.MAX_ITERATIONS
        )
        self.time_budget = time_budget if time_budget is not None else settings.RUN_TIME_BUDGET
        self._clock = clock

    def run(self, run_id: str, question: str) -> Optional[AgentTurn]:
        """
        Answer *question* on behalf of *run_id*.

        Returns the final agent turn, or *None* if the run was superseded before it finished.
        """
        logger.info("Run %s started: %s", run_id, question)
        history: List[str] = []
        started = self._clock()

        try:
            for iteration in range(self.max_iterations):
                if not self.conversation.is_current(run_id):
                    raise _Superseded
                if self.time_budget and self._clock() - started >= self.time_budget:
                    self._fail(
                        run_id,
                        f"The agent exceeded its time budget of {self.time_budget:g} seconds "
                        "without finding an answer.",
                        ErrorKind.TIME_BUDGET,
                    )
                    return self.conversation.agent_turn(run_id)

                if self.step(run_id, question, history, iteration):
                    return self.conversation.agent_turn(run_id)

            self._fail(
                run_id,
                "The agent reached the maximum number of iterations without finding an answer.",
                ErrorKind.MAX_ITERATIONS,
            )
        except _Superseded:
            logger.info("Run %s superseded; stopping", run_id)
            return None
        except PlannerTimeoutError as exc:
            logger.error("Run %s planner timeout: %s", run_id, exc)
            self._fail(run_id, str(exc), ErrorKind.TIMEOUT)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Run %s failed", run_id)
            self._fail(run_id, str(exc) or type(exc).__name__, ErrorKind.UNEXPECTED)
        return self.conversation.agent_turn(run_id)

    def step(self, run_id: str, question: str, history: List[str], iteration: int) -> bool:
        """
        Execute one iteration, appending to *history*.

        Returns *True* when the run reached a terminal state.
        """
        self._publish(run_id, "Thinking...")
        prompt = build_prompt(question, self.repositories, history)
        result = self.planner.plan(prompt, get_tool_schemas())

        thought = result.text.strip() or NO_THOUGHT
        call = result.tool_call
        if call is None:
            self._fail(
                run_id, f"The agent got stuck. Last thought: {thought}", ErrorKind.PROTOCOL
            )
            return True

        history.append(f"Thought: {thought}")
        logger.info("Run %s iteration %d: %s %s", run_id, iteration + 1, call.name, call.args)

        answer = call.args.get("answer")
        if call.name == FINISH_TOOL and isinstance(answer, str):
            if not self.conversation.finish(run_id, answer):
                raise _Superseded
            logger.info("Run %s done after %d tool calls", run_id, iteration)
            return True

        history.append(format_action(call))
        self._publish(run_id, describe_action(call))
        if call.name == FINISH_TOOL:
            observation = (
                f"Observation: Invalid arguments for tool '{FINISH_TOOL}': "
                "'answer' must be a string"
            )
        else:
            observation = observe(call)
        history.append(observation)

        step = ThinkingStep(
            thought=thought,
            action=Action(tool=call.name, args=call.args),
            observation=observation,
        )
        if not self.conversation.append_step(run_id, step):
            raise _Superseded
        return False

    # ------------------------------------------------------------------ #
    # Conversation writes
    # ------------------------------------------------------------------ #
    def _publish(self, run_id: str, text: str) -> None:
        if not self.conversation.set_current_action(run_id, text):
            raise _Superseded

    def _fail(self, run_id: str, message: str, kind: ErrorKind) -> None:
        logger.warning("Run %s ended in error (%s): %s", run_id, kind.value, message)
        self.conversation.fail(run_id, message, kind)


def ask(
    question: str,
    planner: BasePlanner,
    conversation: Conversation | None = None,
    **loop_options,
) -> Optional[AgentTurn]:
    """Start a new run for *question* and drive it to completion in the calling thread."""
    conversation = conversation or Conversation()
    run_id, _ = conversation.start_run(question)
    return AgentLoop(planner, conversation, **loop_options).run(run_id, question)
