"""
In-memory conversation state shared between the agent loop and its observers.

Exactly one run is current at a time.  Every write names the run it comes from; writes from a run
that a newer question has superseded are dropped, so a slow loop that resolves late can never touch
the turns of the question that replaced it.
"""

import itertools
import logging
import threading
import uuid
from typing import (
    Callable,
    List,
    Optional,
    Tuple,
)

from vitai.core.schema import (
    AgentStatus,
    AgentTurn,
    ConversationSnapshot,
    ErrorKind,
    ThinkingStep,
    Turn,
    UserTurn,
)

logger = logging.getLogger(__name__)


class Conversation:
    """Lock-guarded turn list with run-id checked writes and snapshot reads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._turns: List[Turn] = []
        self._run_id: Optional[str] = None
        self._agent_turn: Optional[AgentTurn] = None
        self._current_action = ""

    # ------------------------------------------------------------------ #
    # Run lifecycle
    # ------------------------------------------------------------------ #
    def start_run(self, question: str) -> Tuple[str, AgentTurn]:
        """Replace the turn list with a new question and a live agent turn."""
        run_id = uuid.uuid4().hex
        with self._lock:
            if self._agent_turn is not None and self._agent_turn.status == AgentStatus.THINKING:
                logger.info("Run %s superseded by %s", self._run_id, run_id)
            user_turn = UserTurn(id=next(self._ids), content=question)
            agent_turn = AgentTurn(id=next(self._ids), run_id=run_id)
            self._turns = [user_turn, agent_turn]
            self._agent_turn = agent_turn
            self._run_id = run_id
            self._current_action = "Thinking..."
            return run_id, agent_turn.model_copy(deep=True)

    def is_current(self, run_id: str) -> bool:
        """Return *True* while *run_id* owns the live agent turn."""
        with self._lock:
            return run_id == self._run_id

    # ------------------------------------------------------------------ #
    # Writes (all return False when the run is stale or already finished)
    # ------------------------------------------------------------------ #
    def _mutate(self, run_id: str, update: Callable[[AgentTurn], None]) -> bool:
        with self._lock:
            turn = self._agent_turn
            if run_id != self._run_id or turn is None:
                logger.debug("Discarding write from stale run %s", run_id)
                return False
            if turn.status != AgentStatus.THINKING:
                logger.debug("Discarding write to finished run %s", run_id)
                return False
            update(turn)
            return True

    def set_current_action(self, run_id: str, text: str) -> bool:
        """Publish a short label describing what the loop is doing right now."""

        def _update(_turn: AgentTurn) -> None:
            self._current_action = text

        return self._mutate(run_id, _update)

    def append_step(self, run_id: str, step: ThinkingStep) -> bool:
        """Record one completed Thought/Action/Observation iteration."""
        return self._mutate(run_id, lambda turn: turn.thinking_steps.append(step))

    def finish(self, run_id: str, answer: str) -> bool:
        """Freeze the turn as DONE with *answer*."""

        def _update(turn: AgentTurn) -> None:
            turn.final_answer = answer
            turn.status = AgentStatus.DONE
            self._current_action = ""

        return self._mutate(run_id, _update)

    def fail(self, run_id: str, message: str, kind: ErrorKind) -> bool:
        """Freeze the turn as ERROR with *message*."""

        def _update(turn: AgentTurn) -> None:
            turn.error = message
            turn.error_kind = kind
            turn.status = AgentStatus.ERROR
            self._current_action = ""

        return self._mutate(run_id, _update)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def agent_turn(self, run_id: str) -> Optional[AgentTurn]:
        """Return a copy of the agent turn owned by *run_id*, if it is still current."""
        with self._lock:
            if run_id != self._run_id or self._agent_turn is None:
                return None
            return self._agent_turn.model_copy(deep=True)

    def snapshot(self) -> ConversationSnapshot:
        """Return a deep copy of the whole conversation."""
        with self._lock:
            return ConversationSnapshot(
                run_id=self._run_id,
                current_action=self._current_action,
                turns=[turn.model_copy(deep=True) for turn in self._turns],
            )
