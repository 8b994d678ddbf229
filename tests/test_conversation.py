"""Tests for run-scoped conversation state."""

import pytest
from pydantic import ValidationError

from vitai.core.conversation import Conversation
from vitai.core.schema import (
    Action,
    AgentStatus,
    ErrorKind,
    ThinkingStep,
)

STEP = ThinkingStep(
    thought="look around",
    action=Action(
        tool="list_directory_contents", args={"repository": "adoptium/TKG", "path": "."}
    ),
    observation="Observation: Contents of \".\" in repository adoptium/TKG:\n[f] README.md",
)


def test_start_run_replaces_turns() -> None:
    """Each question starts from a fresh turn list."""

    conversation = Conversation()
    first_run, _ = conversation.start_run("first?")
    second_run, agent_turn = conversation.start_run("second?")

    snapshot = conversation.snapshot()
    assert first_run != second_run
    assert snapshot.run_id == second_run
    assert [turn.type for turn in snapshot.turns] == ["user", "agent"]
    assert snapshot.turns[0].content == "second?"
    assert snapshot.turns[1].id == agent_turn.id
    assert agent_turn.status == AgentStatus.THINKING
    assert snapshot.current_action == "Thinking..."


def test_writes_from_stale_run_are_discarded() -> None:
    """A superseded run cannot touch the new run's turn."""

    conversation = Conversation()
    stale, _ = conversation.start_run("old question")
    current, _ = conversation.start_run("new question")

    assert not conversation.is_current(stale)
    assert conversation.append_step(stale, STEP) is False
    assert conversation.finish(stale, "old answer") is False
    assert conversation.fail(stale, "boom", ErrorKind.UNEXPECTED) is False
    assert conversation.set_current_action(stale, "Reading...") is False
    assert conversation.agent_turn(stale) is None

    turn = conversation.agent_turn(current)
    assert turn is not None
    assert turn.thinking_steps == []
    assert turn.status == AgentStatus.THINKING
    assert turn.final_answer is None


def test_finished_turn_is_frozen() -> None:
    """After DONE no further writes land."""

    conversation = Conversation()
    run_id, _ = conversation.start_run("q")
    assert conversation.append_step(run_id, STEP)
    assert conversation.finish(run_id, "answer")

    assert conversation.append_step(run_id, STEP) is False
    assert conversation.fail(run_id, "late", ErrorKind.UNEXPECTED) is False

    turn = conversation.agent_turn(run_id)
    assert turn is not None
    assert turn.status == AgentStatus.DONE
    assert turn.final_answer == "answer"
    assert len(turn.thinking_steps) == 1
    assert conversation.snapshot().current_action == ""


def test_fail_records_kind_and_message() -> None:
    """Errors carry a message and a kind."""

    conversation = Conversation()
    run_id, _ = conversation.start_run("q")
    conversation.fail(run_id, "The agent got stuck.", ErrorKind.PROTOCOL)

    turn = conversation.agent_turn(run_id)
    assert turn is not None
    assert turn.status == AgentStatus.ERROR
    assert turn.error == "The agent got stuck."
    assert turn.error_kind == ErrorKind.PROTOCOL


def test_snapshot_is_a_copy() -> None:
    """Observers cannot mutate the live turn through a snapshot."""

    conversation = Conversation()
    run_id, _ = conversation.start_run("q")
    conversation.append_step(run_id, STEP)

    snapshot = conversation.snapshot()
    snapshot.turns[1].thinking_steps.clear()
    snapshot.turns[1].status = AgentStatus.DONE

    turn = conversation.agent_turn(run_id)
    assert turn is not None
    assert len(turn.thinking_steps) == 1
    assert turn.status == AgentStatus.THINKING


def test_user_turn_and_steps_are_immutable() -> None:
    """User turns and recorded steps are frozen models."""

    conversation = Conversation()
    conversation.start_run("q")
    user_turn = conversation.snapshot().turns[0]

    with pytest.raises(ValidationError):
        user_turn.content = "changed"
    with pytest.raises(ValidationError):
        STEP.observation = "changed"
