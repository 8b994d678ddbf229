"""Terminal rendering of conversation turns."""

import json
from enum import Enum
from typing import (
    Any,
    Mapping,
)


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """Print *text* in *color*; extra arguments go to :func:`print`."""
    print(f"{color.value}{text}\033[0m", *args, **kwargs)


def format_step(index: int, step: Mapping[str, Any]) -> str:
    """Render one thinking step (as returned by the API) for the terminal."""
    action = step.get("action") or {}
    args = json.dumps(action.get("args") or {}, indent=2)
    return (
        f"[{index}] Thought: {step.get('thought', '')}\n"
        f"    Action: {action.get('tool', '?')}\n{_indent(args)}\n"
        f"    Observation:\n{_indent(step.get('observation', ''))}"
    )


def format_outcome(turn: Mapping[str, Any]) -> str:
    """Final answer, or ``Error: <message>`` for a failed turn; empty while thinking."""
    if turn.get("status") == "error":
        return f"Error: {turn.get('error')}"
    return turn.get("final_answer") or ""


def _indent(text: str, prefix: str = "      ") -> str:
    return "\n".join(prefix + line for line in str(text).splitlines())
