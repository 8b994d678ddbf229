"""
Parser for the plain-text ReAct protocol.

Planners without native tool calling are asked to answer in the form

    Thought: <reasoning>
    Action: {"tool": "<name>", "args": { ... }}

``parse_react_output`` splits such a completion into the thought text and at most one
:class:`ToolCall`.  A completion without an ``Action:`` line yields no call; an
``Action:`` line that cannot be decoded raises :class:`ReactParseError`.
"""

import json
import logging
import re
from typing import (
    Optional,
    Tuple,
)

from vitai.core.schema import ToolCall

logger = logging.getLogger(__name__)

_ACTION_RE = re.compile(r"^\s*Action\s*:\s*", re.IGNORECASE | re.MULTILINE)
_THOUGHT_RE = re.compile(r"^\s*Thought\s*:\s*", re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)


class ReactParseError(ValueError):
    """Raised when an ``Action:`` payload is not a ``{"tool": ..., "args": {...}}`` object."""


def sanitize_json_string(content: str) -> str:
    """Cut the first balanced ``{...}`` object out of LLM output."""
    match = _FENCE_RE.search(content)
    if match:
        content = match.group(1).strip()

    # Drop control characters except whitespace
    content = "".join(ch for ch in content if ch >= " " or ch in "\n\r\t")

    open_idx = content.find("{")
    if open_idx < 0:
        return content
    depth = 0
    in_string = False
    escaped = False
    for i in range(open_idx, len(content)):
        ch = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return content[open_idx : i + 1]
    return content[open_idx:]


def parse_react_output(content: str) -> Tuple[str, Optional[ToolCall]]:
    """Return ``(thought, tool_call)``; only the first ``Action:`` line is honoured."""
    match = _ACTION_RE.search(content)
    if match is None:
        return _THOUGHT_RE.sub("", content.strip(), count=1).strip(), None

    thought = _THOUGHT_RE.sub("", content[: match.start()].strip(), count=1).strip()
    payload = sanitize_json_string(content[match.end() :])
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.error("Failed to decode action payload: %s", payload)
        raise ReactParseError(f"Action is not valid JSON: {exc}") from exc

    if not isinstance(data, dict) or not isinstance(data.get("tool"), str) or not data["tool"]:
        raise ReactParseError("Action must be an object with a non-empty 'tool' name")
    args = data.get("args", {})
    if not isinstance(args, dict):
        raise ReactParseError("Action 'args' must be an object")
    return thought, ToolCall(name=data["tool"], args=args)
