"""Dispatches tool calls registered in ``vitai.tools`` and wraps errors."""

import logging
from typing import (
    Any,
    Dict,
)

from vitai.tools import (
    TOOL_REGISTRY,
    get_tool_schemas,
)

logger = logging.getLogger(__name__)

_PY_TYPES: Dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": (int, float),
    "boolean": bool,
}


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


class UnknownToolError(ToolExecutionError):
    """Raised when the planner names a tool that is not registered."""


class InvalidToolArgumentsError(ToolExecutionError):
    """Raised when the argument object does not match the tool's schema."""


def validate_args(name: str, args: Any) -> Dict[str, Any]:
    """
    Check *args* against the registered schema of *name*.

    Missing required parameters, unexpected parameters and wrongly typed values are rejected,
    never coerced.
    """
    schema = get_tool_schemas().get(name)
    if schema is None:
        raise UnknownToolError(f"Tool '{name}' is not registered.")
    if not isinstance(args, dict):
        raise InvalidToolArgumentsError(
            f"Invalid arguments for tool '{name}': expected an object, got {type(args).__name__}"
        )

    params = schema["parameters"]
    problems = []
    missing = [p for p, info in params.items() if info["required"] and p not in args]
    if missing:
        problems.append(f"missing {', '.join(missing)}")
    unexpected = [key for key in args if key not in params]
    if unexpected:
        problems.append(f"unexpected {', '.join(unexpected)}")
    for key, value in args.items():
        if key not in params:
            continue
        type_name = params[key]["type"]
        expected = _PY_TYPES.get(type_name)
        if expected is None:
            continue
        # bool is an int subclass; only accept it where a boolean is declared
        if not isinstance(value, expected) or (isinstance(value, bool) and type_name != "boolean"):
            problems.append(f"'{key}' must be a {type_name}")
    if problems:
        details = "; ".join(problems)
        raise InvalidToolArgumentsError(f"Invalid arguments for tool '{name}': {details}")
    return args


def execute_tool(name: str, args: Dict[str, Any] | None = None) -> Any:
    """
    Look up *name* in the registry and invoke it with *args*.

    Parameters
    ----------
    name:
        The registered tool name.
    args:
        Keyword arguments, validated against the tool's schema before the call.  If *None*, an
        empty dict is assumed.

    Returns
    -------
    Any
        Whatever the tool function returns (an observation string for the GitHub tools).

    Raises
    ------
    UnknownToolError
        If the tool is missing.
    InvalidToolArgumentsError
        If *args* do not match the tool's schema.
    ToolExecutionError
        If the tool invocation raises an exception.
    """

    if args is None:
        args = {}

    tool_fn = TOOL_REGISTRY.get(name)
    if tool_fn is None:
        raise UnknownToolError(f"Tool '{name}' is not registered.")
    validate_args(name, args)

    try:
        logger.debug("Executing tool '%s' with args=%s", name, args)
        return tool_fn(**args)
    except TypeError as exc:
        # Argument mismatch - give the caller a clean exception.
        logger.exception("Argument error while executing tool '%s'", name)
        raise InvalidToolArgumentsError(f"Invalid arguments for tool '{name}': {exc}") from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", name)
        raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc
