"""
Tool registry for VitAI.

This module provides a decorator to register tools and a registry to look them up by name.  Each
tool is a function called with keyword arguments that returns an observation string.  The registry
doubles as the declaration of what the planner may call: names, descriptions and parameter schemas
are derived from the registered functions.
"""

import inspect
import logging
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    TypedDict,
    get_type_hints,
)

logger = logging.getLogger(__name__)

TOOL_REGISTRY: Dict[str, Callable[..., str]] = {}
"""Global registry of tool functions."""

_PARAM_DESCRIPTIONS: Dict[str, Mapping[str, str]] = {}

FINISH_TOOL = "finish_answer"
"""The only tool that ends a run."""

_JSON_TYPES = {str: "string", int: "integer", float: "number", bool: "boolean"}


def register_tool(name: str, params: Mapping[str, str] | None = None) -> Callable:
    """
    Register a tool function with the given name.

    The function's docstring becomes the tool description shown to the planner, and *params* maps
    each parameter name to its description.  Types and requiredness come from the signature:

        @register_tool("read_file", {"repository": "...", "path": "..."})
        def read_file(repository: str, path: str) -> str:
            \"\"\"Reads a file.\"\"\"

    Parameters
    ----------
    name: str
        The name of the tool.  This must be unique and is what the planner calls.
    params: Mapping[str, str] | None
        Per-parameter descriptions.
    Returns
    -------
    Callable
        A decorator that registers the function with the given name.
    Raises
    ------
    ValueError
        If a function with the same name is already registered.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name}' is already registered.")
    logger.debug("Registering tool '%s'", name)

    def wrapper(fn: Callable[..., str]) -> Callable[..., str]:
        TOOL_REGISTRY[name] = fn
        _PARAM_DESCRIPTIONS[name] = dict(params or {})
        return fn

    return wrapper


class ParameterInfo(TypedDict):
    """
    Information about a tool parameter.
    """

    type: str
    required: bool
    description: str


class ToolSchema(TypedDict):
    """
    Schema for a tool function
    """

    description: str
    parameters: Mapping[str, ParameterInfo]


def get_tool_schemas() -> Mapping[str, ToolSchema]:
    """Extract parameter information from registered tools."""
    tool_schemas: Dict[str, ToolSchema] = {}
    for name, func in TOOL_REGISTRY.items():
        sig = inspect.signature(func)
        type_hints = get_type_hints(func)
        descriptions = _PARAM_DESCRIPTIONS.get(name, {})
        params = {}
        for param_name, param in sig.parameters.items():
            param_type = type_hints.get(param_name, str)
            params[param_name] = ParameterInfo(
                type=_JSON_TYPES.get(param_type, "string"),
                required=param.default == inspect.Parameter.empty,
                description=descriptions.get(param_name, ""),
            )
        tool_schemas[name] = {
            "description": inspect.getdoc(func) or "",
            "parameters": params,
        }
    return tool_schemas


def to_json_schema(schema: ToolSchema) -> Dict[str, Any]:
    """Convert a :class:`ToolSchema` into a JSON-schema object usable by LLM tool APIs."""
    properties: Dict[str, Any] = {}
    required: List[str] = []
    for param_name, info in schema["parameters"].items():
        properties[param_name] = {"type": info["type"], "description": info["description"]}
        if info["required"]:
            required.append(param_name)
    return {"type": "object", "properties": properties, "required": required}


@register_tool(
    FINISH_TOOL,
    {
        "answer": "The final, comprehensive answer to the user's question in Markdown format.",
    },
)
def finish_answer(answer: str) -> str:
    """Call this function when you have enough information to answer the user's question."""
    return answer


# Register the GitHub adapters; they import ``register_tool`` from this module.
from vitai.tools import github  # noqa: E402,F401  pylint: disable=wrong-import-position
