"""
Planner interface for VitAI.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
conversation state) stays model-agnostic.  A planner receives the full prompt plus the tool
declarations and returns free text and at most one selected tool call.

We support four back-ends out of the box:

1. **OpenAI**, **Anthropic** and **Gemini** via their SDKs, using native tool calling
   (requires env keys).
2. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models, using a plain-text
   ``Thought:`` / ``Action:`` protocol.

Additional providers can be added by subclassing :class:`BasePlanner` and registering via
:func:`register_planner`.

Planners never swallow failures: timeouts raise :class:`PlannerTimeoutError`, everything else raises
:class:`PlannerError`, and the agent loop decides what that means for the run.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Type,
)

import httpx

from vitai.agent.react_parser import (
    ReactParseError,
    parse_react_output,
)
from vitai.config import settings
from vitai.core.schema import (
    PlannerResult,
    ToolCall,
)
from vitai.tools import (
    ToolSchema,
    to_json_schema,
)

logger = logging.getLogger(__name__)


class PlannerError(RuntimeError):
    """Raised when the planner cannot produce a response."""


class PlannerTimeoutError(PlannerError):
    """Raised when a single planner call exceeds its timeout."""


class PlannerResponseError(PlannerError):
    """Raised when the planner's response cannot be interpreted."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PLANNER_REGISTRY: dict[str, Type["BasePlanner"]] = {}


def register_planner(name: str) -> Callable:
    """Decorator to register a planner class under *name*."""

    def wrapper(cls: Type["BasePlanner"]) -> Type["BasePlanner"]:
        _PLANNER_REGISTRY[name] = cls
        return cls

    return wrapper


def load_planner(name: str | None = None) -> "BasePlanner":
    """
    Factory that returns an instantiated planner.

    Fallback order:
    1. *name* arg
    2. ``settings.PLANNER`` env option
    3. default: ``"openai"``
    """

    target = name or getattr(settings, "PLANNER", "openai")
    cls = _PLANNER_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Planner '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BasePlanner(ABC):
    """Abstract planner that converts a prompt + tool declarations -> text + one tool call."""

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.PLANNER_TIMEOUT

    @staticmethod
    def _describe_tools(tool_schemas: Mapping[str, ToolSchema]) -> str:
        """One ``- name(param: type): description`` line per tool."""
        tools_info = []
        for tool_name, schema in tool_schemas.items():
            param_desc = ", ".join(
                f"{p}: {info['type']}" for p, info in schema["parameters"].items()
            )
            tools_info.append(f"- {tool_name}({param_desc}): {schema['description']}")
        return "\n".join(tools_info)

    @staticmethod
    def _first_call(calls: List[ToolCall]) -> ToolCall | None:
        if len(calls) > 1:
            logger.warning(
                "Planner proposed %d tool calls; only '%s' is executed", len(calls), calls[0].name
            )
        return calls[0] if calls else None

    @abstractmethod
    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        """Return the planner's text and at most one selected tool call."""


# ---------------------------------------------------------------------------
# Concrete planners
# ---------------------------------------------------------------------------
@register_planner("openai")
class OpenAIPlanner(BasePlanner):
    """OpenAI chat-completions planner with function tools."""

    def _client(self) -> Any:
        import openai  # pylint: disable=import-outside-toplevel

        return openai.OpenAI(api_key=settings.OPENAI_API_KEY, timeout=self.timeout)

    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        import openai  # pylint: disable=import-outside-toplevel

        client = self._client()
        try:
            resp = client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[{"role": "user", "content": prompt}],
                tools=[
                    {
                        "type": "function",
                        "function": {
                            "name": name,
                            "description": schema["description"],
                            "parameters": to_json_schema(schema),
                        },
                    }
                    for name, schema in tools.items()
                ],
                parallel_tool_calls=False,
                temperature=0.2,
            )
        except openai.APITimeoutError as exc:
            raise PlannerTimeoutError(f"OpenAI call timed out after {self.timeout:g}s") from exc
        except openai.OpenAIError as exc:
            logger.error("OpenAI planner error: %s", exc)
            raise PlannerError(f"Error calling OpenAI: {exc}") from exc

        if not resp.choices:
            raise PlannerResponseError("Empty response from OpenAI")
        message = resp.choices[0].message
        logger.debug("OpenAI planner response: %s", message)

        calls: List[ToolCall] = []
        for tool_call in message.tool_calls or []:
            try:
                args = json.loads(tool_call.function.arguments or "{}")
            except json.JSONDecodeError as exc:
                raise PlannerResponseError(
                    f"Malformed arguments for tool '{tool_call.function.name}': {exc}"
                ) from exc
            if not isinstance(args, dict):
                raise PlannerResponseError(
                    f"Arguments for tool '{tool_call.function.name}' are not an object"
                )
            calls.append(ToolCall(name=tool_call.function.name, args=args))

        return PlannerResult(text=message.content or "", tool_call=self._first_call(calls))


@register_planner("anthropic")
class AnthropicPlanner(BasePlanner):
    """Anthropic Claude planner with native tool use."""

    def _client(self) -> Any:
        import anthropic  # pylint: disable=import-outside-toplevel

        return anthropic.Anthropic(api_key=settings.ANTHROPIC_API_KEY, timeout=self.timeout)

    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        import anthropic  # pylint: disable=import-outside-toplevel

        client = self._client()
        try:
            response = client.messages.create(
                model=settings.ANTHROPIC_MODEL,
                max_tokens=8192,
                messages=[{"role": "user", "content": prompt}],
                tools=[
                    {
                        "name": name,
                        "description": schema["description"],
                        "input_schema": to_json_schema(schema),
                    }
                    for name, schema in tools.items()
                ],
                tool_choice={"type": "auto", "disable_parallel_tool_use": True},
                temperature=0.2,
            )
        except anthropic.APITimeoutError as exc:
            raise PlannerTimeoutError(f"Anthropic call timed out after {self.timeout:g}s") from exc
        except anthropic.AnthropicError as exc:
            logger.error("Anthropic planner error: %s", exc)
            raise PlannerError(f"Error calling Anthropic: {exc}") from exc

        texts: List[str] = []
        calls: List[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                if not isinstance(block.input, dict):
                    raise PlannerResponseError(
                        f"Arguments for tool '{block.name}' are not an object"
                    )
                calls.append(ToolCall(name=block.name, args=block.input))
        logger.debug("Anthropic planner response: %s", response.content)

        return PlannerResult(text="\n".join(texts), tool_call=self._first_call(calls))


@register_planner("gemini")
class GeminiPlanner(BasePlanner):
    """Google Gemini planner with function declarations."""

    def _client(self) -> Any:
        from google import genai  # pylint: disable=import-outside-toplevel

        # http_options timeout is in milliseconds
        return genai.Client(
            api_key=settings.GEMINI_API_KEY,
            http_options={"timeout": int(self.timeout * 1000)},
        )

    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        from google.genai import errors  # pylint: disable=import-outside-toplevel

        client = self._client()
        try:
            response = client.models.generate_content(
                model=settings.GEMINI_MODEL,
                contents=prompt,
                config={
                    "tools": [
                        {
                            "function_declarations": [
                                {
                                    "name": name,
                                    "description": schema["description"],
                                    "parameters_json_schema": to_json_schema(schema),
                                }
                                for name, schema in tools.items()
                            ]
                        }
                    ],
                    "automatic_function_calling": {"disable": True},
                    "temperature": 0.2,
                },
            )
        except httpx.TimeoutException as exc:
            raise PlannerTimeoutError(f"Gemini call timed out after {self.timeout:g}s") from exc
        except (errors.APIError, httpx.HTTPError) as exc:
            logger.error("Gemini planner error: %s", exc)
            raise PlannerError(f"Error calling Gemini: {exc}") from exc

        if not response.candidates or response.candidates[0].content is None:
            raise PlannerResponseError("Empty response from Gemini")
        logger.debug("Gemini planner response: %s", response.candidates[0].content)

        texts: List[str] = []
        calls: List[ToolCall] = []
        for part in response.candidates[0].content.parts or []:
            if part.function_call is not None:
                args = part.function_call.args or {}
                if not isinstance(args, dict):
                    raise PlannerResponseError(
                        f"Arguments for tool '{part.function_call.name}' are not an object"
                    )
                calls.append(ToolCall(name=part.function_call.name, args=args))
            elif part.text and not part.thought:
                texts.append(part.text)

        return PlannerResult(text="\n".join(texts), tool_call=self._first_call(calls))


@register_planner("tgi")
class TGIPlanner(BasePlanner):
    """TGI-based planner speaking the plain-text Thought/Action protocol over httpx."""

    RESPONSE_FORMAT = """\
Respond in exactly this format and stop after the Action line:
Thought: <your reasoning>
Action: {"tool": "<tool name>", "args": { ... }}

Available tools:
"""

    def __init__(
        self, timeout: float | None = None, transport: httpx.BaseTransport | None = None
    ) -> None:
        super().__init__(timeout)
        self._transport = transport

    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        """Call TGI endpoint and parse the completion into text + tool call."""
        endpoint = getattr(settings, "TGI_ENDPOINT", "http://tgi:8080/generate")
        payload: Dict[str, Any] = {
            "inputs": (
                f"{prompt}\n\n{self.RESPONSE_FORMAT}{self._describe_tools(tools)}\n\nThought:"
            ),
            "parameters": {
                "max_new_tokens": 1024,
                "temperature": 0.2,
                "stop": ["Observation:", "</s>"],
            },
        }

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(endpoint, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise PlannerTimeoutError(f"TGI call timed out after {self.timeout:g}s") from exc
        except httpx.HTTPError as exc:
            logger.error("TGI request error: %s", exc)
            raise PlannerError(f"Error calling TGI endpoint: {exc}") from exc
        except ValueError as exc:
            raise PlannerResponseError(f"TGI returned invalid JSON: {exc}") from exc

        if isinstance(data, list) and data:
            data = data[0]
        if not isinstance(data, dict) or not isinstance(data.get("generated_text"), str):
            raise PlannerResponseError("TGI response has no 'generated_text'")
        content = data["generated_text"]
        logger.debug("TGI planner response: %s", content)

        try:
            thought, call = parse_react_output(content)
        except ReactParseError as exc:
            raise PlannerResponseError(str(exc)) from exc
        return PlannerResult(text=thought, tool_call=call)
