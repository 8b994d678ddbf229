"""Shared fixtures: settings isolation, a mocked GitHub API and scripted planners."""

import functools
from typing import (
    Callable,
    List,
    Mapping,
    Sequence,
    Union,
)

import httpx
import pytest

from vitai.agent.planner_interface import BasePlanner
from vitai.config import settings
from vitai.core.schema import (
    PlannerResult,
    ToolCall,
)
from vitai.tools import (
    ToolSchema,
    github,
)

Script = Union[PlannerResult, Exception, Callable[[str], PlannerResult]]


@pytest.fixture(autouse=True)
def _settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test the same configuration regardless of the environment."""
    monkeypatch.setattr(settings, "GITHUB_TOKEN", "test-token")
    monkeypatch.setattr(settings, "GITHUB_API_URL", "https://api.github.com")
    monkeypatch.setattr(settings, "ENFORCE_ALLOW_LIST", True)
    monkeypatch.setattr(settings, "MAX_ITERATIONS", 100)
    monkeypatch.setattr(settings, "RUN_TIME_BUDGET", 0.0)
    monkeypatch.setattr(settings, "PLANNER", "openai")
    monkeypatch.setattr(settings, "GEMINI_MODEL", "gemini-2.5-pro")


@pytest.fixture
def github_api(monkeypatch: pytest.MonkeyPatch) -> Callable[..., List[httpx.Request]]:
    """
    Route GitHub calls to *handler* and return the list of requests it received.

    Usage: ``requests = github_api(lambda request: httpx.Response(200, json=[]))``
    """

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> List[httpx.Request]:
        seen: List[httpx.Request] = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording)
        monkeypatch.setattr(
            github, "_make_client", functools.partial(github._make_client, transport=transport)
        )
        return seen

    return install


class ScriptedPlanner(BasePlanner):
    """Planner that replays a fixed list of responses and records every prompt it was given."""

    def __init__(self, script: Sequence[Script], repeat_last: bool = False):
        super().__init__(timeout=1.0)
        self.script = list(script)
        self.repeat_last = repeat_last
        self.prompts: List[str] = []
        self.tool_names: List[List[str]] = []

    def plan(self, prompt: str, tools: Mapping[str, ToolSchema]) -> PlannerResult:
        self.prompts.append(prompt)
        self.tool_names.append(sorted(tools))
        if self.repeat_last and len(self.script) == 1:
            item = self.script[0]
        else:
            item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(prompt)
        return item


def call(name: str, **args) -> PlannerResult:
    """Planner response selecting *name* with a short thought."""
    return PlannerResult(text=f"I will call {name}.", tool_call=ToolCall(name=name, args=args))


@pytest.fixture
def scripted_planner() -> Callable[..., ScriptedPlanner]:
    """Factory for :class:`ScriptedPlanner`."""
    return ScriptedPlanner


@pytest.fixture
def planner_call() -> Callable[..., PlannerResult]:
    """Factory for planner responses that select a tool."""
    return call
