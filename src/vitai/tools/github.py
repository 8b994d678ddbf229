"""
GitHub tool adapters.

Each adapter turns planner-selected arguments into one call against the GitHub REST API and returns
a single observation string.  Failures never escape: missing configuration, malformed arguments,
non-2xx responses and transport errors all come back as text the planner can reason about.
"""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Tuple,
)
from urllib.parse import quote

import httpx

from vitai.config import settings
from vitai.core.repositories import (
    REPOSITORIES,
    is_allowed,
    parse_repository,
)
from vitai.tools import register_tool

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 5
MAX_FILE_CHARS = 4000

_SEARCH_MEDIA_TYPE = "application/vnd.github.v3.text-match+json"
_RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"
_JSON_MEDIA_TYPE = "application/vnd.github.v3+json"

_REPOSITORY_PARAM = 'The repository to use, formatted as "owner/repo".'


class GitHubAPIError(RuntimeError):
    """Raised for a non-2xx response from the GitHub API."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------
def _make_client(transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Build an authenticated client for one request."""
    return httpx.Client(
        base_url=settings.GITHUB_API_URL,
        timeout=settings.TOOL_TIMEOUT,
        headers={"Authorization": f"Bearer {settings.GITHUB_TOKEN}"},
        transport=transport,
    )


def _get(url: str, accept: str, params: Dict[str, str] | None = None) -> httpx.Response:
    with _make_client() as client:
        logger.debug("GET %s params=%s", url, params)
        response = client.get(url, params=params, headers={"Accept": accept})
    if not response.is_success:
        raise GitHubAPIError(response.status_code, response.text)
    return response


def _contents_url(owner: str, name: str, path: str) -> str:
    path = path.strip().strip("/")
    if path == ".":
        path = ""
    return f"/repos/{owner}/{name}/contents/{quote(path, safe='/')}"


def _precheck(repository: Any) -> Tuple[str, str] | str:
    """
    Run the checks shared by every adapter.

    Returns ``(owner, name)`` when the call may go ahead, else the observation to return.
    """
    if not settings.GITHUB_TOKEN:
        return (
            "Observation: Your GITHUB_TOKEN is not configured. Please set it as an environment "
            "variable to use the GitHub tools."
        )
    parsed = parse_repository(repository)
    if parsed is None:
        return 'Observation: Invalid repository format. Please use "owner/repo".'
    if settings.ENFORCE_ALLOW_LIST and not is_allowed(*parsed, repositories=REPOSITORIES):
        return (
            f'Observation: Repository "{repository}" is not permitted. Only the repositories '
            "listed under Available Repositories may be used."
        )
    return parsed


def _reason(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out after {settings.TOOL_TIMEOUT:g}s"
    return str(exc) or type(exc).__name__


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
@register_tool("search_code", {"repository": _REPOSITORY_PARAM, "query": "The search query."})
def search_code(repository: str, query: str) -> str:
    """Searches for code within a specific GitHub repository."""
    checked = _precheck(repository)
    if isinstance(checked, str):
        return checked
    owner, name = checked

    try:
        response = _get(
            "/search/code",
            _SEARCH_MEDIA_TYPE,
            params={"q": f"{query} repo:{owner}/{name}"},
        )
        items = response.json().get("items") or []
        results: List[Dict[str, Any]] = []
        for item in items[:MAX_SEARCH_RESULTS]:
            fragments = [match.get("fragment", "") for match in item.get("text_matches") or []]
            results.append(
                {
                    "path": item.get("path"),
                    "score": item.get("score"),
                    "snippets": "\n...\n".join(fragments) or "No snippets available.",
                }
            )
    except (GitHubAPIError, httpx.HTTPError, ValueError, AttributeError) as exc:
        logger.warning("search_code failed for %s: %s", repository, exc)
        return (
            f'Observation: Error searching GitHub for query "{query}" in {repository}. '
            f"Reason: {_reason(exc)}"
        )

    if not results:
        return (
            f'Observation: No results found for query "{query}" in repository {repository}. '
            "Try a broader query or a different repository."
        )
    return (
        f"Observation: Found {len(results)} files. The most relevant files and code snippets "
        f"are:\n{json.dumps(results, indent=2)}"
    )


@register_tool(
    "read_file",
    {
        "repository": _REPOSITORY_PARAM,
        "path": "The full path to the file within the repository.",
    },
)
def read_file(repository: str, path: str) -> str:
    """Reads the content of a specific file from a GitHub repository."""
    checked = _precheck(repository)
    if isinstance(checked, str):
        return checked
    owner, name = checked

    try:
        content = _get(_contents_url(owner, name, path), _RAW_MEDIA_TYPE).text
    except (GitHubAPIError, httpx.HTTPError) as exc:
        logger.warning("read_file failed for %s:%s: %s", repository, path, exc)
        return (
            f'Observation: Error reading file "{path}" from repository {repository}. '
            f"Reason: {_reason(exc)}"
        )

    # Truncated silently; the cap is documented in the tool reference.
    return (
        f'Observation: Content of file "{path}" from repository {repository}:\n\n'
        f"```\n{content[:MAX_FILE_CHARS]}\n```"
    )


@register_tool(
    "list_directory_contents",
    {
        "repository": _REPOSITORY_PARAM,
        "path": 'The path to the directory to list. Use "." or "/" for the root directory.',
    },
)
def list_directory_contents(repository: str, path: str) -> str:
    """Lists the files and directories inside one directory of a GitHub repository."""
    checked = _precheck(repository)
    if isinstance(checked, str):
        return checked
    owner, name = checked

    try:
        data = _get(_contents_url(owner, name, path), _JSON_MEDIA_TYPE).json()
    except (GitHubAPIError, httpx.HTTPError, ValueError) as exc:
        logger.warning("list_directory_contents failed for %s:%s: %s", repository, path, exc)
        return (
            f'Observation: Error listing directory "{path}" from repository {repository}. '
            f"Reason: {_reason(exc)}"
        )

    if not isinstance(data, list):
        return (
            f'Observation: The path "{path}" in repository {repository} is a file, not a '
            "directory. Use read_file to see its content."
        )
    lines = [
        f"[{'d' if entry.get('type') == 'dir' else 'f'}] {entry.get('name')}"
        for entry in data
        if isinstance(entry, dict)
    ]
    return f'Observation: Contents of "{path}" in repository {repository}:\n' + "\n".join(lines)
