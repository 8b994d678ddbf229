"""Tests for the GitHub tool adapters against a mocked API."""

import json
from typing import (
    Callable,
    List,
)

import httpx
import pytest

from vitai.config import settings
from vitai.tools.github import (
    list_directory_contents,
    read_file,
    search_code,
)

REPO = "adoptium/TKG"

ADAPTERS = [
    lambda repo: search_code(repository=repo, query="junit"),
    lambda repo: read_file(repository=repo, path="README.md"),
    lambda repo: list_directory_contents(repository=repo, path="."),
]


def _fail(request: httpx.Request) -> httpx.Response:  # pragma: no cover
    raise AssertionError(f"unexpected request to {request.url}")


def _search_items(count: int) -> List[dict]:
    return [
        {
            "path": f"src/File{i}.java",
            "score": float(count - i),
            "text_matches": [{"fragment": f"match {i}a"}, {"fragment": f"match {i}b"}],
        }
        for i in range(count)
    ]


# ── preconditions ────────────────────────────────────────────────────────────


@pytest.mark.parametrize("adapter", ADAPTERS)
def test_missing_token_skips_network(
    adapter: Callable[[str], str], github_api, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Without a token every adapter explains the missing configuration."""

    monkeypatch.setattr(settings, "GITHUB_TOKEN", None)
    requests = github_api(_fail)

    observation = adapter(REPO)
    assert observation.startswith("Observation: Your GITHUB_TOKEN is not configured")
    assert requests == []


@pytest.mark.parametrize("adapter", ADAPTERS)
@pytest.mark.parametrize("repository", ["adoptium", "adoptium/", "/TKG", "a/b/c", ""])
def test_invalid_repository_format(adapter: Callable[[str], str], repository: str, github_api):
    """Anything other than two non-empty segments is rejected without a request."""

    requests = github_api(_fail)

    assert adapter(repository) == 'Observation: Invalid repository format. Please use "owner/repo".'
    assert requests == []


@pytest.mark.parametrize("adapter", ADAPTERS)
def test_repository_outside_allow_list(adapter: Callable[[str], str], github_api) -> None:
    """Repositories outside the allow-list are refused; matching is case-sensitive."""

    requests = github_api(_fail)

    assert "is not permitted" in adapter("torvalds/linux")
    assert "is not permitted" in adapter("adoptium/tkg")
    assert requests == []


def test_allow_list_enforcement_can_be_disabled(github_api, monkeypatch) -> None:
    """With enforcement off only the format is checked."""

    monkeypatch.setattr(settings, "ENFORCE_ALLOW_LIST", False)
    requests = github_api(lambda request: httpx.Response(200, json=[]))

    observation = list_directory_contents(repository="torvalds/linux", path="kernel")
    assert observation.startswith('Observation: Contents of "kernel"')
    assert requests[0].url.path == "/repos/torvalds/linux/contents/kernel"


# ── search_code ──────────────────────────────────────────────────────────────


def test_search_keeps_first_five_in_api_order(github_api) -> None:
    """Twelve matches are cut to the first five, in ranking order."""

    requests = github_api(
        lambda request: httpx.Response(200, json={"total_count": 12, "items": _search_items(12)})
    )

    observation = search_code(repository=REPO, query="junit")
    header, payload = observation.split("\n", 1)
    results = json.loads(payload)

    assert header == (
        "Observation: Found 5 files. The most relevant files and code snippets are:"
    )
    assert [r["path"] for r in results] == [f"src/File{i}.java" for i in range(5)]
    assert results[0] == {
        "path": "src/File0.java",
        "score": 12.0,
        "snippets": "match 0a\n...\nmatch 0b",
    }

    request = requests[0]
    assert request.url.path == "/search/code"
    assert request.url.params["q"] == "junit repo:adoptium/TKG"
    assert request.headers["Accept"] == "application/vnd.github.v3.text-match+json"
    assert request.headers["Authorization"] == "Bearer test-token"


def test_search_without_snippets(github_api) -> None:
    """Items without text matches get a placeholder."""

    github_api(
        lambda request: httpx.Response(200, json={"items": [{"path": "a.sh", "score": 1.0}]})
    )

    results = json.loads(search_code(repository=REPO, query="x").split("\n", 1)[1])
    assert results == [{"path": "a.sh", "score": 1.0, "snippets": "No snippets available."}]


def test_search_no_results(github_api) -> None:
    """An empty result list suggests a broader query instead of an empty payload."""

    github_api(lambda request: httpx.Response(200, json={"total_count": 0, "items": []}))

    observation = search_code(repository=REPO, query="zzz")
    assert observation == (
        'Observation: No results found for query "zzz" in repository adoptium/TKG. '
        "Try a broader query or a different repository."
    )


def test_search_http_error_includes_status_and_body(github_api) -> None:
    """Non-2xx responses become an error observation with status and body."""

    github_api(lambda request: httpx.Response(403, text="rate limit exceeded"))

    observation = search_code(repository=REPO, query="junit")
    assert observation.startswith('Observation: Error searching GitHub for query "junit"')
    assert "API error: 403 - rate limit exceeded" in observation


def test_search_timeout(github_api) -> None:
    """Transport timeouts are reported, not raised."""

    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    github_api(timeout)

    observation = search_code(repository=REPO, query="junit")
    assert observation.startswith("Observation: Error searching GitHub")
    assert "timed out" in observation


# ── read_file ────────────────────────────────────────────────────────────────


def test_read_file_truncates_to_4000_characters(github_api) -> None:
    """A 10,000 character file yields exactly its first 4,000 characters."""

    content = "".join(str(i % 10) for i in range(10_000))
    requests = github_api(lambda request: httpx.Response(200, text=content))

    observation = read_file(repository=REPO, path="docs/big.txt")
    assert observation == (
        'Observation: Content of file "docs/big.txt" from repository adoptium/TKG:\n\n'
        f"```\n{content[:4000]}\n```"
    )
    assert requests[0].url.path == "/repos/adoptium/TKG/contents/docs/big.txt"
    assert requests[0].headers["Accept"] == "application/vnd.github.v3.raw"


def test_read_file_not_found(github_api) -> None:
    """A 404 is an observation the planner can react to."""

    github_api(lambda request: httpx.Response(404, json={"message": "Not Found"}))

    observation = read_file(repository=REPO, path="missing.txt")
    assert observation.startswith(
        'Observation: Error reading file "missing.txt" from repository adoptium/TKG.'
    )
    assert "404" in observation


def test_read_file_escapes_path(github_api) -> None:
    """Characters with URL meaning stay part of the file path."""

    requests = github_api(lambda request: httpx.Response(200, text="ok"))

    observation = read_file(repository=REPO, path="docs/what?#100%.md")
    assert observation.startswith('Observation: Content of file "docs/what?#100%.md"')
    assert requests[0].url.raw_path == b"/repos/adoptium/TKG/contents/docs/what%3F%23100%25.md"
    assert requests[0].url.query == b""


# ── list_directory_contents ──────────────────────────────────────────────────


def test_list_directory(github_api) -> None:
    """Entries are rendered one per line with a d/f marker."""

    requests = github_api(
        lambda request: httpx.Response(
            200,
            json=[
                {"name": "scripts", "type": "dir"},
                {"name": "README.md", "type": "file"},
                {"name": "link", "type": "symlink"},
            ],
        )
    )

    observation = list_directory_contents(repository=REPO, path="/")
    assert observation == (
        'Observation: Contents of "/" in repository adoptium/TKG:\n'
        "[d] scripts\n[f] README.md\n[f] link"
    )
    assert requests[0].url.path == "/repos/adoptium/TKG/contents/"
    assert requests[0].headers["Accept"] == "application/vnd.github.v3+json"


def test_list_directory_on_a_file(github_api) -> None:
    """A file path gets guidance to use read_file, not an error."""

    github_api(
        lambda request: httpx.Response(
            200, json={"name": "README.md", "type": "file", "content": "IyBUS0c="}
        )
    )

    observation = list_directory_contents(repository=REPO, path="README.md")
    assert observation == (
        'Observation: The path "README.md" in repository adoptium/TKG is a file, not a '
        "directory. Use read_file to see its content."
    )


def test_list_directory_connection_error(github_api) -> None:
    """Connection failures are reported as observations."""

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    github_api(refuse)

    observation = list_directory_contents(repository=REPO, path="scripts")
    assert observation.startswith('Observation: Error listing directory "scripts"')
    assert "connection refused" in observation


@pytest.mark.parametrize(
    "response_kwargs",
    [
        {"status_code": 200, "json": {"items": [{"path": "a"}]}},
        {"status_code": 200, "text": "not json"},
        {"status_code": 500, "text": "oops"},
        {"status_code": 200, "json": ["unexpected", "shape"]},
    ],
)
@pytest.mark.parametrize("adapter", ADAPTERS)
def test_adapters_always_return_observations(adapter, response_kwargs, github_api) -> None:
    """Whatever the API sends back, adapters answer with an observation string."""

    github_api(lambda request: httpx.Response(**response_kwargs))

    assert adapter(REPO).startswith("Observation:")
