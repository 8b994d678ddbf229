"""The repository allow-list and helpers for ``owner/name`` arguments."""

from typing import (
    Iterable,
    Optional,
    Sequence,
    Tuple,
)

from vitai.core.schema import RepositoryDescriptor

REPOSITORIES: Tuple[RepositoryDescriptor, ...] = (
    RepositoryDescriptor(
        owner="adoptium",
        name="aqa-tests",
        description="The central project for AQAvit (Adoptium Quality Assurance).",
    ),
    RepositoryDescriptor(
        owner="adoptium",
        name="TKG",
        description="A lightweight test harness for running a diverse set of tests or commands.",
    ),
    RepositoryDescriptor(
        owner="adoptium", name="aqa-systemtest", description="System verification tests."
    ),
    RepositoryDescriptor(
        owner="adoptium",
        name="aqa-test-tools",
        description="Various test tools that improve workflow.",
    ),
    RepositoryDescriptor(
        owner="adoptium", name="STF", description="System Test Framework for running system tests."
    ),
    RepositoryDescriptor(
        owner="adoptium", name="bumblebench", description="A microbenchmarking test framework."
    ),
    RepositoryDescriptor(
        owner="adoptium", name="run-aqa", description="A GitHub action for running AQA tests."
    ),
    RepositoryDescriptor(
        owner="adoptium",
        name="openj9-systemtest",
        description="System verification tests for OpenJ9.",
    ),
    RepositoryDescriptor(
        owner="eclipse-openj9", name="openj9", description="The Eclipse OpenJ9 JVM project."
    ),
)
"""Repositories the agent may reference, loaded once at import time."""


def parse_repository(repository: str) -> Optional[Tuple[str, str]]:
    """
    Split ``owner/name`` into its two parts.

    Returns *None* unless the string has exactly two non-empty segments.
    """
    if not isinstance(repository, str):
        return None
    parts = repository.split("/")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


def is_allowed(
    owner: str, name: str, repositories: Iterable[RepositoryDescriptor] = REPOSITORIES
) -> bool:
    """Case-sensitive membership test against the allow-list."""
    return any(repo.owner == owner and repo.name == name for repo in repositories)


def format_allow_list(repositories: Sequence[RepositoryDescriptor]) -> str:
    """Render the allow-list as one ``- owner/name: description`` line per repository."""
    return "\n".join(f"- {repo.full_name}: {repo.description}" for repo in repositories)
