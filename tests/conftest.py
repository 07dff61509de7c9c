"""Test configuration and fixtures."""

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from github_issue_labeler.ai.models import (
    CompletionChoice,
    CompletionOptions,
    CompletionResponse,
    LabelingPrompt,
    PromptMessage,
    TokenUsage,
    ToolCall,
)
from github_issue_labeler.github_client.models import GitHubIssue, GitHubLabel, RepoConfig

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class IssueCostCounter:
    """Charges a fixed cost per message plus a fixed cost per serialized issue."""

    def __init__(self, per_message: int = 10, per_issue: int = 100):
        self.per_message = per_message
        self.per_issue = per_issue

    def count(self, messages: Iterable[PromptMessage]) -> int:
        total = 0
        for message in messages:
            total += self.per_message + self.per_issue * message.content.count("<issue ")
        return total


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient."""

    def __init__(
        self,
        issues: list[GitHubIssue] | None = None,
        labels: list[GitHubLabel] | None = None,
        repo_config: RepoConfig | None = None,
        private: bool = False,
    ):
        self.issues = issues or []
        self.labels = labels or []
        self.repo_config = repo_config or RepoConfig()
        self.private = private
        self.added: list[tuple[str, str, int, list[str]]] = []
        self.calls: list[str] = []

    def list_issues(
        self, owner: str, repo: str, limit: int = 100, state: str = "all"
    ) -> list[GitHubIssue]:
        self.calls.append("list_issues")
        issues = [i for i in self.issues if not i.is_pull_request]
        return sorted(issues, key=lambda i: i.created_at, reverse=True)[:limit]

    def list_all_issues(self, owner: str, repo: str) -> list[GitHubIssue]:
        self.calls.append("list_all_issues")
        return list(self.issues)

    def list_labels(self, owner: str, repo: str, limit: int = 300) -> list[GitHubLabel]:
        self.calls.append("list_labels")
        return self.labels[:limit]

    def get_issue(self, owner: str, repo: str, issue_number: int) -> GitHubIssue:
        self.calls.append("get_issue")
        for issue in self.issues:
            if issue.number == issue_number:
                return issue
        raise KeyError(issue_number)

    def get_repo_config(self, owner: str, repo: str) -> RepoConfig:
        self.calls.append("get_repo_config")
        return self.repo_config

    def is_private(self, owner: str, repo: str) -> bool:
        self.calls.append("is_private")
        return self.private

    def add_labels(
        self, owner: str, repo: str, issue_number: int, labels: list[str]
    ) -> None:
        self.added.append((owner, repo, issue_number, list(labels)))


class FakeResolver:
    """Resolves every installation to the same fake client."""

    def __init__(
        self,
        client: FakeGitHubClient,
        install_id: int = 42,
        repos: dict[str, list[tuple[str, str]]] | None = None,
    ):
        self.client = client
        self.install_id = install_id
        self.repos = repos or {}
        self.lookups = 0

    def client_for_install(self, install_id: str) -> FakeGitHubClient:
        return self.client

    def install_id_for_repo(self, owner: str, repo: str) -> int:
        self.lookups += 1
        return self.install_id

    def list_install_ids(self) -> list[int]:
        return [int(i) for i in self.repos] or [self.install_id]

    def list_install_repos(self, install_id: str) -> list[tuple[str, str]]:
        return self.repos.get(str(install_id), [])


class ScriptedCompletion:
    """Replays responses or raises errors in order."""

    def __init__(self, *outcomes: CompletionResponse | Exception):
        self.outcomes = list(outcomes)
        self.prompts: list[LabelingPrompt] = []

    async def complete(
        self, prompt: LabelingPrompt, options: CompletionOptions
    ) -> CompletionResponse:
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeEmbedder:
    """Returns a fixed vector per text, or a default one."""

    def __init__(self, vectors: dict[str, list[float]] | None = None, default=None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.calls: list[tuple[str, int]] = []

    async def embed(self, text: str, dimensions: int) -> list[float]:
        self.calls.append((text, dimensions))
        return self.vectors.get(text, self.default)


@pytest.fixture
def make_issue() -> Callable[..., GitHubIssue]:
    """Factory for issues numbered and dated in creation order."""

    def _make(number: int, **overrides: Any) -> GitHubIssue:
        fields: dict[str, Any] = {
            "id": 1000 + number,
            "number": number,
            "title": f"Issue {number}",
            "body": f"Body of issue {number}",
            "author": "octocat",
            "labels": [],
            "created_at": BASE_TIME + timedelta(days=number),
            "updated_at": BASE_TIME + timedelta(days=number, hours=1),
        }
        fields.update(overrides)
        return GitHubIssue(**fields)

    return _make


@pytest.fixture
def make_label() -> Callable[..., GitHubLabel]:
    def _make(name: str, description: str = "") -> GitHubLabel:
        return GitHubLabel(name=name, description=description)

    return _make


@pytest.fixture
def tool_response() -> Callable[..., CompletionResponse]:
    """Factory for a well-formed setLabels completion."""

    def _make(arguments: str = '{"labels": ["bug"]}', total_tokens: int = 123):
        return CompletionResponse(
            choices=[
                CompletionChoice(
                    tool_calls=[ToolCall(id="call_1", name="setLabels", arguments=arguments)]
                )
            ],
            usage=TokenUsage(
                prompt_tokens=total_tokens - 3, completion_tokens=3, total_tokens=total_tokens
            ),
            raw='{"id": "chatcmpl-test"}',
        )

    return _make


@pytest.fixture
def cost_counter() -> IssueCostCounter:
    return IssueCostCounter()


@pytest.fixture
def fake_client_class() -> type[FakeGitHubClient]:
    return FakeGitHubClient


@pytest.fixture
def fake_resolver_class() -> type[FakeResolver]:
    return FakeResolver


@pytest.fixture
def scripted_completion_class() -> type[ScriptedCompletion]:
    return ScriptedCompletion


@pytest.fixture
def fake_embedder_class() -> type[FakeEmbedder]:
    return FakeEmbedder


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create temporary data directory structure."""
    data_dir = tmp_path / "data"
    (data_dir / "index").mkdir(parents=True)
    return data_dir
