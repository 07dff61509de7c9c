"""Inference orchestration: from an issue number to a safe label set."""

import asyncio
import logging
from dataclasses import dataclass

from .ai.context import ContextBuilder
from .ai.models import (
    SET_LABELS_TOOL,
    CompletionOptions,
    CompletionResponse,
    InferenceResult,
    LabelingPrompt,
)
from .ai.providers import CompletionProvider
from .ai.retry import RetryPolicy, retry_transient
from .ai.sanitizer import parse_label_arguments, sanitize_labels
from .cache import SingleflightCache
from .errors import ConfigError, LabelerError, ProtocolError
from .github_client.auth import InstallationResolver
from .github_client.client import GitHubClient
from .github_client.models import GitHubIssue, GitHubLabel

logger = logging.getLogger(__name__)

# Size of the history window and of the label catalogue fetched per repository.
RECENT_ISSUES_LIMIT = 100
REPO_LABELS_LIMIT = 300

METADATA_TTL = 60.0


@dataclass(frozen=True)
class RepoKey:
    """Identity of a repository as seen through one installation."""

    install_id: str
    owner: str
    repo: str


class LabelerService:
    """Labels issues by showing a model the repository's labeling history."""

    def __init__(
        self,
        resolver: InstallationResolver,
        completion: CompletionProvider,
        context_builder: ContextBuilder,
        model: str = "gpt-4o",
        retry_policy: RetryPolicy | None = None,
        labels_cache: SingleflightCache[RepoKey, list[GitHubLabel]] | None = None,
        issues_cache: SingleflightCache[RepoKey, list[GitHubIssue]] | None = None,
        metadata_ttl: float = METADATA_TTL,
    ):
        self.resolver = resolver
        self.completion = completion
        self.context_builder = context_builder
        self.model = model
        self.retry_policy = retry_policy or RetryPolicy()
        self.labels_cache = labels_cache or SingleflightCache()
        self.issues_cache = issues_cache or SingleflightCache()
        self.metadata_ttl = metadata_ttl
        self.options = CompletionOptions()

    def _client(self, install_id: str) -> GitHubClient:
        try:
            return self.resolver.client_for_install(install_id)
        except LabelerError:
            raise
        except Exception as e:
            raise ConfigError(f"get installation client {install_id}: {e}") from e

    async def _recent_issues(
        self, client: GitHubClient, key: RepoKey
    ) -> list[GitHubIssue]:
        return await self.issues_cache.get_or_fetch(
            key,
            self.metadata_ttl,
            lambda: asyncio.to_thread(
                client.list_issues, key.owner, key.repo, RECENT_ISSUES_LIMIT
            ),
        )

    async def _repo_labels(self, client: GitHubClient, key: RepoKey) -> list[GitHubLabel]:
        return await self.labels_cache.get_or_fetch(
            key,
            self.metadata_ttl,
            lambda: asyncio.to_thread(
                client.list_labels, key.owner, key.repo, REPO_LABELS_LIMIT
            ),
        )

    def _selected_labels(
        self, response: CompletionResponse, context: str
    ) -> list[str]:
        """Pull the label list out of a well-formed response."""
        if len(response.choices) != 1:
            raise ProtocolError(
                f"{context}: expected one choice, got {len(response.choices)}",
                raw=response.raw,
            )
        tool_calls = response.choices[0].tool_calls
        if len(tool_calls) != 1 or tool_calls[0].name != SET_LABELS_TOOL:
            raise ProtocolError(
                f"{context}: expected one {SET_LABELS_TOOL} call, "
                f"got {[call.name for call in tool_calls]}",
                raw=response.raw,
            )
        try:
            return parse_label_arguments(tool_calls[0].arguments)
        except ProtocolError as e:
            raise ProtocolError(f"{context}: {e.detail}", raw=response.raw) from e

    async def build_prompt(
        self,
        install_id: str,
        owner: str,
        repo: str,
        issue_number: int,
        test_mode: bool = False,
    ) -> tuple[LabelingPrompt, list[GitHubLabel], GitHubClient]:
        """Fetch repository context and build the labeling prompt."""
        client = self._client(install_id)
        key = RepoKey(install_id, owner, repo)

        recent_issues = await self._recent_issues(client, key)
        repo_labels = await self._repo_labels(client, key)
        # Never cached: labels applied moments ago must be visible.
        target = await asyncio.to_thread(client.get_issue, owner, repo, issue_number)

        history = sorted(
            (issue for issue in recent_issues if issue.number != target.number),
            key=lambda issue: issue.created_at,
        )
        if test_mode:
            target = target.model_copy(update={"labels": []})

        prompt = self.context_builder.build(self.model, repo_labels, history, target)
        logger.debug(
            "Built prompt for %s/%s#%d: %d tokens, %d/%d history issues",
            owner,
            repo,
            issue_number,
            prompt.token_count,
            len(prompt.history),
            len(history),
        )
        return prompt, repo_labels, client

    async def _infer(
        self,
        install_id: str,
        owner: str,
        repo: str,
        issue_number: int,
        test_mode: bool,
    ) -> InferenceResult:
        context = f"{owner}/{repo}#{issue_number}"
        prompt, repo_labels, client = await self.build_prompt(
            install_id, owner, repo, issue_number, test_mode
        )
        repo_config = await asyncio.to_thread(client.get_repo_config, owner, repo)

        response = await retry_transient(
            lambda: self.completion.complete(prompt, self.options),
            self.retry_policy,
            description=f"completion for {context}",
        )

        raw_labels = self._selected_labels(response, context)
        sanitized = sanitize_labels(
            raw_labels, repo_labels, repo_config.exclude_patterns()
        )
        if sanitized.unknown_labels:
            logger.warning(
                "Model returned labels unknown to %s: %s",
                context,
                sanitized.unknown_labels,
            )
        logger.info(
            "Inferred labels for %s: %s (tokens used: %d)",
            context,
            sanitized.labels,
            response.usage.total_tokens,
        )
        return InferenceResult(
            set_labels=sanitized.labels,
            disabled_labels=sanitized.disabled_labels,
            tokens_used=response.usage.total_tokens,
        )

    async def infer(
        self,
        install_id: str,
        owner: str,
        repo: str,
        issue_number: int,
        test_mode: bool = False,
        timeout: float | None = None,
    ) -> InferenceResult:
        """Choose labels for an issue.

        Args:
            install_id: GitHub App installation ID
            owner: Repository owner
            repo: Repository name
            issue_number: Issue to label
            test_mode: Hide the target's current labels from the model
            timeout: Deadline in seconds for the whole call, retries included

        Returns:
            Labels to apply, the repository's disabled labels and token usage

        Raises:
            ConfigError: Credentials or repository configuration unusable
            UpstreamFetchError: GitHub could not be read
            ProviderError: Non-transient completion failure
            TransientProviderError: Transient failures outlasted the retry policy
            ProtocolError: The model answered in an unexpected shape
            TimeoutError: The deadline passed
        """
        async with asyncio.timeout(timeout):
            return await self._infer(install_id, owner, repo, issue_number, test_mode)
