"""GitHub API client using PyGitHub."""

import logging
import os

import yaml
from github import Auth, Github
from github.GithubException import GithubException, UnknownObjectException
from github.Issue import Issue
from github.Label import Label
from github.Repository import Repository

from ..errors import ConfigError, UpstreamFetchError
from .models import GitHubIssue, GitHubLabel, RepoConfig

logger = logging.getLogger(__name__)

REPO_CONFIG_PATH = ".github/labeler.yml"


class GitHubClient:
    """Issue/label source backed by the GitHub REST API."""

    def __init__(self, token: str | None = None, github: Github | None = None):
        """Initialize GitHub client with authentication.

        Args:
            token: GitHub personal access token. If None, reads from
                GITHUB_TOKEN env var. Ignored when github is given.
            github: Pre-authenticated PyGitHub instance, e.g. one bound to an
                App installation
        """
        if github is not None:
            self.github = github
            return

        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ConfigError(
                "GitHub token is required. Set GITHUB_TOKEN environment variable."
            )
        self.github = Github(auth=Auth.Token(self.token), per_page=100)

    def _convert_label(self, github_label: Label) -> GitHubLabel:
        """Convert PyGitHub label to our model."""
        return GitHubLabel(
            name=github_label.name,
            description=github_label.description or "",
            color=github_label.color,
        )

    def _convert_issue(self, github_issue: Issue) -> GitHubIssue:
        """Convert PyGitHub issue to our model."""
        return GitHubIssue(
            id=github_issue.id,
            number=github_issue.number,
            title=github_issue.title or "",
            body=github_issue.body or "",
            state=github_issue.state,
            author=github_issue.user.login if github_issue.user else "ghost",
            author_role=github_issue.raw_data.get("author_association") or "NONE",
            labels=[label.name for label in github_issue.labels],
            created_at=github_issue.created_at,
            updated_at=github_issue.updated_at,
            is_pull_request=github_issue.pull_request is not None,
            html_url=github_issue.html_url,
        )

    def get_repository(self, owner: str, repo: str) -> Repository:
        """Get repository object."""
        try:
            return self.github.get_repo(f"{owner}/{repo}")
        except UnknownObjectException as e:
            raise UpstreamFetchError(f"Repository {owner}/{repo} not found") from e
        except GithubException as e:
            raise UpstreamFetchError(f"get repository {owner}/{repo}: {e}") from e

    def list_issues(
        self, owner: str, repo: str, limit: int = 100, state: str = "all"
    ) -> list[GitHubIssue]:
        """List the most recently created issues of a repository.

        Pull requests are dropped before counting towards the limit.

        Args:
            owner: Repository owner
            repo: Repository name
            limit: Maximum number of issues to return
            state: Issue state (open, closed, all)

        Returns:
            Issues, newest first
        """
        repository = self.get_repository(owner, repo)
        issues: list[GitHubIssue] = []
        if limit <= 0:
            return issues
        try:
            for github_issue in repository.get_issues(state=state):
                if github_issue.pull_request is not None:
                    continue
                issues.append(self._convert_issue(github_issue))
                if len(issues) >= limit:
                    break
        except GithubException as e:
            raise UpstreamFetchError(f"list issues {owner}/{repo}: {e}") from e
        return issues

    def list_all_issues(self, owner: str, repo: str) -> list[GitHubIssue]:
        """List every issue and pull request, least recently updated first."""
        repository = self.get_repository(owner, repo)
        try:
            return [
                self._convert_issue(github_issue)
                for github_issue in repository.get_issues(
                    state="all", sort="updated", direction="asc"
                )
            ]
        except GithubException as e:
            raise UpstreamFetchError(f"list issues {owner}/{repo}: {e}") from e

    def list_labels(self, owner: str, repo: str, limit: int = 300) -> list[GitHubLabel]:
        """List at most limit labels defined by a repository."""
        repository = self.get_repository(owner, repo)
        labels: list[GitHubLabel] = []
        if limit <= 0:
            return labels
        try:
            for github_label in repository.get_labels():
                labels.append(self._convert_label(github_label))
                if len(labels) >= limit:
                    break
        except GithubException as e:
            raise UpstreamFetchError(f"list labels {owner}/{repo}: {e}") from e
        return labels

    def get_issue(self, owner: str, repo: str, issue_number: int) -> GitHubIssue:
        """Get a specific issue in its current state."""
        repository = self.get_repository(owner, repo)
        try:
            return self._convert_issue(repository.get_issue(issue_number))
        except UnknownObjectException as e:
            raise UpstreamFetchError(
                f"Issue #{issue_number} not found in {owner}/{repo}"
            ) from e
        except GithubException as e:
            raise UpstreamFetchError(
                f"get issue {owner}/{repo}#{issue_number}: {e}"
            ) from e

    def add_labels(
        self, owner: str, repo: str, issue_number: int, labels: list[str]
    ) -> None:
        """Add labels to an issue, keeping the ones already applied."""
        repository = self.get_repository(owner, repo)
        try:
            repository.get_issue(issue_number).add_to_labels(*labels)
        except GithubException as e:
            raise UpstreamFetchError(
                f"add labels {labels} to {owner}/{repo}#{issue_number}: {e}"
            ) from e
        logger.info("Added labels to %s/%s#%d: %s", owner, repo, issue_number, labels)

    def is_private(self, owner: str, repo: str) -> bool:
        """Whether the repository is private."""
        return bool(self.get_repository(owner, repo).private)

    def get_repo_config(self, owner: str, repo: str) -> RepoConfig:
        """Load the repository override configuration.

        A missing file yields an empty configuration.

        Raises:
            ConfigError: If the file is not valid YAML or has invalid patterns
            UpstreamFetchError: For other API errors
        """
        repository = self.get_repository(owner, repo)
        try:
            content_file = repository.get_contents(REPO_CONFIG_PATH)
        except UnknownObjectException:
            return RepoConfig()
        except GithubException as e:
            raise UpstreamFetchError(
                f"get {REPO_CONFIG_PATH} for {owner}/{repo}: {e}"
            ) from e

        if isinstance(content_file, list):
            raise ConfigError(f"{REPO_CONFIG_PATH} in {owner}/{repo} is a directory")

        try:
            data = yaml.safe_load(content_file.decoded_content.decode("utf-8")) or {}
            return RepoConfig.model_validate(data)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigError(
                f"invalid {REPO_CONFIG_PATH} in {owner}/{repo}: {e}"
            ) from e
