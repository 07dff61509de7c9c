"""GitHub client package for API interaction."""

from .auth import GitHubAppAuth, InstallationResolver, TokenAuth
from .client import GitHubClient
from .models import GitHubIssue, GitHubLabel, RepoConfig

__all__ = [
    "GitHubAppAuth",
    "GitHubClient",
    "GitHubIssue",
    "GitHubLabel",
    "InstallationResolver",
    "RepoConfig",
    "TokenAuth",
]
