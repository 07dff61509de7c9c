"""Resolution of per-installation GitHub clients."""

from typing import Protocol

from github import Auth, Github, GithubIntegration
from github.GithubException import GithubException, UnknownObjectException

from ..errors import ConfigError, UpstreamFetchError
from .client import GitHubClient


class InstallationResolver(Protocol):
    """Maps installation IDs to authenticated clients."""

    def client_for_install(self, install_id: str) -> GitHubClient: ...

    def install_id_for_repo(self, owner: str, repo: str) -> int: ...

    def list_install_ids(self) -> list[int]: ...

    def list_install_repos(self, install_id: str) -> list[tuple[str, str]]: ...


class GitHubAppAuth:
    """Credentials of a GitHub App installed on many repositories."""

    def __init__(self, app_id: str, private_key: str):
        """Initialize App authentication.

        Args:
            app_id: GitHub App ID
            private_key: PEM encoded App private key
        """
        try:
            self.app_auth = Auth.AppAuth(int(app_id), private_key)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid GitHub App credentials: {e}") from e
        self.integration = GithubIntegration(auth=self.app_auth)

    def _installation_auth(self, install_id: str) -> Auth.AppInstallationAuth:
        try:
            return self.app_auth.get_installation_auth(int(install_id))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid installation id {install_id!r}") from e

    def client_for_install(self, install_id: str) -> GitHubClient:
        """Client acting as the App installation."""
        auth = self._installation_auth(install_id)
        return GitHubClient(github=Github(auth=auth, per_page=100))

    def install_id_for_repo(self, owner: str, repo: str) -> int:
        """Installation ID of the App on a repository."""
        try:
            return self.integration.get_repo_installation(owner, repo).id
        except UnknownObjectException as e:
            raise ConfigError(f"App is not installed on {owner}/{repo}") from e
        except GithubException as e:
            raise UpstreamFetchError(
                f"get installation for {owner}/{repo}: {e}"
            ) from e

    def list_install_ids(self) -> list[int]:
        """IDs of every installation of the App."""
        try:
            return [installation.id for installation in self.integration.get_installations()]
        except GithubException as e:
            raise UpstreamFetchError(f"list installations: {e}") from e

    def list_install_repos(self, install_id: str) -> list[tuple[str, str]]:
        """(owner, name) of every repository an installation can access."""
        try:
            installation = self.integration.get_app_installation(int(install_id))
            return [(r.owner.login, r.name) for r in installation.get_repos()]
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid installation id {install_id!r}") from e
        except GithubException as e:
            raise UpstreamFetchError(
                f"list repositories of installation {install_id}: {e}"
            ) from e


class TokenAuth:
    """Single personal token standing in for every installation.

    Useful for local runs where no App is registered. Every repository
    reports installation ID 0.
    """

    def __init__(self, token: str | None = None):
        self.client = GitHubClient(token=token)

    def client_for_install(self, install_id: str) -> GitHubClient:
        return self.client

    def install_id_for_repo(self, owner: str, repo: str) -> int:
        return 0

    def list_install_ids(self) -> list[int]:
        return [0]

    def list_install_repos(self, install_id: str) -> list[tuple[str, str]]:
        try:
            user = self.client.github.get_user()
            return [(r.owner.login, r.name) for r in user.get_repos()]
        except GithubException as e:
            raise UpstreamFetchError(f"list repositories: {e}") from e
