"""Process configuration read from environment variables."""

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .github_client.auth import GitHubAppAuth, InstallationResolver, TokenAuth


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


class LabelerSettings:
    """Configuration class for the labeler service and CLI."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")
        self.openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o")
        self.embedding_model: str = os.getenv(
            "OPENAI_EMBEDDING_MODEL", "text-embedding-3-small"
        )
        self.github_app_id: Optional[str] = os.getenv("GITHUB_APP_ID")
        self.github_app_pem: Optional[str] = os.getenv("GITHUB_APP_PEM")
        self.github_app_pem_file: Optional[str] = os.getenv("GITHUB_APP_PEM_FILE")
        self.github_token: Optional[str] = os.getenv("GITHUB_TOKEN")
        self.data_dir = Path(os.getenv("LABELER_DATA_DIR", "data"))
        self.max_retries: int = _int_env("LABELER_MAX_RETRIES", 6)
        self.log_level: str = os.getenv("LABELER_LOG_LEVEL", "INFO").upper()

    @property
    def index_dir(self) -> Path:
        return self.data_dir / "index"

    def app_private_key(self) -> Optional[str]:
        """App private key, read from GITHUB_APP_PEM_FILE when not set inline."""
        if self.github_app_pem:
            return self.github_app_pem
        if self.github_app_pem_file:
            try:
                return Path(self.github_app_pem_file).read_text()
            except OSError as e:
                raise ConfigError(
                    f"cannot read GITHUB_APP_PEM_FILE {self.github_app_pem_file}: {e}"
                ) from e
        return None

    def uses_app_auth(self) -> bool:
        return bool(
            self.github_app_id and (self.github_app_pem or self.github_app_pem_file)
        )

    def validate(self, require_openai: bool = True) -> None:
        """Validate configuration and raise error if invalid.

        Raises:
            ConfigError: Naming every missing variable
        """
        missing = []
        if require_openai and not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.uses_app_auth() and not self.github_token:
            if self.github_app_id:
                missing.append("GITHUB_APP_PEM or GITHUB_APP_PEM_FILE")
            else:
                missing.append("GITHUB_APP_ID and GITHUB_APP_PEM, or GITHUB_TOKEN")
        if self.max_retries < 0:
            raise ConfigError("LABELER_MAX_RETRIES must not be negative")
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

    def resolver(self) -> InstallationResolver:
        """GitHub App credentials when configured, otherwise the personal token."""
        if self.uses_app_auth():
            return GitHubAppAuth(self.github_app_id, self.app_private_key())  # type: ignore[arg-type]
        if self.github_token:
            return TokenAuth(self.github_token)
        raise ConfigError(
            "No GitHub credentials: set GITHUB_APP_ID and GITHUB_APP_PEM, or GITHUB_TOKEN"
        )

    def max_attempts(self) -> Optional[int]:
        """Completion retry ceiling; None when LABELER_MAX_RETRIES is 0."""
        return self.max_retries or None
