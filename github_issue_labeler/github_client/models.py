"""Pydantic models for GitHub data structures.

These models map to the subset of GitHub's REST API v3 responses the labeler
needs. API Reference: https://docs.github.com/en/rest/issues
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GitHubLabel(BaseModel):
    """GitHub label model representing repository labels.

    Maps to GitHub REST API Label object.
    API Reference: https://docs.github.com/en/rest/issues/labels
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the label (string)")
    description: str = Field(
        "", description="Short description of the label (string, max 100 characters)"
    )
    color: str | None = Field(
        None, description="Hexadecimal color code without leading # (string)"
    )


class GitHubIssue(BaseModel):
    """GitHub issue model representing repository issues.

    Maps to GitHub REST API Issue object.
    API Reference: https://docs.github.com/en/rest/issues/issues
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(0, description="Globally unique issue identifier (integer)")
    number: int = Field(..., description="Issue number within the repository (integer)")
    title: str = Field(..., description="Short description/title of the issue (string)")
    body: str = Field(
        "", description="Detailed description of the issue in markdown (string)"
    )
    state: str = Field("open", description="Current state: 'open', 'closed' (string)")
    author: str = Field(..., description="Login of the issue creator (string)")
    author_role: str = Field(
        "NONE",
        description="Author association with the repository, e.g. MEMBER (string)",
    )
    labels: list[str] = Field(
        default_factory=list, description="Names of labels attached to the issue"
    )
    created_at: datetime = Field(
        ..., description="Timestamp of issue creation (ISO 8601)"
    )
    updated_at: datetime | None = Field(
        None, description="Timestamp of last issue update (ISO 8601)"
    )
    is_pull_request: bool = Field(
        False, description="Whether the item is a pull request rather than an issue"
    )
    html_url: str | None = Field(None, description="Browser URL of the issue")


class RepoConfig(BaseModel):
    """Repository override configuration read from .github/labeler.yml."""

    exclude: list[str] = Field(
        default_factory=list,
        description="Regular expressions; matching label names are never applied",
    )

    @field_validator("exclude", mode="before")
    @classmethod
    def validate_exclude(cls, v: list[str] | None) -> list[str]:
        """Reject patterns that do not compile."""
        if v is None:
            return []
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"invalid exclude pattern {pattern!r}: {e}") from e
        return v

    def exclude_patterns(self) -> list[re.Pattern[str]]:
        """Compiled exclusion patterns."""
        return [re.compile(pattern) for pattern in self.exclude]
