"""Pydantic models for the issue index."""

from datetime import datetime

from pydantic import BaseModel, Field


class IndexedIssueRecord(BaseModel):
    """One embedded snapshot of an issue.

    Rows are append-only; a later inserted_at for the same id supersedes
    earlier rows when reading.
    """

    id: int = Field(..., description="GitHub issue ID, stable across snapshots")
    install_id: int = Field(..., description="App installation that indexed it")
    owner: str = Field(..., description="Repository owner login")
    repo: str = Field(..., description="Repository name")
    number: int = Field(..., description="Issue number within the repository")
    title: str
    body: str = ""
    state: str = Field(..., description="'open' or 'closed'")
    created_at: datetime
    updated_at: datetime
    inserted_at: datetime = Field(..., description="When this snapshot was written")
    embedding: list[float] = Field(..., description="Embedding of the issue text")
    is_pull_request: bool = False


class SimilarIssue(BaseModel):
    """A search hit, without its embedding."""

    id: int
    install_id: int
    owner: str
    repo: str
    number: int
    title: str
    body: str
    state: str
    created_at: datetime
    updated_at: datetime
    inserted_at: datetime
    is_pull_request: bool
    similarity: float

    @classmethod
    def from_record(cls, record: IndexedIssueRecord, similarity: float) -> "SimilarIssue":
        return cls(
            **record.model_dump(exclude={"embedding"}), similarity=similarity
        )
