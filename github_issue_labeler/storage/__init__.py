"""Durable storage of embedded issues."""

from .index_store import IssueIndexStore, IssueStore
from .models import IndexedIssueRecord, SimilarIssue

__all__ = ["IndexedIssueRecord", "IssueIndexStore", "IssueStore", "SimilarIssue"]
