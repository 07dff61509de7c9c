"""Similarity search over indexed issues."""

from .searcher import IssueSearcher, SearchResult
from .similarity import brute_search, cosine_similarity

__all__ = ["IssueSearcher", "SearchResult", "brute_search", "cosine_similarity"]
