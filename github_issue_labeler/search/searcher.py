"""Similarity search over a repository's indexed open issues."""

import asyncio
import logging

from pydantic import BaseModel, Field

from ..ai.providers import EmbeddingProvider
from ..ai.retry import RetryPolicy, retry_transient
from ..cache import SingleflightCache
from ..errors import EmbeddingDimensionError, ForbiddenError, NotFoundError
from ..github_client.auth import InstallationResolver
from ..storage import IssueStore, SimilarIssue
from .similarity import brute_search

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 256
MAX_RESULTS = 100
INSTALL_TTL = 300.0


class SearchResult(BaseModel):
    """Ranked open issues similar to a query."""

    install_id: int
    issues: list[SimilarIssue] = Field(default_factory=list)


class IssueSearcher:
    """Ranks a repository's open issues by cosine similarity to free text."""

    def __init__(
        self,
        resolver: InstallationResolver,
        store: IssueStore,
        embedder: EmbeddingProvider,
        install_cache: SingleflightCache[tuple[str, str], int] | None = None,
        install_ttl: float = INSTALL_TTL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        max_results: int = MAX_RESULTS,
        retry_policy: RetryPolicy | None = None,
    ):
        self.resolver = resolver
        self.store = store
        self.embedder = embedder
        self.install_cache = install_cache or SingleflightCache()
        self.install_ttl = install_ttl
        self.dimensions = dimensions
        self.max_results = max_results
        self.retry_policy = retry_policy or RetryPolicy()

    async def _install_id(self, owner: str, repo: str) -> int:
        return await self.install_cache.get_or_fetch(
            (owner, repo),
            self.install_ttl,
            lambda: asyncio.to_thread(self.resolver.install_id_for_repo, owner, repo),
        )

    async def search(self, owner: str, repo: str, query: str) -> SearchResult:
        """Find open issues of owner/repo similar to query.

        Args:
            owner: Repository owner
            repo: Repository name
            query: Free text to compare against issue embeddings

        Returns:
            Installation ID and at most max_results issues, most similar first

        Raises:
            ForbiddenError: The repository is private
            NotFoundError: No open issues are indexed for the repository
            EmbeddingDimensionError: Stored and query embeddings differ in size
        """
        install_id = await self._install_id(owner, repo)
        client = self.resolver.client_for_install(str(install_id))
        if await asyncio.to_thread(client.is_private, owner, repo):
            raise ForbiddenError(f"{owner}/{repo} is private")

        records = await asyncio.to_thread(self.store.open_issues, owner, repo)
        if not records:
            raise NotFoundError(f"no indexed issues for {owner}/{repo}")

        query_embedding = await retry_transient(
            lambda: self.embedder.embed(query, self.dimensions),
            self.retry_policy,
            description=f"query embedding for {owner}/{repo}",
        )
        for record in records:
            if len(record.embedding) != len(query_embedding):
                raise EmbeddingDimensionError(
                    f"issue {record.id} has {len(record.embedding)} dimensions, "
                    f"query has {len(query_embedding)}"
                )

        ranked = brute_search(
            query_embedding,
            ((record, record.embedding) for record in records),
            limit=self.max_results,
        )
        logger.info(
            "Search on %s/%s ranked %d of %d open issues",
            owner,
            repo,
            len(ranked),
            len(records),
        )
        return SearchResult(
            install_id=install_id,
            issues=[SimilarIssue.from_record(record, score) for record, score in ranked],
        )
