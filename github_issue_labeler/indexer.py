"""Background embedding of issues into the similarity index."""

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import datetime, timezone

from .ai.providers import EmbeddingProvider
from .ai.retry import RetryPolicy, retry_transient
from .ai.tokens import TiktokenCounter
from .github_client.auth import InstallationResolver
from .github_client.models import GitHubIssue
from .search.searcher import EMBEDDING_DIMENSIONS
from .storage import IndexedIssueRecord, IssueStore

logger = logging.getLogger(__name__)

# Input limit of the OpenAI embedding models.
MAX_EMBEDDING_TOKENS = 8191


def embedding_text(issue: GitHubIssue) -> str:
    """Text embedded for an issue."""
    return (
        f"Title: {issue.title}\n"
        f"State: {issue.state}\n"
        f"Author: {issue.author}\n"
        f"Labels: {', '.join(issue.labels)}\n"
        f"Body: {issue.body}\n"
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Indexer:
    """Keeps the issue index in step with GitHub."""

    def __init__(
        self,
        resolver: InstallationResolver,
        store: IssueStore,
        embedder: EmbeddingProvider,
        token_counter: TiktokenCounter,
        dimensions: int = EMBEDDING_DIMENSIONS,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ):
        self.resolver = resolver
        self.store = store
        self.embedder = embedder
        self.token_counter = token_counter
        self.dimensions = dimensions
        self.retry_policy = retry_policy or RetryPolicy()
        self.clock = clock
        self.rng = rng or random.Random()

    async def embed_issue(self, issue: GitHubIssue) -> list[float]:
        text = self.token_counter.truncate(embedding_text(issue), MAX_EMBEDDING_TOKENS)
        return await retry_transient(
            lambda: self.embedder.embed(text, self.dimensions),
            self.retry_policy,
            description=f"embedding of issue {issue.id}",
        )

    async def index_repository(
        self,
        install_id: int,
        owner: str,
        repo: str,
        known: dict[int, datetime],
    ) -> int:
        """Embed and store every issue of a repository that changed.

        Args:
            install_id: Installation the repository belongs to
            owner: Repository owner
            repo: Repository name
            known: updated_at of the latest indexed snapshot per issue ID

        Returns:
            Number of snapshots written
        """
        client = self.resolver.client_for_install(str(install_id))
        issues = await asyncio.to_thread(client.list_all_issues, owner, repo)
        logger.debug("Found %d issues in %s/%s", len(issues), owner, repo)

        written = 0
        for issue in issues:
            updated_at = issue.updated_at or issue.created_at
            if known.get(issue.id) == updated_at:
                logger.debug("Skipping unchanged issue %s/%s#%d", owner, repo, issue.number)
                continue

            embedding = await self.embed_issue(issue)
            record = IndexedIssueRecord(
                id=issue.id,
                install_id=install_id,
                owner=owner,
                repo=repo,
                number=issue.number,
                title=issue.title,
                body=issue.body,
                state=issue.state,
                created_at=issue.created_at,
                updated_at=updated_at,
                inserted_at=self.clock(),
                embedding=embedding,
                is_pull_request=issue.is_pull_request,
            )
            await asyncio.to_thread(self.store.append, [record])
            written += 1
            logger.debug("Indexed %s/%s#%d", owner, repo, issue.number)
        return written

    async def index_install(self, install_id: int) -> int:
        """Index every repository an installation can access."""
        repos = await asyncio.to_thread(
            self.resolver.list_install_repos, str(install_id)
        )
        known = await asyncio.to_thread(self.store.updated_ats, install_id)
        logger.debug(
            "Indexing install %d: %d repositories, %d issues already indexed",
            install_id,
            len(repos),
            len(known),
        )

        written = 0
        for owner, repo in repos:
            written += await self.index_repository(install_id, owner, repo, known)
        logger.info("Finished indexing install %d: %d new snapshots", install_id, written)
        return written

    async def run_once(self) -> int:
        """Index one randomly chosen installation."""
        install_ids = await asyncio.to_thread(self.resolver.list_install_ids)
        if not install_ids:
            logger.info("No installations to index")
            return 0
        return await self.index_install(self.rng.choice(install_ids))

    async def run(self, interval: float, sleep=asyncio.sleep) -> None:
        """Index a random installation every interval seconds until cancelled."""
        logger.info("Indexer started (interval %.0fs)", interval)
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Indexing round failed")
            await sleep(interval)
