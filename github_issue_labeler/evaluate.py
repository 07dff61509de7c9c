"""Offline accuracy evaluation of label inference against existing labels."""

import asyncio
import logging
import time
from collections import Counter

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from .github_client.models import GitHubIssue
from .service import LabelerService

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
DEFAULT_TIMEOUT = 60.0
TOP_N = 20


class EvaluationStats(BaseModel):
    """Inferred labels compared with the labels humans applied."""

    n_issues: int = 0
    failures: int = 0
    hits: list[str] = Field(default_factory=list)
    false_adds: list[str] = Field(
        default_factory=list, description="Inferred but not applied by humans"
    )
    false_removes: list[str] = Field(
        default_factory=list, description="Applied by humans but not inferred"
    )
    tokens: int = 0
    latencies: list[float] = Field(default_factory=list)

    def record(
        self, want_labels: list[str], got_labels: list[str], tokens: int, latency: float
    ) -> None:
        self.n_issues += 1
        for label in want_labels:
            if label in got_labels:
                self.hits.append(label)
            else:
                self.false_removes.append(label)
        self.false_adds.extend(label for label in got_labels if label not in want_labels)
        self.tokens += tokens
        self.latencies.append(latency)

    def rate(self, labels: list[str]) -> float:
        """Occurrences per evaluated issue, as a percentage."""
        if self.n_issues == 0:
            return 0.0
        return len(labels) / self.n_issues * 100

    @staticmethod
    def top(labels: list[str], n: int = TOP_N) -> list[tuple[str, int]]:
        return Counter(labels).most_common(n)

    def mean_latency(self) -> float:
        return sum(self.latencies) / len(self.latencies) if self.latencies else 0.0


def _format_top(pairs: list[tuple[str, int]]) -> str:
    return ", ".join(f"{label}: {count}" for label, count in pairs) or "-"


def print_stats(stats: EvaluationStats, console: Console) -> None:
    """Render the evaluation summary as a table."""
    table = Table(title="Label inference accuracy")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Top labels")

    table.add_row("Issues", str(stats.n_issues), "", "")
    table.add_row("Failures", str(stats.failures), "", "")
    for name, labels in (
        ("Hits", stats.hits),
        ("False adds", stats.false_adds),
        ("False removes", stats.false_removes),
    ):
        table.add_row(
            name,
            str(len(labels)),
            f"{stats.rate(labels):.2f}%",
            _format_top(stats.top(labels)),
        )
    table.add_row("Tokens used", str(stats.tokens), "", "")
    table.add_row("Mean latency", f"{stats.mean_latency():.2f}s", "", "")
    console.print(table)


async def _evaluate_single_issue(
    service: LabelerService,
    install_id: str,
    owner: str,
    repo: str,
    issue: GitHubIssue,
    stats: EvaluationStats,
    semaphore: asyncio.Semaphore,
    timeout: float,
) -> None:
    async with semaphore:
        start = time.monotonic()
        try:
            result = await service.infer(
                install_id, owner, repo, issue.number, test_mode=True, timeout=timeout
            )
        except Exception as e:
            stats.failures += 1
            logger.error("Inference failed for %s/%s#%d: %s", owner, repo, issue.number, e)
            raise

        latency = time.monotonic() - start
        logger.info(
            "Inferred %s/%s#%d in %.1fs: want %s, got %s",
            owner,
            repo,
            issue.number,
            latency,
            sorted(issue.labels),
            sorted(result.set_labels),
        )
        stats.record(issue.labels, result.set_labels, result.tokens_used, latency)


async def run_evaluation(
    service: LabelerService,
    install_id: str,
    owner: str,
    repo: str,
    n_issues: int = 10,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
) -> EvaluationStats:
    """Infer labels for recent issues with their labels hidden and score them.

    Args:
        service: Labeler to evaluate
        install_id: Installation the repository belongs to
        owner: Repository owner
        repo: Repository name
        n_issues: Number of most recent issues to evaluate
        concurrency: Maximum inferences in flight
        timeout: Deadline in seconds per inference

    Returns:
        Aggregated statistics; failed inferences are counted, not raised
    """
    client = service.resolver.client_for_install(install_id)
    issues = await asyncio.to_thread(client.list_issues, owner, repo, n_issues)

    stats = EvaluationStats()
    semaphore = asyncio.Semaphore(concurrency)
    tasks = [
        asyncio.create_task(
            _evaluate_single_issue(
                service, install_id, owner, repo, issue, stats, semaphore, timeout
            )
        )
        for issue in issues
    ]
    await asyncio.gather(*tasks, return_exceptions=True)
    return stats
