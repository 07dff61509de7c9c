"""Main CLI entry point."""

import asyncio
import json
from typing import Optional

import typer
import uvicorn
from dotenv import load_dotenv
from openai import AsyncOpenAI
from rich.console import Console

from ..ai import (
    ContextBuilder,
    OpenAICompletionProvider,
    OpenAIEmbeddingProvider,
    RetryPolicy,
    TiktokenCounter,
)
from ..config import LabelerSettings
from ..errors import LabelerError
from ..evaluate import DEFAULT_CONCURRENCY, print_stats, run_evaluation
from ..indexer import Indexer
from ..search import IssueSearcher
from ..server import create_app
from ..service import LabelerService
from ..storage import IssueIndexStore
from ..utils.log_setup import setup_logging
from .options import (
    INSTALL_ID_OPTION,
    ISSUE_NUMBER_OPTION,
    LOG_FILE_OPTION,
    MODEL_OPTION,
    OWNER_OPTION,
    REPO_OPTION,
    TEST_MODE_OPTION,
    TIMEOUT_OPTION,
)

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="github-labeler",
    help="Label GitHub issues with an LLM and search for similar issues",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


class Components:
    """Everything the commands need, wired from one settings object."""

    def __init__(self, settings: LabelerSettings):
        self.settings = settings
        self.resolver = settings.resolver()
        # RetryPolicy owns retries; SDK retries would multiply them.
        self.openai = AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
        self.token_counter = TiktokenCounter()
        self.store = IssueIndexStore(settings.index_dir)
        self.embedder = OpenAIEmbeddingProvider(self.openai, settings.embedding_model)

    def service(self, model: Optional[str] = None) -> LabelerService:
        return LabelerService(
            resolver=self.resolver,
            completion=OpenAICompletionProvider(self.openai),
            context_builder=ContextBuilder(self.token_counter),
            model=model or self.settings.openai_model,
            retry_policy=RetryPolicy(max_attempts=self.settings.max_attempts()),
        )

    def searcher(self) -> IssueSearcher:
        return IssueSearcher(self.resolver, self.store, self.embedder)

    def indexer(self) -> Indexer:
        return Indexer(self.resolver, self.store, self.embedder, self.token_counter)


def _components(log_file: Optional[str] = None) -> Components:
    settings = LabelerSettings()
    setup_logging(settings.log_level, log_file)
    try:
        settings.validate()
        return Components(settings)
    except LabelerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Address to bind"),
    port: int = typer.Option(8080, "--port", "-p", help="Port to listen on"),
    log_file: Optional[str] = LOG_FILE_OPTION,
) -> None:
    """Serve the inference, search and webhook endpoints."""
    components = _components(log_file)
    api = create_app(components.service(), components.searcher())
    console.print(f"[blue]Listening on {host}:{port}[/blue]")
    uvicorn.run(api, host=host, port=port, log_config=None)


@app.command()
def infer(
    owner: str = OWNER_OPTION,
    repo: str = REPO_OPTION,
    issue_number: int = ISSUE_NUMBER_OPTION,
    install_id: str = INSTALL_ID_OPTION,
    test_mode: bool = TEST_MODE_OPTION,
    model: Optional[str] = MODEL_OPTION,
    timeout: float = TIMEOUT_OPTION,
    log_file: Optional[str] = LOG_FILE_OPTION,
) -> None:
    """Infer labels for one issue without applying them.

    Examples:

        # Ask which labels issue 123 should carry
        github-labeler infer --owner myorg --repo myrepo --issue-number 123

        # Re-infer as if the issue were unlabeled
        github-labeler infer -o myorg -r myrepo -i 123 --test-mode
    """
    components = _components(log_file)
    try:
        result = asyncio.run(
            components.service(model).infer(
                install_id, owner, repo, issue_number, test_mode=test_mode, timeout=timeout
            )
        )
    except LabelerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except TimeoutError:
        console.print(f"[red]❌ No answer within {timeout:.0f}s[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Labels for {owner}/{repo}#{issue_number}:[/green]")
    console.print(json.dumps(result.model_dump(), indent=2))


@app.command()
def search(
    owner: str = OWNER_OPTION,
    repo: str = REPO_OPTION,
    query: str = typer.Argument(..., help="Text to compare against open issues"),
    limit: int = typer.Option(10, "--limit", help="Number of results to show"),
    log_file: Optional[str] = LOG_FILE_OPTION,
) -> None:
    """Find open issues similar to a query."""
    components = _components(log_file)
    try:
        result = asyncio.run(components.searcher().search(owner, repo, query))
    except LabelerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    for issue in result.issues[:limit]:
        console.print(
            f"[cyan]{issue.similarity:.3f}[/cyan] #{issue.number} {issue.title}"
        )


@app.command()
def index(
    install_id: Optional[int] = typer.Option(
        None, "--install-id", help="Index one installation and exit"
    ),
    interval: float = typer.Option(
        600.0, "--interval", help="Seconds between indexing rounds"
    ),
    log_file: Optional[str] = LOG_FILE_OPTION,
) -> None:
    """Embed issues into the similarity index."""
    components = _components(log_file)
    indexer = components.indexer()
    try:
        if install_id is not None:
            written = asyncio.run(indexer.index_install(install_id))
            console.print(f"[green]✓ Indexed {written} issue snapshots[/green]")
        else:
            asyncio.run(indexer.run(interval))
    except LabelerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Indexer stopped[/yellow]")


@app.command()
def evaluate(
    owner: str = OWNER_OPTION,
    repo: str = REPO_OPTION,
    install_id: str = INSTALL_ID_OPTION,
    n_issues: int = typer.Option(10, "--n-issues", "-n", help="Number of issues to test"),
    concurrency: int = typer.Option(
        DEFAULT_CONCURRENCY, "--concurrency", help="Inferences in flight"
    ),
    model: Optional[str] = MODEL_OPTION,
    timeout: float = TIMEOUT_OPTION,
    log_file: Optional[str] = LOG_FILE_OPTION,
) -> None:
    """Measure accuracy on recent issues with their labels hidden."""
    components = _components(log_file)
    try:
        stats = asyncio.run(
            run_evaluation(
                components.service(model),
                install_id,
                owner,
                repo,
                n_issues=n_issues,
                concurrency=concurrency,
                timeout=timeout,
            )
        )
    except LabelerError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    print_stats(stats, console)


@app.command()
def version() -> None:
    """Show version information."""
    from github_issue_labeler import __version__

    console.print(f"GitHub Issue Labeler v{__version__}")


if __name__ == "__main__":
    app()
