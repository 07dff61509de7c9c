"""Shared CLI option definitions so commands use the same shorthands."""

import typer

INSTALL_ID_OPTION = typer.Option(
    "0", "--install-id", help="GitHub App installation ID (0 with a personal token)"
)

OWNER_OPTION = typer.Option(..., "--owner", "-o", help="Repository owner")

REPO_OPTION = typer.Option(..., "--repo", "-r", help="Repository name")

ISSUE_NUMBER_OPTION = typer.Option(..., "--issue-number", "-i", help="Issue number")

TEST_MODE_OPTION = typer.Option(
    False, "--test-mode", help="Hide the issue's current labels from the model"
)

MODEL_OPTION = typer.Option(
    None, "--model", "-m", help="Chat model (defaults to OPENAI_MODEL or gpt-4o)"
)

TIMEOUT_OPTION = typer.Option(60.0, "--timeout", help="Deadline per inference in seconds")

LOG_FILE_OPTION = typer.Option(None, "--log-file", help="Also write debug logs here")
