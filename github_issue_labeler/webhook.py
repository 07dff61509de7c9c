"""Handling of GitHub issue events."""

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, Field

from .service import LabelerService

logger = logging.getLogger(__name__)

LABELED_ACTIONS = {"opened", "reopened"}
WEBHOOK_TIMEOUT = 60.0


class IssueEvent(BaseModel):
    """The parts of an `issues` webhook payload we act on."""

    action: str
    install_id: int
    owner: str
    repo: str
    issue_number: int
    issue_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "IssueEvent":
        """Flatten the nested webhook envelope."""
        return cls(
            action=payload["action"],
            install_id=payload["installation"]["id"],
            owner=payload["repository"]["owner"]["login"],
            repo=payload["repository"]["name"],
            issue_number=payload["issue"]["number"],
            issue_url=payload["issue"].get("html_url"),
        )


class WebhookOutcome(BaseModel):
    """What handling an event did."""

    message: str
    labels: list[str] = Field(default_factory=list)


async def handle_issue_event(
    service: LabelerService,
    event: IssueEvent,
    timeout: float | None = WEBHOOK_TIMEOUT,
) -> WebhookOutcome:
    """Label a newly opened or reopened issue.

    Inference already retried transient failures, so errors are logged and
    re-raised without another attempt here. Inference is bounded by timeout
    seconds, retries included.
    """
    if event.action not in LABELED_ACTIONS:
        return WebhookOutcome(message="not an opened issue")

    install_id = str(event.install_id)
    context = f"{event.owner}/{event.repo}#{event.issue_number}"
    try:
        result = await service.infer(
            install_id, event.owner, event.repo, event.issue_number, timeout=timeout
        )
        if not result.set_labels:
            logger.info("No labels to set on %s", context)
            return WebhookOutcome(message="no labels to set")

        client = service.resolver.client_for_install(install_id)
        await asyncio.to_thread(
            client.add_labels,
            event.owner,
            event.repo,
            event.issue_number,
            result.set_labels,
        )
    except Exception:
        logger.exception("Failed to label %s (%s)", context, event.issue_url)
        raise

    logger.info(
        "Labels set on %s: %s (tokens used: %d, install %s)",
        context,
        result.set_labels,
        result.tokens_used,
        install_id,
    )
    return WebhookOutcome(message="labels set", labels=result.set_labels)
