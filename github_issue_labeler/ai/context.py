"""Labeling prompt construction under a model token budget."""

from collections.abc import Sequence

from ..github_client.models import GitHubIssue, GitHubLabel
from .models import LabelingPrompt, PromptMessage
from .prompts import (
    HISTORY_HEADER,
    LABEL_CATALOGUE_HEADER,
    LABELING_SYSTEM_PROMPT,
    TARGET_HEADER,
)
from .tokens import TokenCounter

# Characters kept from each end of an issue body.
BODY_EDGE_CHARS = 500

# Context windows by model family, matched on the longest prefix.
MODEL_TOKEN_LIMITS = {
    "gpt-3.5-turbo": 16385,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4-1106-preview": 128000,
    "gpt-4-0125-preview": 128000,
    "gpt-4o": 128000,
    "o1": 200000,
    "o3": 200000,
    "o4-mini": 200000,
}


def model_token_limit(model: str) -> int:
    """Context window of a model.

    Unknown models get the largest known window: an overflow error from the
    provider is preferable to silently starving the prompt.
    """
    name = model.split(":", 1)[-1]
    best = ""
    for family in MODEL_TOKEN_LIMITS:
        if name.startswith(family) and len(family) > len(best):
            best = family
    if best:
        return MODEL_TOKEN_LIMITS[best]
    return max(MODEL_TOKEN_LIMITS.values())


def truncate_body(body: str, edge_chars: int = BODY_EDGE_CHARS) -> str:
    """Keep the head and the tail of a long body."""
    if len(body) <= 2 * edge_chars:
        return body
    omitted = len(body) - 2 * edge_chars
    return (
        body[:edge_chars]
        + f"\n[... {omitted} characters omitted ...]\n"
        + body[-edge_chars:]
    )


def issue_to_text(issue: GitHubIssue, include_labels: bool = True) -> str:
    """Serialize an issue as one bounded, delimited record."""
    lines = [
        f'<issue number="{issue.number}">',
        f"author: {issue.author} ({issue.author_role})",
    ]
    if include_labels:
        lines.append(f"labels: {', '.join(issue.labels)}")
    lines.append(f"title: {issue.title}")
    lines.append(truncate_body(issue.body))
    lines.append("</issue>")
    return "\n".join(lines)


class ContextBuilder:
    """Builds the labeling prompt for one target issue.

    Inputs are never mutated; pruning works on a private copy of the
    history list.
    """

    def __init__(self, token_counter: TokenCounter, token_limit: int | None = None):
        """Initialize builder.

        Args:
            token_counter: Token accountant used for budget enforcement
            token_limit: Override of the model-derived context window
        """
        self.token_counter = token_counter
        self.token_limit = token_limit

    def _label_catalogue(self, labels: Sequence[GitHubLabel]) -> str:
        return LABEL_CATALOGUE_HEADER + "".join(
            f"{label.name}: {label.description}\n" for label in labels
        )

    def _messages(
        self,
        labels: Sequence[GitHubLabel],
        history: Sequence[GitHubIssue],
        target: GitHubIssue,
    ) -> list[PromptMessage]:
        messages = [
            PromptMessage(role="system", content=LABELING_SYSTEM_PROMPT),
            PromptMessage(role="system", content=self._label_catalogue(labels)),
        ]
        if history:
            blob = HISTORY_HEADER + "\n".join(issue_to_text(i) for i in history)
            messages.append(PromptMessage(role="user", content=blob))
        messages.append(
            PromptMessage(
                role="user",
                content=TARGET_HEADER
                + issue_to_text(target, include_labels=bool(target.labels)),
            )
        )
        return messages

    def build(
        self,
        model: str,
        labels: Sequence[GitHubLabel],
        history: Sequence[GitHubIssue],
        target: GitHubIssue,
    ) -> LabelingPrompt:
        """Assemble the prompt, pruning history until it fits.

        Args:
            model: Model the prompt is meant for
            labels: Repository label set
            history: Past issues, oldest first
            target: Issue to label

        Returns:
            The prompt and the history that survived pruning. When a single
            history issue remains the prompt is returned even if it is over
            budget; the provider rejects it in that case.
        """
        limit = self.token_limit or model_token_limit(model)
        remaining = list(history)
        rebuilds = 0

        while True:
            messages = self._messages(labels, remaining, target)
            tokens = self.token_counter.count(messages)
            if tokens <= limit or len(remaining) <= 1:
                break
            # Drop the oldest half.
            remaining = remaining[len(remaining) // 2 :]
            rebuilds += 1

        return LabelingPrompt(
            model=model,
            messages=messages,
            label_names=[label.name for label in labels],
            history=remaining,
            token_count=tokens,
            token_limit=limit,
            rebuilds=rebuilds,
        )
