"""Parsing and filtering of the labels a model chose."""

import json
import logging
import re
from collections.abc import Iterable, Sequence

from ..errors import ProtocolError
from ..github_client.models import GitHubLabel
from .models import SanitizedLabels
from .prompts import DISABLE_SENTINEL

logger = logging.getLogger(__name__)


def parse_label_arguments(arguments: str) -> list[str]:
    """Extract label names from setLabels call arguments.

    Models sometimes answer with one space-delimited string instead of a
    list ("bug critical" rather than ["bug", "critical"]); both are
    accepted.

    Raises:
        ProtocolError: If the arguments are not one of those two shapes
    """
    try:
        data = json.loads(arguments)
    except json.JSONDecodeError as e:
        raise ProtocolError(
            f"setLabels arguments are not JSON: {e}", raw=arguments
        ) from e

    if not isinstance(data, dict) or "labels" not in data:
        raise ProtocolError("setLabels arguments lack a labels field", raw=arguments)

    labels = data["labels"]
    if isinstance(labels, str):
        return labels.split()
    if isinstance(labels, list) and all(isinstance(label, str) for label in labels):
        return labels
    raise ProtocolError("setLabels labels must be a list of strings", raw=arguments)


def disabled_label_names(
    repo_labels: Sequence[GitHubLabel],
    exclude_patterns: Iterable[re.Pattern[str]] = (),
    sentinel: str = DISABLE_SENTINEL,
) -> list[str]:
    """Repository labels that must never be applied automatically."""
    patterns = list(exclude_patterns)
    return [
        label.name
        for label in repo_labels
        if sentinel in label.description
        or any(pattern.search(label.name) for pattern in patterns)
    ]


def sanitize_labels(
    raw_labels: Sequence[str],
    repo_labels: Sequence[GitHubLabel],
    exclude_patterns: Iterable[re.Pattern[str]] = (),
    sentinel: str = DISABLE_SENTINEL,
) -> SanitizedLabels:
    """Drop disabled and nonexistent labels from model output.

    Order of the surviving labels is the model's order. Unknown labels are
    logged and reported, never raised.

    Args:
        raw_labels: Labels as returned by the model
        repo_labels: Current label set of the repository
        exclude_patterns: Compiled exclusion rules from the repo config
        sentinel: Description phrase marking a label human-only

    Returns:
        Final labels, the repository's disabled labels and the unknown ones
    """
    disabled = disabled_label_names(repo_labels, exclude_patterns, sentinel)
    disabled_set = set(disabled)
    known = {label.name for label in repo_labels}

    labels: list[str] = []
    unknown: list[str] = []
    for label in raw_labels:
        if label in disabled_set:
            continue
        if label not in known:
            logger.warning("Dropping label %r: not defined by the repository", label)
            unknown.append(label)
            continue
        labels.append(label)

    return SanitizedLabels(
        labels=labels, disabled_labels=disabled, unknown_labels=unknown
    )
