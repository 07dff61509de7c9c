"""Error taxonomy for the labeler.

Only transient provider errors are retried locally; everything else
propagates to the caller with enough context to debug without re-running.
"""

from enum import Enum


class LabelerError(Exception):
    """Base class for all labeler errors."""


class ConfigError(LabelerError):
    """Credential, installation or configuration resolution failed."""


class UpstreamFetchError(LabelerError):
    """The issue/label source failed to answer."""


class ErrorClass(str, Enum):
    """Retry classification of a provider failure."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    UNKNOWN = "unknown"


class ProviderError(LabelerError):
    """A completion or embedding provider call failed.

    Args:
        message: Human readable description
        status_code: HTTP status returned by the provider, if any
        transient: Force a transient classification for failures that
            never produced a status (connection resets, timeouts)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        transient: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.transient = transient

    def classify(self) -> ErrorClass:
        """Classify the failure for retry purposes."""
        if self.transient:
            return ErrorClass.TRANSIENT
        if self.status_code is None:
            return ErrorClass.UNKNOWN
        if self.status_code == 429 or self.status_code >= 500:
            return ErrorClass.TRANSIENT
        if 400 <= self.status_code < 500:
            return ErrorClass.CLIENT_ERROR
        return ErrorClass.UNKNOWN


class TransientProviderError(LabelerError):
    """Transient provider failures outlasted the retry policy."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class ProtocolError(LabelerError):
    """The provider answered, but not in the shape we asked for."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message if raw is None else f"{message}, raw: {raw}")
        self.detail = message
        self.raw = raw


class NotFoundError(LabelerError):
    """Nothing has been indexed for the requested repository."""


class ForbiddenError(LabelerError):
    """The request targets a resource we refuse to serve."""


class EmbeddingDimensionError(LabelerError):
    """Query and stored embeddings do not share dimensionality."""
