"""Error taxonomy for the harvest and grading stages.

Errors fall in four families:
- Input errors: bad repository URL or missing field, never retried
- Upstream errors: hosting or model API unavailable, retry with backoff
- Storage errors: blob store rejected a read or write
- Grading errors: empty file set, truncated or malformed model output
"""


class PipelineError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        details: Optional diagnostic text kept for logs, never shown to end users.
    """

    retryable: bool = False

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.details = details


class InputError(PipelineError):
    """Caller supplied an invalid request."""


class InvalidReferenceError(InputError):
    """Repository URL does not match the expected host/owner/repo shape."""


class UpstreamUnavailableError(PipelineError):
    """Hosting API returned a non-success response or could not be reached."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None, details: str | None = None):
        super().__init__(message, details)
        self.status_code = status_code


class StorageError(PipelineError):
    """Blob store failure."""


class StorageWriteError(StorageError):
    """Blob store rejected a write."""


class StorageReadError(StorageError):
    """Blob store failed to list or download."""


class GradingError(PipelineError):
    """Base class for grader failures."""


class EmptyFileSetError(GradingError):
    """No blobs were found under the storage prefix."""


class ModelUnavailableError(GradingError):
    """Model call failed or timed out."""

    retryable = True


class ResponseTooLargeError(GradingError):
    """Model stopped at its output cap; the answer is truncated."""


class MalformedResponseError(GradingError):
    """Model output could not be parsed into an evaluation record."""

    retryable = True

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message, details=raw_text[:2000] if raw_text else None)
        self.raw_text = raw_text


class ConfigurationError(PipelineError):
    """Required credentials or settings are missing."""
