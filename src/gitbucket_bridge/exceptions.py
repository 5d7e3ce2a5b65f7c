class UnrecoverableError(ValueError):
    """Base class for all unrecoverable errors in the GitBucket bridge."""

    pass


class InvalidPayloadError(UnrecoverableError):
    """Raised when a webhook payload is missing, not JSON or not a push event."""

    pass


class PollingError(RuntimeError):
    """Raised when SCM polling for a job fails inside a queued trigger task."""

    pass


class CommentPostError(RuntimeError):
    """Raised when an issue comment cannot be addressed to the GitBucket API."""

    pass
