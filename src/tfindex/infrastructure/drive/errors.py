"""Exception types for the remote storage client."""

from typing import Optional

from tfindex.core.errors import TfIndexError


class RemoteStorageError(TfIndexError):
    """Base exception for remote storage failures."""

    pass


class RetryableError(RemoteStorageError):
    """Rate limit or temporary failure; ``retry_after`` is the server's hint in seconds."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class NonRetryableError(RemoteStorageError):
    """Error that should not be retried (invalid requests, missing files)."""

    pass


class AuthenticationError(NonRetryableError):
    """Credentials are missing, invalid or could not be refreshed."""

    pass
