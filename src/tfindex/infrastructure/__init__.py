"""
Infrastructure Layer - Remote storage access.
"""

from tfindex.infrastructure.drive import (
    AuthenticationError,
    GoogleCredentialsProvider,
    GoogleDriveClient,
    NonRetryableError,
    RemoteStorageError,
    RetryableError,
    BackoffPolicy,
)
from tfindex.infrastructure.fakes import InMemoryRemoteStorage

__all__ = [
    "GoogleDriveClient",
    "GoogleCredentialsProvider",
    "BackoffPolicy",
    "RemoteStorageError",
    "RetryableError",
    "NonRetryableError",
    "AuthenticationError",
    "InMemoryRemoteStorage",
]
