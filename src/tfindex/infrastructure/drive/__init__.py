"""
Google Drive client module for tfindex.

Provides a synchronous HTTP client for listing, sharing and uploading Drive
files, with OAuth credential handling and exponential backoff retry.
"""

from .auth import SCOPES, GoogleCredentialsProvider
from .client import GoogleDriveClient
from .errors import (
    AuthenticationError,
    NonRetryableError,
    RemoteStorageError,
    RetryableError,
)
from .retry import BackoffPolicy, call_with_backoff

__all__ = [
    "GoogleDriveClient",
    "GoogleCredentialsProvider",
    "SCOPES",
    "RemoteStorageError",
    "RetryableError",
    "NonRetryableError",
    "AuthenticationError",
    "BackoffPolicy",
    "call_with_backoff",
]
