"""Google Drive v3 REST client implementation."""

import json
import logging
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional, Protocol

import httpx

from tfindex.core.scanner.interfaces import RemoteStorageClientInterface
from tfindex.core.scanner.models import FOLDER_MIME_TYPE, FileDescriptor, RemoteEntry

from .errors import AuthenticationError, NonRetryableError, RetryableError
from .retry import BackoffPolicy, call_with_backoff

logger = logging.getLogger(__name__)

FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

_LIST_FIELDS = "nextPageToken, files(id, name, size, mimeType, permissions(type, role))"

# 403 reasons Drive uses for rate limiting
_RATE_LIMIT_REASONS = frozenset(["rateLimitExceeded", "userRateLimitExceeded"])


class TokenProvider(Protocol):
    """Anything that can hand out an OAuth access token."""

    @property
    def token(self) -> str: ...

    def ensure_valid(self) -> Any: ...


def _quote(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _is_public(item: dict) -> bool:
    return any(
        perm.get("type") == "anyone" for perm in item.get("permissions", []) or []
    )


def _rate_limited(response: httpx.Response) -> bool:
    try:
        errors = response.json().get("error", {}).get("errors", [])
    except ValueError:
        return False
    return any(err.get("reason") in _RATE_LIMIT_REASONS for err in errors)


def _retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds from a numeric Retry-After header; HTTP-date values are ignored."""
    try:
        return max(float(response.headers["Retry-After"]), 0.0)
    except (KeyError, ValueError):
        return None


class GoogleDriveClient(RemoteStorageClientInterface):
    """
    Remote storage client for Google Drive.

    Uses a pooled httpx.Client for all requests. Transient failures (HTTP 429,
    5xx, 403 rate limits, timeouts, connection errors) are retried with
    exponential backoff; everything else is raised immediately.
    """

    def __init__(
        self,
        credentials: TokenProvider,
        timeout: float = 30.0,
        page_size: int = 1000,
        backoff: Optional[BackoffPolicy] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the client.

        Args:
            credentials: Token provider (see GoogleCredentialsProvider)
            timeout: Request timeout in seconds
            page_size: Items requested per listing page
            backoff: Retry count and delays for each request
            http_client: Preconfigured httpx.Client (tests inject a MockTransport)
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        self._credentials = credentials
        self._timeout = timeout
        self._page_size = page_size
        self._backoff = backoff or BackoffPolicy()
        self._client = http_client

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=self._timeout,
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> "GoogleDriveClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def ensure_authenticated(self) -> None:
        self._credentials.ensure_valid()

    def list_children(self, folder_id: str) -> Iterator[RemoteEntry]:
        """List every child of a folder, following nextPageToken."""
        page_token: Optional[str] = None
        page = 0

        while True:
            params = {
                "q": f"'{_quote(folder_id)}' in parents and trashed = false",
                "fields": _LIST_FIELDS,
                "pageSize": self._page_size,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            data = self._call("GET", FILES_URL, params=params)
            page += 1
            items = data.get("files", [])
            logger.debug(f"Folder {folder_id}: page {page} with {len(items)} items")

            for item in items:
                yield RemoteEntry(
                    descriptor=FileDescriptor(
                        id=item["id"],
                        name=item.get("name", ""),
                        size=str(item.get("size", "")),
                        shared=_is_public(item),
                    ),
                    is_folder=item.get("mimeType") == FOLDER_MIME_TYPE,
                )

            page_token = data.get("nextPageToken")
            if not page_token:
                break

    def share(self, remote_id: str) -> None:
        """Add an ``anyone`` reader permission to a file."""
        self._call(
            "POST",
            f"{FILES_URL}/{remote_id}/permissions",
            params={"supportsAllDrives": "true"},
            json={"role": "reader", "type": "anyone"},
        )
        logger.debug(f"Shared {remote_id}")

    def upload(self, path: Path, folder_id: Optional[str] = None) -> tuple[str, bool]:
        """
        Upload a file, replacing a same-named file in the target folder.

        A replaced file keeps its id and sharing settings.

        Returns:
            Tuple of (remote_id, already_shared)
        """
        path = Path(path)
        parent = folder_id or "root"
        content = path.read_bytes()

        existing = self._call(
            "GET",
            FILES_URL,
            params={
                "q": (
                    f"name = '{_quote(path.name)}' and '{_quote(parent)}' in parents "
                    "and trashed = false"
                ),
                "fields": "files(id, permissions(type, role))",
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            },
        ).get("files", [])

        if existing:
            item = existing[0]
            self._call(
                "PATCH",
                f"{UPLOAD_URL}/{item['id']}",
                params={"uploadType": "media", "supportsAllDrives": "true"},
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
            logger.debug(f"Replaced content of {item['id']}")
            return item["id"], _is_public(item)

        boundary = uuid.uuid4().hex
        metadata = json.dumps({"name": path.name, "parents": [parent]}).encode("utf-8")
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                metadata,
                f"\r\n--{boundary}\r\n".encode(),
                b"Content-Type: application/octet-stream\r\n\r\n",
                content,
                f"\r\n--{boundary}--".encode(),
            ]
        )
        created = self._call(
            "POST",
            UPLOAD_URL,
            params={"uploadType": "multipart", "supportsAllDrives": "true", "fields": "id"},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return created["id"], False

    def _call(self, method: str, url: str, **kwargs: Any) -> dict:
        return call_with_backoff(
            lambda: self._request(method, url, **kwargs),
            self._backoff,
            description=f"Drive {method} {url.rsplit('/drive/v3/', 1)[-1]}",
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        """
        Make a single HTTP request.

        Raises:
            RetryableError: For rate limits and transient errors
            AuthenticationError: For rejected credentials
            NonRetryableError: For every other failure
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self._credentials.token}"

        client = self._get_client()
        try:
            response = client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise RetryableError(f"Request timeout: {e}")
        except httpx.ConnectError as e:
            raise RetryableError(f"Connection error: {e}")
        except httpx.RequestError as e:
            raise RetryableError(f"Request error: {e}")

        status = response.status_code
        if status in (200, 201):
            return response.json() if response.content else {}
        elif status == 204:
            return {}
        elif status == 429 or (status == 403 and _rate_limited(response)):
            raise RetryableError(
                f"Rate limited: {status} - {response.text}", retry_after=_retry_after(response)
            )
        elif status in (500, 502, 503, 504):
            raise RetryableError(
                f"Server error: {status} - {response.text}", retry_after=_retry_after(response)
            )
        elif status == 401:
            raise AuthenticationError(f"Authentication failed: {status} - {response.text}")
        else:
            raise NonRetryableError(f"Drive API error: {status} - {response.text} ({method} {url})")
