"""
Unit tests for GoogleDriveClient using httpx.MockTransport.
"""

import json

import httpx
import pytest

from tfindex.core.scanner import FOLDER_MIME_TYPE, RemoteTreeScanner
from tfindex.infrastructure.drive.client import FILES_URL, UPLOAD_URL, GoogleDriveClient
from tfindex.infrastructure.drive.errors import (
    AuthenticationError,
    NonRetryableError,
    RemoteStorageError,
)
from tfindex.infrastructure.drive.retry import BackoffPolicy


class StaticToken:
    """Token provider that never expires."""

    def __init__(self, token="test-token"):
        self._token = token
        self.validations = 0

    @property
    def token(self):
        return self._token

    def ensure_valid(self):
        self.validations += 1
        return self


def make_client(handler, page_size=1000, max_retries=2):
    transport = httpx.MockTransport(handler)
    return GoogleDriveClient(
        StaticToken(),
        page_size=page_size,
        backoff=BackoffPolicy(max_retries=max_retries, base_delay=0.0),
        http_client=httpx.Client(transport=transport),
    )


def file_item(file_id, name, size="1", public=False, folder=False):
    item = {"id": file_id, "name": name}
    if folder:
        item["mimeType"] = FOLDER_MIME_TYPE
    else:
        item["mimeType"] = "application/octet-stream"
        item["size"] = size
    item["permissions"] = [{"type": "anyone", "role": "reader"}] if public else []
    return item


class TestListing:
    def test_single_page(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "files": [
                        file_item("f1", "Game.nsp", size="100", public=True),
                        file_item("d1", "Sub", folder=True),
                    ]
                },
            )

        client = make_client(handler)
        entries = list(client.list_children("root-folder"))

        assert [(e.descriptor.id, e.is_folder) for e in entries] == [("f1", False), ("d1", True)]
        assert entries[0].descriptor.size == "100"
        assert entries[0].descriptor.shared is True
        assert entries[1].descriptor.shared is False

        request = requests[0]
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.url.params["q"] == "'root-folder' in parents and trashed = false"
        assert request.url.params["pageSize"] == "1000"

    def test_follows_next_page_token(self):
        pages = {
            None: {"files": [file_item("a", "a.nsp")], "nextPageToken": "p2"},
            "p2": {"files": [file_item("b", "b.nsp")], "nextPageToken": "p3"},
            "p3": {"files": [file_item("c", "c.nsp")]},
        }
        seen_tokens = []

        def handler(request):
            token = request.url.params.get("pageToken")
            seen_tokens.append(token)
            return httpx.Response(200, json=pages[token])

        client = make_client(handler, page_size=1)
        ids = [e.descriptor.id for e in client.list_children("folder")]

        assert ids == ["a", "b", "c"]
        assert seen_tokens == [None, "p2", "p3"]

    def test_quotes_in_folder_id_escaped(self):
        queries = []

        def handler(request):
            queries.append(request.url.params["q"])
            return httpx.Response(200, json={"files": []})

        list(make_client(handler).list_children("it's"))

        assert queries == ["'it\\'s' in parents and trashed = false"]

    def test_scanner_over_drive_client(self):
        tree = {
            "A": [file_item("f1", "f1.nsp"), file_item("B", "B", folder=True)],
            "B": [file_item("f2", "f2.txt"), file_item("f3", "f3.xci")],
        }

        def handler(request):
            folder_id = request.url.params["q"].split("'")[1]
            return httpx.Response(200, json={"files": tree[folder_id]})

        client = make_client(handler)
        files = RemoteTreeScanner(client).scan(["A"])

        assert [f.id for f in files] == ["f1", "f2", "f3"]
        assert client._credentials.validations == 1


class TestErrorMapping:
    def test_rate_limit_retried(self):
        responses = [httpx.Response(429, text="slow down"), httpx.Response(200, json={"files": []})]

        def handler(request):
            return responses.pop(0)

        assert list(make_client(handler).list_children("f")) == []
        assert responses == []

    def test_403_rate_limit_reason_retried(self):
        body = {"error": {"errors": [{"reason": "userRateLimitExceeded"}]}}
        responses = [httpx.Response(403, json=body), httpx.Response(200, json={"files": []})]

        def handler(request):
            return responses.pop(0)

        assert list(make_client(handler).list_children("f")) == []

    def test_403_forbidden_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403, json={"error": {"errors": [{"reason": "forbidden"}]}})

        with pytest.raises(NonRetryableError, match="403"):
            list(make_client(handler).list_children("f"))

        assert len(calls) == 1

    def test_server_errors_exhaust_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        with pytest.raises(RemoteStorageError, match="503"):
            list(make_client(handler, max_retries=2).list_children("f"))

        assert len(calls) == 3

    def test_exhausted_error_names_the_request_and_retry_hint(self):
        def handler(request):
            return httpx.Response(429, text="quota", headers={"Retry-After": "7"})

        with pytest.raises(RemoteStorageError, match="Drive GET files failed after 1 attempts") as exc:
            list(make_client(handler, max_retries=0).list_children("f"))

        assert exc.value.__cause__.retry_after == 7.0

    def test_unauthorized(self):
        def handler(request):
            return httpx.Response(401, text="invalid credentials")

        with pytest.raises(AuthenticationError):
            list(make_client(handler).list_children("f"))

    def test_not_found(self):
        def handler(request):
            return httpx.Response(404, text="File not found")

        with pytest.raises(NonRetryableError, match="404"):
            list(make_client(handler).list_children("missing"))

    def test_connection_error_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"files": []})

        assert list(make_client(handler).list_children("f")) == []
        assert len(attempts) == 2


class TestSharingAndUpload:
    def test_share_creates_anyone_reader_permission(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": "perm"})

        make_client(handler).share("file-1")

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url).startswith(f"{FILES_URL}/file-1/permissions")
        assert json.loads(request.content) == {"role": "reader", "type": "anyone"}

    def test_upload_creates_new_file(self, tmp_path):
        index = tmp_path / "index.tlf"
        index.write_bytes(b"TINFOIL\x0d")
        requests = []

        def handler(request):
            requests.append(request)
            if request.method == "GET":
                return httpx.Response(200, json={"files": []})
            return httpx.Response(200, json={"id": "new-id"})

        remote_id, shared = make_client(handler).upload(index, folder_id="target")

        assert (remote_id, shared) == ("new-id", False)
        upload = requests[1]
        assert upload.method == "POST"
        assert str(upload.url).startswith(UPLOAD_URL)
        assert upload.url.params["uploadType"] == "multipart"
        assert upload.headers["Content-Type"].startswith("multipart/related; boundary=")
        assert b'"parents": ["target"]' in upload.content
        assert b"TINFOIL\x0d" in upload.content

    def test_upload_replaces_existing_file(self, tmp_path):
        index = tmp_path / "index.tlf"
        index.write_bytes(b"new content")
        requests = []

        def handler(request):
            requests.append(request)
            if request.method == "GET":
                existing = {"id": "old-id", "permissions": [{"type": "anyone", "role": "reader"}]}
                return httpx.Response(200, json={"files": [existing]})
            return httpx.Response(200, json={"id": "old-id"})

        remote_id, shared = make_client(handler).upload(index)

        assert (remote_id, shared) == ("old-id", True)
        assert "'root' in parents" in requests[0].url.params["q"]
        patch = requests[1]
        assert patch.method == "PATCH"
        assert str(patch.url).startswith(f"{UPLOAD_URL}/old-id")
        assert patch.content == b"new content"


def test_close_is_idempotent():
    client = make_client(lambda request: httpx.Response(204))

    with client:
        client.share("x")

    client.close()
