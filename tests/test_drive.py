import json
from typing import Dict, List, Optional

import httpx
import pytest

from photo_intake.core.exceptions import ExternalServiceError
from photo_intake.services.drive import DriveClient, FOLDER_MIME_TYPE, escape_query_value


class DriveStub:
    """Minimal Drive v3 + token endpoint behind httpx.MockTransport."""

    def __init__(self, existing_folders: Optional[Dict[str, str]] = None, fail_list: bool = False) -> None:
        self.existing_folders = existing_folders or {}
        self.fail_list = fail_list
        self.requests: List[httpx.Request] = []
        self.created: List[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "drive-token", "expires_in": 3600})
        if path == "/drive/v3/files" and request.method == "GET":
            if self.fail_list:
                return httpx.Response(500, json={"error": "backend"})
            query = request.url.params["q"]
            files = [
                {"id": folder_id, "name": name}
                for name, folder_id in self.existing_folders.items()
                if f"name='{escape_query_value(name)}'" in query
            ]
            return httpx.Response(200, json={"files": files})
        if path == "/drive/v3/files" and request.method == "POST":
            metadata = json.loads(request.content)
            self.created.append(metadata)
            return httpx.Response(200, json={"id": f"new-{len(self.created)}"})
        if path == "/upload/drive/v3/files":
            return httpx.Response(200, json={"id": "file-1", "webViewLink": "https://drive.example/file-1"})
        return httpx.Response(404)


def _client(stub: DriveStub, root_folder_id: Optional[str] = "root-folder") -> DriveClient:
    drive = DriveClient(
        client_email="svc@example.iam.gserviceaccount.com",
        private_key="unused",
        root_folder_id=root_folder_id,
        transport=httpx.MockTransport(stub),
    )
    # Skip RS256 signing; the token endpoint is stubbed
    drive._build_assertion = lambda: "signed-assertion"
    return drive


def test_escape_query_value() -> None:
    assert escape_query_value("St. Mary's") == "St. Mary\\'s"
    assert escape_query_value("a\\b") == "a\\\\b"


@pytest.mark.asyncio
async def test_existing_folder_is_reused() -> None:
    stub = DriveStub(existing_folders={"West High": "folder-west"})
    drive = _client(stub)

    assert await drive.resolve_school_folder("West High") == "folder-west"
    assert stub.created == []

    listing = next(r for r in stub.requests if r.method == "GET")
    query = listing.url.params["q"]
    assert f"mimeType='{FOLDER_MIME_TYPE}'" in query
    assert "trashed=false" in query
    assert "'root-folder' in parents" in query
    assert listing.headers["authorization"] == "Bearer drive-token"


@pytest.mark.asyncio
async def test_missing_folder_is_created_once() -> None:
    stub = DriveStub()
    drive = _client(stub)

    first = await drive.resolve_school_folder("St. Mary's")
    second = await drive.resolve_school_folder("St. Mary's")
    assert first == second == "new-1"
    assert stub.created == [{"name": "St. Mary's", "mimeType": FOLDER_MIME_TYPE, "parents": ["root-folder"]}]
    # One token exchange serves the whole client lifetime
    assert sum(1 for r in stub.requests if r.url.host == "oauth2.googleapis.com") == 1


@pytest.mark.asyncio
async def test_folder_failure_falls_back_to_root() -> None:
    drive = _client(DriveStub(fail_list=True))
    assert await drive.resolve_school_folder("West High") == "root-folder"


@pytest.mark.asyncio
async def test_no_root_means_no_folder() -> None:
    stub = DriveStub()
    drive = _client(stub, root_folder_id=None)
    assert await drive.resolve_school_folder("West High") is None
    assert stub.requests == []


@pytest.mark.asyncio
async def test_upload_file_sends_multipart_related() -> None:
    stub = DriveStub()
    drive = _client(stub)

    uploaded = await drive.upload_file(b"jpeg-bytes", "pic.jpg", "image/jpeg", "folder-west")
    assert uploaded == {"id": "file-1", "webViewLink": "https://drive.example/file-1"}

    request = stub.requests[-1]
    assert request.url.params["uploadType"] == "multipart"
    assert request.headers["content-type"].startswith("multipart/related; boundary=")
    body = request.content
    assert b'"parents": ["folder-west"]' in body
    assert b"Content-Type: image/jpeg" in body
    assert b"jpeg-bytes" in body


@pytest.mark.asyncio
async def test_upload_failure_raises() -> None:
    def failing(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "drive-token"})
        return httpx.Response(403, json={"error": "forbidden"})

    drive = DriveClient("svc@example.com", "unused", transport=httpx.MockTransport(failing))
    drive._build_assertion = lambda: "signed-assertion"

    with pytest.raises(ExternalServiceError):
        await drive.upload_file(b"x", "pic.jpg", "image/jpeg")


@pytest.mark.asyncio
async def test_token_exchange_failure_raises() -> None:
    drive = DriveClient(
        "svc@example.com",
        "unused",
        transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"})),
    )
    drive._build_assertion = lambda: "signed-assertion"

    with pytest.raises(ExternalServiceError) as exc_info:
        await drive.upload_file(b"x", "pic.jpg", "image/jpeg")
    assert exc_info.value.message == "Failed to authenticate with Google Drive"


@pytest.mark.asyncio
async def test_bad_private_key_raises() -> None:
    drive = DriveClient("svc@example.com", "not-a-pem-key", transport=httpx.MockTransport(DriveStub()))
    with pytest.raises(ExternalServiceError) as exc_info:
        await drive.upload_file(b"x", "pic.jpg", "image/jpeg")
    assert exc_info.value.message == "Invalid Google service account key"
