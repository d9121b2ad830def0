"""
Google Drive mirror for approved photos.

Authenticates as a service account (JWT-bearer grant, assertion signed with
python-jose) and talks to the Drive v3 REST API over httpx. A DriveClient lives
for one request: the access token and resolved folder ids are not shared
across requests.
"""

import json
import logging
import secrets
import time
from typing import Dict, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from photo_intake.core.config import settings
from photo_intake.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive.file"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


def escape_query_value(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    def __init__(
        self,
        client_email: str,
        private_key: str,
        root_folder_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client_email = client_email
        self.private_key = private_key
        self.root_folder_id = root_folder_id
        self.timeout = timeout
        self._transport = transport
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._folder_cache: Dict[str, str] = {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _build_assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self.client_email,
            "scope": DRIVE_SCOPE,
            "aud": TOKEN_URI,
            "iat": now,
            "exp": now + 3600,
        }
        return jwt.encode(claims, self.private_key, algorithm="RS256")

    async def _get_access_token(self) -> str:
        # Refresh a minute early
        if self._access_token and time.time() < self._token_expires_at - 60:
            return self._access_token
        try:
            assertion = self._build_assertion()
        except JOSEError as e:
            raise ExternalServiceError("Invalid Google service account key") from e

        try:
            async with self._client() as client:
                response = await client.post(
                    TOKEN_URI,
                    data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                )
                response.raise_for_status()
                body = response.json()
                access_token = body["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Drive token exchange failed: %s", e)
            raise ExternalServiceError("Failed to authenticate with Google Drive") from e

        self._access_token = access_token
        self._token_expires_at = time.time() + int(body.get("expires_in", 3600))
        return self._access_token

    async def _auth_headers(self) -> Dict[str, str]:
        token = await self._get_access_token()
        return {"Authorization": f"Bearer {token}"}

    async def find_or_create_folder(self, name: str, parent_id: Optional[str] = None) -> str:
        """Return the id of the non-trashed folder called `name` under `parent_id`, creating it if absent."""
        query = (
            f"mimeType='{FOLDER_MIME_TYPE}' and name='{escape_query_value(name)}' and trashed=false"
        )
        if parent_id:
            query += f" and '{escape_query_value(parent_id)}' in parents"

        headers = await self._auth_headers()
        try:
            async with self._client() as client:
                listing = await client.get(
                    DRIVE_FILES_URL,
                    params={"q": query, "fields": "files(id, name)", "spaces": "drive"},
                    headers=headers,
                )
                listing.raise_for_status()
                files = listing.json().get("files") or []
                if files:
                    return files[0]["id"]

                metadata = {"name": name, "mimeType": FOLDER_MIME_TYPE}
                if parent_id:
                    metadata["parents"] = [parent_id]
                created = await client.post(
                    DRIVE_FILES_URL,
                    params={"fields": "id"},
                    json=metadata,
                    headers=headers,
                )
                created.raise_for_status()
                folder_id = created.json()["id"]
                logger.info("Created Drive folder '%s' (%s)", name, folder_id)
                return folder_id
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Drive folder lookup/create for '%s' failed: %s", name, e)
            raise ExternalServiceError("Failed to resolve Google Drive folder") from e

    async def resolve_school_folder(self, school_name: str) -> Optional[str]:
        """
        Folder for a school under the configured root.

        Falls back to the root folder (or None when no root is configured) if
        the lookup fails, so the upload still lands somewhere.
        """
        if not self.root_folder_id:
            return None
        if school_name in self._folder_cache:
            return self._folder_cache[school_name]
        try:
            folder_id = await self.find_or_create_folder(school_name, self.root_folder_id)
        except ExternalServiceError:
            logger.warning("Using root Drive folder for school '%s'", school_name)
            return self.root_folder_id
        self._folder_cache[school_name] = folder_id
        return folder_id

    async def upload_file(
        self,
        data: bytes,
        file_name: str,
        mime_type: str,
        folder_id: Optional[str] = None,
    ) -> Dict[str, str]:
        """Multipart upload; returns {"id", "webViewLink"}."""
        metadata = {"name": file_name}
        if folder_id:
            metadata["parents"] = [folder_id]

        boundary = f"photo-intake-{secrets.token_hex(12)}"
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {mime_type}\r\n\r\n".encode(),
                data,
                f"\r\n--{boundary}--".encode(),
            ]
        )
        headers = await self._auth_headers()
        headers["Content-Type"] = f"multipart/related; boundary={boundary}"

        logger.info("Uploading %s (%d bytes) to Drive folder %s", file_name, len(data), folder_id)
        try:
            async with self._client() as client:
                response = await client.post(
                    DRIVE_UPLOAD_URL,
                    params={"uploadType": "multipart", "fields": "id, webViewLink"},
                    content=body,
                    headers=headers,
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Drive upload of %s failed: %s", file_name, e)
            raise ExternalServiceError("Failed to upload to Google Drive") from e

        if not payload.get("id"):
            raise ExternalServiceError("Google Drive returned no file id")
        return {"id": payload["id"], "webViewLink": payload.get("webViewLink", "")}


def get_drive_client() -> Optional[DriveClient]:
    """FastAPI dependency: a fresh per-request client, or None when Drive is not configured."""
    if not settings.drive_enabled:
        logger.warning("Google Drive credentials missing; mirroring disabled")
        return None
    return DriveClient(
        client_email=settings.google_service_account_email,
        private_key=settings.google_private_key_pem,
        root_folder_id=settings.google_drive_folder_id,
        timeout=settings.http_timeout_seconds,
    )
