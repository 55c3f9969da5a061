"""Google Drive object store provider.

Talks to the Drive v3 REST API with httpx.  Access tokens are minted from a
long-lived OAuth refresh token and cached until shortly before they expire.
Uploaded files get an ``anyone:reader`` permission so their links resolve
without a Google account.
"""
import json
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Optional, Tuple

import httpx

from app.errors import RemoteUploadError

from .provider import ObjectStoreProvider
from .schemas import RemoteObject

logger = logging.getLogger(__name__)


def _multipart_related(metadata: dict, content: bytes, content_type: str) -> Tuple[bytes, str]:
    """Encode a Drive multipart upload body (metadata part, then media part)."""
    boundary = f"journal-archive-{uuid.uuid4().hex}"
    body = b"".join([
        f"--{boundary}\r\n".encode(),
        b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
        json.dumps(metadata).encode("utf-8"),
        f"\r\n--{boundary}\r\n".encode(),
        f"Content-Type: {content_type}\r\n\r\n".encode(),
        content,
        f"\r\n--{boundary}--\r\n".encode(),
    ])
    return body, boundary


class GoogleDriveStore(ObjectStoreProvider):
    """Object store backed by a Google Drive folder."""

    TOKEN_URL = "https://oauth2.googleapis.com/token"
    FILES_URL = "https://www.googleapis.com/drive/v3/files"
    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
    TOKEN_EXPIRY_MARGIN = 60

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        folder_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.folder_id = folder_id
        self._http = httpx.Client(timeout=timeout, transport=transport)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "gdrive"

    def close(self) -> None:
        self._http.close()

    # -----------------------------------------------------------------------
    # Auth
    # -----------------------------------------------------------------------

    def _access_token(self) -> str:
        with self._lock:
            if self._token and time.time() < self._token_expires_at:
                return self._token

            resp = self._http.post(
                self.TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
            data = resp.json()
            if "access_token" not in data:
                error_desc = data.get("error_description", data.get("error", resp.status_code))
                raise RuntimeError(f"Google token error: {error_desc}")

            self._token = data["access_token"]
            expires_in = int(data.get("expires_in", 3600))
            self._token_expires_at = time.time() + max(expires_in - self.TOKEN_EXPIRY_MARGIN, 0)
            return self._token

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self._access_token()}"}

    @staticmethod
    def download_url(file_id: str) -> str:
        return f"https://drive.google.com/uc?id={file_id}&export=download"

    # -----------------------------------------------------------------------
    # ObjectStoreProvider implementation
    # -----------------------------------------------------------------------

    def upload(self, local_path: Path, key: str, content_type: str) -> RemoteObject:
        local_path = Path(local_path)
        # Drive has no key hierarchy; the last key segment becomes the name
        metadata = {"name": key.rsplit("/", 1)[-1]}
        if self.folder_id:
            metadata["parents"] = [self.folder_id]

        try:
            body, boundary = _multipart_related(metadata, local_path.read_bytes(), content_type)
            resp = self._http.post(
                self.UPLOAD_URL,
                params={"uploadType": "multipart", "fields": "id,name,webViewLink"},
                headers={
                    **self._headers(),
                    "Content-Type": f"multipart/related; boundary={boundary}",
                },
                content=body,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            raise RemoteUploadError(
                f"Failed to upload {local_path.name} to Google Drive: {exc}"
            ) from exc

        file_id = data["id"]
        self._make_public(file_id)
        logger.info("Uploaded %s to Google Drive as %s", local_path.name, file_id)
        return RemoteObject(
            remote_id=file_id,
            remote_url=data.get("webViewLink") or self.download_url(file_id),
            backend=self.name,
        )

    def _make_public(self, file_id: str) -> None:
        # The file is already stored; a missing permission only affects link access
        try:
            resp = self._http.post(
                f"{self.FILES_URL}/{file_id}/permissions",
                headers=self._headers(),
                json={"role": "reader", "type": "anyone"},
            )
            resp.raise_for_status()
        except Exception as exc:
            logger.warning("Could not make Drive file %s public: %s", file_id, exc)

    def fetch(self, remote_id: str, dest_path: Path) -> Path:
        dest_path = Path(dest_path)
        with self._http.stream(
            "GET",
            f"{self.FILES_URL}/{remote_id}",
            params={"alt": "media"},
            headers=self._headers(),
        ) as resp:
            resp.raise_for_status()
            with open(dest_path, "wb") as out:
                for chunk in resp.iter_bytes():
                    out.write(chunk)

        if dest_path.stat().st_size == 0:
            raise ValueError(f"Downloaded Drive file {remote_id} is empty")
        return dest_path

    def delete(self, remote_id: str) -> None:
        resp = self._http.delete(f"{self.FILES_URL}/{remote_id}", headers=self._headers())
        resp.raise_for_status()
        logger.info("Deleted Google Drive file %s", remote_id)
