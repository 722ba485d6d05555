"""Google Drive client used for uploaded attachments.

Uploads are best effort: :meth:`BlobStoreClient.upload` returns ``None``
instead of raising so that batch uploads can report partial success.
Deletes propagate every failure because the caller needs to know whether the
file is really gone.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from googleapiclient.http import MediaIoBaseUpload

from sheetdesk.client_state import ClientState
from sheetdesk.errors import REMOTE_ERRORS, StoreError, classify_remote_error
from sheetdesk.google_client import LazyGoogleClient, ServiceFactory, google_service_factory
from sheetdesk.google_credentials import CredentialLoader

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = (
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive",
)
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PUBLIC_URL_TEMPLATE = "https://drive.google.com/uc?id={file_id}"

_ID_QUERY_PATTERN = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")
_ID_PATH_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")


@dataclass(frozen=True)
class UploadItem:
    content: bytes
    file_name: str
    mime_type: str


def public_url(file_id: str) -> str:
    return PUBLIC_URL_TEMPLATE.format(file_id=file_id)


def extract_file_id(file_id_or_url: str) -> str:
    """Return the Drive file id from a raw id or a previously returned URL."""

    candidate = (file_id_or_url or "").strip()
    if "drive.google.com" not in candidate:
        return candidate
    for pattern in (_ID_QUERY_PATTERN, _ID_PATH_PATTERN):
        match = pattern.search(candidate)
        if match:
            return match.group(1)
    return candidate


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class BlobStoreClient(LazyGoogleClient):
    """Lazily initialised Google Drive client."""

    display_name = "Google Drive"
    scopes = SCOPES

    def __init__(
        self,
        loader: CredentialLoader,
        *,
        service_factory: Optional[ServiceFactory] = None,
        state: Optional[ClientState] = None,
    ) -> None:
        super().__init__(loader, service_factory or google_service_factory("drive", "v3"), state=state)

    async def find_or_create_folder(self, folder_name: str) -> str:
        """Return the id of the folder called exactly ``folder_name``, creating it if needed."""

        service = await self._ensure_ready()
        query = " and ".join(
            [
                f"name = '{_escape_query_value(folder_name)}'",
                f"mimeType = '{FOLDER_MIME_TYPE}'",
                "trashed = false",
            ]
        )
        try:
            response = await self._execute(
                service.files().list(q=query, spaces="drive", fields="files(id, name)")
            )
            files = response.get("files", []) if response else []
            if files:
                return files[0]["id"]

            created = await self._execute(
                service.files().create(body={"name": folder_name, "mimeType": FOLDER_MIME_TYPE}, fields="id")
            )
        except REMOTE_ERRORS as exc:
            raise classify_remote_error(exc, f"Failed to resolve folder {folder_name}") from exc

        logger.info("Folder created: %s", folder_name)
        return created["id"]

    async def upload(
        self,
        content: bytes,
        file_name: str,
        mime_type: str,
        folder_name: Optional[str] = None,
    ) -> Optional[str]:
        """Upload ``content`` and return its public URL, or ``None`` on failure."""

        try:
            folder_id = await self.find_or_create_folder(folder_name) if folder_name else None
            return await self._upload(UploadItem(content, file_name, mime_type), folder_id)
        except StoreError as exc:
            logger.error("Error uploading %s to Google Drive: %s", file_name, exc)
            return None

    async def upload_many(
        self,
        files: Sequence[UploadItem],
        folder_name: Optional[str] = None,
    ) -> List[str]:
        """Upload ``files`` concurrently and return the URLs of the successes in order.

        The target folder is resolved once for the whole batch.
        """

        if not files:
            return []

        folder_id: Optional[str] = None
        if folder_name:
            try:
                folder_id = await self.find_or_create_folder(folder_name)
            except StoreError as exc:
                logger.error("Error preparing folder %s for upload: %s", folder_name, exc)
                return []

        results = await asyncio.gather(*(self._upload_best_effort(item, folder_id) for item in files))
        urls = [url for url in results if url is not None]
        if len(urls) != len(files):
            logger.warning("Uploaded %d of %d files", len(urls), len(files))
        return urls

    async def _upload_best_effort(self, item: UploadItem, folder_id: Optional[str]) -> Optional[str]:
        try:
            return await self._upload(item, folder_id)
        except StoreError as exc:
            logger.error("Error uploading %s to Google Drive: %s", item.file_name, exc)
            return None

    async def _upload(self, item: UploadItem, folder_id: Optional[str]) -> str:
        service = await self._ensure_ready()
        metadata: dict = {"name": item.file_name}
        if folder_id:
            metadata["parents"] = [folder_id]
        media = MediaIoBaseUpload(io.BytesIO(item.content), mimetype=item.mime_type, resumable=False)

        try:
            created = await self._execute(
                service.files().create(body=metadata, media_body=media, fields="id, webViewLink, webContentLink")
            )
            file_id = created["id"]
            await self._execute(
                service.permissions().create(fileId=file_id, body={"role": "reader", "type": "anyone"})
            )
        except REMOTE_ERRORS as exc:
            raise classify_remote_error(exc, f"Failed to upload {item.file_name}") from exc

        logger.info("File uploaded successfully: %s", item.file_name)
        return public_url(file_id)

    async def delete(self, file_id_or_url: str) -> None:
        """Delete a file by id or public URL; every failure is raised."""

        service = await self._ensure_ready()
        file_id = extract_file_id(file_id_or_url)
        try:
            await self._execute(service.files().delete(fileId=file_id))
        except REMOTE_ERRORS as exc:
            logger.error("Error deleting file %s from Google Drive: %s", file_id, exc)
            raise classify_remote_error(exc, f"Failed to delete file {file_id}") from exc
        logger.info("File deleted: %s", file_id)


__all__ = [
    "BlobStoreClient",
    "FOLDER_MIME_TYPE",
    "PUBLIC_URL_TEMPLATE",
    "SCOPES",
    "UploadItem",
    "extract_file_id",
    "public_url",
]
