"""Record handlers returning the ``{success, data|error}`` envelope.

These are the functions a request router calls. They translate
:class:`~sheetdesk.errors.StoreError` failures into failed results so that
one unreachable backend never takes the caller down with it.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from sheetdesk.drive_client import BlobStoreClient, UploadItem
from sheetdesk.errors import StoreError
from sheetdesk.records import RecordRepository
from sheetdesk.results import Result
from sheetdesk.sheets_client import TabularStoreClient
from sheetdesk.tables import CUSTOMERS, MESSAGES, RECEPTIONS, TASKS, USERS, TableLayout, parse_bool, parse_json

logger = logging.getLogger(__name__)

DEFAULT_USER_SETTINGS: Mapping[str, Any] = {"sidebarOpen": True}


class EntityHandlers:
    """List/create/update/delete for one table."""

    def __init__(self, repository: RecordRepository, layout: TableLayout) -> None:
        self._repository = repository
        self.layout = layout

    async def list(self) -> Result:
        try:
            records = await self._repository.list(self.layout)
        except StoreError as exc:
            logger.error("Error getting %s: %s", self.layout.sheet_name, exc)
            return Result.fail(exc)
        return Result.ok(records)

    async def create(self, data: Mapping[str, Any]) -> Result:
        try:
            record = await self._repository.create(self.layout, data)
        except StoreError as exc:
            logger.error("Error creating %s: %s", self.layout.label.lower(), exc)
            return Result.fail(exc)
        return Result.ok(record)

    async def update(self, record_id: str, data: Mapping[str, Any]) -> Result:
        try:
            record = await self._repository.update(self.layout, record_id, data)
        except StoreError as exc:
            logger.error("Error updating %s %s: %s", self.layout.label.lower(), record_id, exc)
            return Result.fail(exc)
        return Result.ok(record)

    async def delete(self, record_id: str) -> Result:
        try:
            await self._repository.delete(self.layout, record_id)
        except StoreError as exc:
            logger.error("Error deleting %s %s: %s", self.layout.label.lower(), record_id, exc)
            return Result.fail(exc)
        return Result.ok()


class Handlers:
    """Entry points for every record, auth and upload command."""

    def __init__(self, sheets: TabularStoreClient, drive: BlobStoreClient) -> None:
        self.sheets = sheets
        self.drive = drive
        repository = RecordRepository(sheets)
        self.users = EntityHandlers(repository, USERS)
        self.customers = EntityHandlers(repository, CUSTOMERS)
        self.messages = EntityHandlers(repository, MESSAGES)
        self.receptions = EntityHandlers(repository, RECEPTIONS)
        self.tasks = EntityHandlers(repository, TASKS)
        self._repository = repository

    def entity(self, table: str) -> EntityHandlers:
        handlers = getattr(self, table, None)
        if not isinstance(handlers, EntityHandlers):
            raise KeyError(f"Unknown table: {table}")
        return handlers

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    async def login_user(self, username: str, password: str) -> Result:
        if not username or not password:
            return Result.fail("Username and password are required")

        try:
            users = await self._repository.list(USERS)
        except StoreError as exc:
            logger.error("Login error: %s", exc)
            return Result.fail(f"Could not reach Google Sheets: {exc}")

        user = next(
            (
                candidate
                for candidate in users
                if candidate.get("username") == username and candidate.get("password") == password
            ),
            None,
        )
        if user is None:
            return Result.fail("Invalid username or password")
        if not parse_bool(user.get("active", "")):
            return Result.fail("This account is disabled")

        return Result.ok(_user_profile(user))

    async def check_connection(self) -> Result:
        health = await self.sheets.health_check()
        connected = health["status"] == "healthy"
        data = {"connected": connected, "message": health["message"]}
        if connected:
            return Result.ok(data)
        return Result(success=False, data=data, error=health["message"])

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------
    async def upload_file(
        self,
        content: bytes,
        file_name: str,
        mime_type: str,
        folder_name: Optional[str] = None,
    ) -> Result:
        url = await self.drive.upload(content, file_name, mime_type, folder_name)
        if url is None:
            return Result.fail("Failed to upload file")
        return Result.ok({"url": url})

    async def upload_multiple_files(
        self,
        files: Sequence[UploadItem],
        folder_name: Optional[str] = None,
    ) -> Result:
        if not files:
            return Result.fail("No files provided")
        urls = await self.drive.upload_many(files, folder_name)
        return Result.ok({"urls": urls})

    async def delete_file(self, file_id: str) -> Result:
        try:
            await self.drive.delete(file_id)
        except StoreError as exc:
            logger.error("Error deleting file %s: %s", file_id, exc)
            return Result.fail(exc)
        return Result.ok()


def _user_profile(user: Mapping[str, Any]) -> Dict[str, Any]:
    settings = parse_json(user.get("settings"), dict(DEFAULT_USER_SETTINGS))
    return {
        "id": user.get("id", ""),
        "username": user.get("username", ""),
        "name": user.get("name", ""),
        "role": user.get("role", ""),
        "job_description": user.get("job_description", ""),
        "active": True,
        "permissions": parse_json(user.get("permissions"), {}),
        "settings": settings if isinstance(settings, dict) else dict(DEFAULT_USER_SETTINGS),
        "auth_user_id": user.get("auth_user_id") or user.get("id", ""),
        "email": user.get("email", ""),
    }


__all__ = ["DEFAULT_USER_SETTINGS", "EntityHandlers", "Handlers"]
