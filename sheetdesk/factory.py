"""Build the Google clients and handlers from :class:`StoreSettings`."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sheetdesk.drive_client import BlobStoreClient
from sheetdesk.google_client import ServiceFactory
from sheetdesk.google_credentials import CredentialLoader
from sheetdesk.handlers import Handlers
from sheetdesk.settings import StoreSettings, load_store_settings
from sheetdesk.sheets_client import TabularStoreClient


@dataclass
class Backend:
    settings: StoreSettings
    sheets: TabularStoreClient
    drive: BlobStoreClient
    handlers: Handlers

    async def initialize(self) -> bool:
        """Initialise both clients; a failure leaves the client degraded, never raises."""

        sheets_ready = await self.sheets.initialize()
        drive_ready = await self.drive.initialize()
        return sheets_ready and drive_ready


def build_backend(
    settings: Optional[StoreSettings] = None,
    *,
    sheets_factory: Optional[ServiceFactory] = None,
    drive_factory: Optional[ServiceFactory] = None,
) -> Backend:
    settings = settings or load_store_settings()
    loader = CredentialLoader(settings.resolved_credential_paths())
    sheets = TabularStoreClient(
        loader,
        spreadsheet_id=settings.spreadsheet_id,
        probe_timeout=settings.probe_timeout,
        read_range=settings.read_range,
        service_factory=sheets_factory,
    )
    drive = BlobStoreClient(loader, service_factory=drive_factory)
    return Backend(settings=settings, sheets=sheets, drive=drive, handlers=Handlers(sheets, drive))


__all__ = ["Backend", "build_backend"]
