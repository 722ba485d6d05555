"""Lazy initialisation shared by the Sheets and Drive clients.

Both clients follow the same lifecycle: credentials are loaded and the
service object is built on first use, failures degrade the client instead of
raising, and operations on a client that could not be initialised raise
:class:`~sheetdesk.errors.StoreUnavailableError` with the cached reason.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build

from sheetdesk.client_state import ClientState, ClientStatus
from sheetdesk.errors import CredentialInvalidError, StoreError, StoreUnavailableError
from sheetdesk.google_credentials import CredentialLoader, ServiceAccountCredential

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[Mapping[str, object], Sequence[str]], Tuple[Any, Any]]


def google_service_factory(api: str, version: str) -> ServiceFactory:
    """Return a factory building an authorised ``api``/``version`` service."""

    def _factory(info: Mapping[str, object], scopes: Sequence[str]) -> Tuple[Any, Any]:
        credentials = service_account.Credentials.from_service_account_info(dict(info), scopes=list(scopes))
        service = build(api, version, credentials=credentials, cache_discovery=False)
        return credentials, service

    return _factory


class LazyGoogleClient:
    """Base class owning a :class:`ClientState` and the initialisation protocol."""

    display_name = "Google API"
    scopes: Sequence[str] = ()

    def __init__(
        self,
        loader: CredentialLoader,
        service_factory: ServiceFactory,
        *,
        state: Optional[ClientState] = None,
    ) -> None:
        self._loader = loader
        self._service_factory = service_factory
        self._state = state or ClientState()
        self._account: Optional[ServiceAccountCredential] = None

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def status(self) -> ClientStatus:
        return self._state.status

    @property
    def is_ready(self) -> bool:
        return self._state.is_ready

    @property
    def initialization_error(self) -> Optional[str]:
        return self._state.last_error

    @property
    def service_account_email(self) -> str:
        return self._account.client_email if self._account else ""

    async def initialize(self) -> bool:
        """Initialise the client, returning ``True`` when it is ready.

        Never raises: any failure is recorded on the client state and logged.
        """

        if self._state.is_ready:
            return True

        logger.info("Initializing %s API...", self.display_name)
        try:
            account = self._loader.load()
            self._account = account
            credentials, service = self._open_service(account)
            await self._handshake(service)
        except StoreError as exc:
            logger.warning("%s API initialization failed: %s", self.display_name, exc)
            self._state.mark_degraded(exc)
            return False

        self._state.mark_ready(credentials, service)
        logger.info("%s API initialized successfully", self.display_name)
        return True

    async def reinitialize(self) -> bool:
        """Drop any cached failure and initialise from scratch."""

        self._state.reset()
        self._account = None
        return await self.initialize()

    def _open_service(self, account: ServiceAccountCredential) -> Tuple[Any, Any]:
        try:
            return self._service_factory(account.info, self.scopes)
        except (ValueError, KeyError, GoogleAuthError) as exc:
            raise CredentialInvalidError(f"Invalid credentials in {account.path}: {exc}") from exc

    async def _handshake(self, service: Any) -> None:
        """Hook for a connectivity check run before the client is marked ready."""

    async def _ensure_ready(self) -> Any:
        if self._state.is_ready:
            return self._state.service
        if self._state.should_attempt_initialization:
            await self.initialize()
        if not self._state.is_ready:
            reason = self._state.last_error or "Unknown initialization error"
            raise StoreUnavailableError(f"{self.display_name} not available: {reason}")
        return self._state.service

    @staticmethod
    async def _execute(request: Any) -> Any:
        """Run a googleapiclient request without blocking the event loop."""

        return await asyncio.to_thread(request.execute)


__all__ = ["LazyGoogleClient", "ServiceFactory", "google_service_factory"]
