"""Lifecycle state shared by the lazily initialised Google clients."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sheetdesk.errors import StoreError


class ClientStatus(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"


@dataclass
class ClientState:
    """State owned by exactly one client instance.

    ``DEGRADED`` keeps the reason of the last failed initialisation. When the
    cause is transient (``retryable``) the next operation tries again,
    otherwise the client fails fast until :meth:`reset` is called.
    """

    status: ClientStatus = ClientStatus.UNINITIALIZED
    last_error: Optional[str] = None
    retryable: bool = False
    credentials: Any = None
    service: Any = None

    @property
    def is_ready(self) -> bool:
        return self.status is ClientStatus.READY and self.service is not None

    @property
    def should_attempt_initialization(self) -> bool:
        if self.status is ClientStatus.UNINITIALIZED:
            return True
        return self.status is ClientStatus.DEGRADED and self.retryable

    def mark_ready(self, credentials: Any, service: Any) -> None:
        self.status = ClientStatus.READY
        self.last_error = None
        self.retryable = False
        self.credentials = credentials
        self.service = service

    def mark_degraded(self, error: StoreError) -> None:
        self.status = ClientStatus.DEGRADED
        self.last_error = str(error)
        self.retryable = error.retryable
        self.credentials = None
        self.service = None

    def reset(self) -> None:
        self.status = ClientStatus.UNINITIALIZED
        self.last_error = None
        self.retryable = False
        self.credentials = None
        self.service = None


__all__ = ["ClientState", "ClientStatus"]
