"""Error hierarchy shared by the SheetDesk Google clients."""

from __future__ import annotations

import socket
from typing import Optional

import httplib2
from google.auth.exceptions import GoogleAuthError, RefreshError
from googleapiclient.errors import HttpError


class StoreError(RuntimeError):
    """Base error raised by the Sheets and Drive clients."""

    #: Whether a client degraded by this error may retry on the next call.
    retryable = False


class CredentialError(StoreError):
    """Raised when the service account document cannot be used."""


class CredentialMissingError(CredentialError):
    """Raised when no credential file exists at any candidate path."""


class CredentialInvalidError(CredentialError):
    """Raised when the credential document is incomplete or a placeholder."""


class CredentialParseError(CredentialInvalidError):
    """Raised when the credential file is not valid JSON."""


class ConnectivityError(StoreError):
    """Raised when the remote service could not be reached at all."""

    retryable = True


class ConnectivityTimeoutError(ConnectivityError):
    """Raised when the remote service did not answer in time."""


class PermissionDeniedError(StoreError):
    """Raised for HTTP 403 responses."""


class AuthFailedError(StoreError):
    """Raised for HTTP 401 responses and credential refresh failures."""


class ResourceNotFoundError(StoreError):
    """Raised for HTTP 404 responses."""


class OperationFailedError(StoreError):
    """Raised for any other remote failure."""

    retryable = True


class StoreUnavailableError(StoreError):
    """Raised when an operation runs against a client that is not ready."""


class RecordNotFoundError(StoreError):
    """Raised when no row carries the requested record id."""


#: Failures raised by googleapiclient, google-auth and the httplib2 transport.
REMOTE_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


def http_status(exc: HttpError) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None and getattr(exc, "resp", None) is not None:
        status = getattr(exc.resp, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def remote_message(exc: BaseException) -> str:
    """Return the most useful human readable text for ``exc``."""

    if isinstance(exc, HttpError):
        reason = getattr(exc, "reason", None)
        if reason:
            return str(reason)
    return str(exc) or exc.__class__.__name__


def classify_remote_error(exc: BaseException, context: str) -> StoreError:
    """Map a googleapiclient/google-auth failure onto the SheetDesk taxonomy.

    ``context`` names the failed action and target and is used as the
    message prefix, e.g. ``"Failed to read from users"``.
    """

    if isinstance(exc, StoreError):
        return exc

    message = f"{context}: {remote_message(exc)}"
    if isinstance(exc, HttpError):
        status = http_status(exc)
        if status == 404:
            return ResourceNotFoundError(message)
        if status == 403:
            return PermissionDeniedError(message)
        if status == 401:
            return AuthFailedError(message)
        return OperationFailedError(message)
    if isinstance(exc, RefreshError):
        return AuthFailedError(message)
    if isinstance(exc, (TimeoutError, socket.timeout)):
        return ConnectivityTimeoutError(message)
    if isinstance(exc, httplib2.HttpLib2Error):
        return ConnectivityError(message)
    return OperationFailedError(message)


__all__ = [
    "AuthFailedError",
    "ConnectivityError",
    "ConnectivityTimeoutError",
    "CredentialError",
    "CredentialInvalidError",
    "CredentialMissingError",
    "CredentialParseError",
    "OperationFailedError",
    "PermissionDeniedError",
    "REMOTE_ERRORS",
    "RecordNotFoundError",
    "ResourceNotFoundError",
    "StoreError",
    "StoreUnavailableError",
    "classify_remote_error",
    "http_status",
    "remote_message",
]
