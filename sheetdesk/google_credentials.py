"""Locate and validate the Google service account credential document."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from sheetdesk.errors import (
    CredentialInvalidError,
    CredentialMissingError,
    CredentialParseError,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Sequence[str] = (
    "type",
    "project_id",
    "private_key",
    "client_email",
)

PLACEHOLDER_PROJECT_ID = "your-project-id-here"
PLACEHOLDER_KEY_MARKER = "YOUR_PRIVATE_KEY_CONTENT_HERE"


@dataclass(frozen=True)
class ServiceAccountCredential:
    """A validated credential document and the file it was read from."""

    path: Path
    info: Mapping[str, object]

    @property
    def client_email(self) -> str:
        return str(self.info.get("client_email", ""))

    @property
    def project_id(self) -> str:
        return str(self.info.get("project_id", ""))


def _normalise_private_key(key: str) -> str:
    key = key.replace("\r\n", "\n").replace("\r", "\n")
    key = key.replace("\\n", "\n")
    if not key.endswith("\n"):
        key += "\n"
    return key


def _load_json(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8-sig") as handle:
            raw = handle.read()
    except OSError as exc:
        raise CredentialParseError(f"Failed to read credentials file {path}: {exc}") from exc

    try:
        payload = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise CredentialParseError(f"Failed to parse credentials file: {exc.msg}") from exc

    if not isinstance(payload, Mapping):
        raise CredentialParseError("Failed to parse credentials file: top level value is not an object")
    return payload


def validate_credential_payload(payload: Mapping[str, object]) -> Dict[str, object]:
    """Return a normalised copy of ``payload`` or raise :class:`CredentialInvalidError`."""

    data: Dict[str, object] = dict(payload)
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            raise CredentialInvalidError(f"Invalid credentials: missing field {name}")

    if data["project_id"] == PLACEHOLDER_PROJECT_ID or PLACEHOLDER_KEY_MARKER in str(data["private_key"]):
        raise CredentialInvalidError(
            "Invalid credentials: placeholder values. "
            "Please update it with real Google service account credentials."
        )

    data["private_key"] = _normalise_private_key(str(data["private_key"]))
    return data


class CredentialLoader:
    """Find the first existing credential file among ``candidates`` and validate it.

    Candidate order matters: the first path that exists is used even when it
    turns out to be invalid, and files are never merged.
    """

    def __init__(self, candidates: Iterable[Path]) -> None:
        self._candidates: List[Path] = [Path(candidate) for candidate in candidates]

    @property
    def candidates(self) -> List[Path]:
        return list(self._candidates)

    def locate(self) -> Optional[Path]:
        for candidate in self._candidates:
            if candidate.is_file():
                return candidate
        return None

    def load(self) -> ServiceAccountCredential:
        path = self.locate()
        if path is None:
            searched = ", ".join(str(candidate) for candidate in self._candidates)
            raise CredentialMissingError(f"Credentials file not found. Searched paths: {searched}")

        logger.debug("Loading service account credentials from %s", path)
        info = validate_credential_payload(_load_json(path))
        return ServiceAccountCredential(path=path, info=info)


__all__ = [
    "CredentialLoader",
    "PLACEHOLDER_KEY_MARKER",
    "PLACEHOLDER_PROJECT_ID",
    "REQUIRED_FIELDS",
    "ServiceAccountCredential",
    "validate_credential_payload",
]
