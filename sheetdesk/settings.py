"""Configuration helpers for SheetDesk."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


DEFAULT_SPREADSHEET_ID = "16rJEpOdRXhAxY7UFa-20-6ETWaIeOJRtoJ2VPFmec1w"
DEFAULT_CREDENTIAL_CANDIDATES: Sequence[str] = (
    "config/credentials.json",
    "src/config/credentials.json",
    "public/config/credentials.json",
)
DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_READ_RANGE = "A:Z"
DEFAULT_SETTINGS_FILENAME = "sheetdesk.json"
DEFAULT_LOG_DIR = "logs"

SPREADSHEET_ID_ENV = "SHEETDESK_SPREADSHEET_ID"
CREDENTIALS_PATH_ENV = "SHEETDESK_CREDENTIALS_PATH"
PROBE_TIMEOUT_ENV = "SHEETDESK_PROBE_TIMEOUT"
SETTINGS_PATH_ENV = "SHEETDESK_SETTINGS_PATH"
LOG_DIR_ENV = "SHEETDESK_LOG_DIR"


@dataclass
class StoreSettings:
    spreadsheet_id: str = DEFAULT_SPREADSHEET_ID
    credential_paths: List[str] = field(default_factory=lambda: list(DEFAULT_CREDENTIAL_CANDIDATES))
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    read_range: str = DEFAULT_READ_RANGE
    log_dir: str = DEFAULT_LOG_DIR
    base_dir: Optional[str] = None

    def resolved_credential_paths(self) -> List[Path]:
        """Return the candidate credential paths as absolute paths, in order."""

        root = Path(self.base_dir).expanduser() if self.base_dir else Path.cwd()
        resolved: List[Path] = []
        for candidate in self.credential_paths:
            path = Path(candidate).expanduser()
            if not path.is_absolute():
                path = root / path
            if path not in resolved:
                resolved.append(path)
        return resolved

    def to_json(self) -> Dict[str, object]:
        return {
            "spreadsheet_id": self.spreadsheet_id,
            "credential_paths": list(self.credential_paths),
            "probe_timeout": self.probe_timeout,
            "read_range": self.read_range,
            "log_dir": self.log_dir,
        }


def _coerce_timeout(value: object, default: float) -> float:
    try:
        return max(1.0, min(60.0, float(value)))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _load_settings_file(path: Path) -> Dict[str, object]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Settings file %s could not be read: %s", path, exc)
        return {}
    if isinstance(payload, Mapping):
        return dict(payload)
    logger.warning("Settings file %s does not contain a JSON object", path)
    return {}


def load_store_settings(
    path: Optional[str] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> StoreSettings:
    """Build :class:`StoreSettings` from defaults, a JSON file and the environment.

    Environment variables win over the file, which wins over the defaults.
    """

    env = os.environ if environ is None else environ
    settings_path = Path(path or env.get(SETTINGS_PATH_ENV) or DEFAULT_SETTINGS_FILENAME)
    data = _load_settings_file(settings_path)
    settings = StoreSettings()

    spreadsheet_id = data.get("spreadsheet_id")
    if isinstance(spreadsheet_id, str) and spreadsheet_id.strip():
        settings.spreadsheet_id = spreadsheet_id.strip()

    candidates = data.get("credential_paths")
    if isinstance(candidates, list):
        cleaned = [str(entry) for entry in candidates if isinstance(entry, str) and entry.strip()]
        if cleaned:
            settings.credential_paths = cleaned

    if "probe_timeout" in data:
        settings.probe_timeout = _coerce_timeout(data["probe_timeout"], DEFAULT_PROBE_TIMEOUT)

    read_range = data.get("read_range")
    if isinstance(read_range, str) and read_range.strip():
        settings.read_range = read_range.strip()

    log_dir = data.get("log_dir")
    if isinstance(log_dir, str) and log_dir.strip():
        settings.log_dir = log_dir.strip()

    env_spreadsheet = (env.get(SPREADSHEET_ID_ENV) or "").strip()
    if env_spreadsheet:
        settings.spreadsheet_id = env_spreadsheet

    env_credentials = (env.get(CREDENTIALS_PATH_ENV) or "").strip()
    if env_credentials:
        settings.credential_paths = [env_credentials] + [
            entry for entry in settings.credential_paths if entry != env_credentials
        ]

    if env.get(PROBE_TIMEOUT_ENV):
        settings.probe_timeout = _coerce_timeout(env[PROBE_TIMEOUT_ENV], settings.probe_timeout)

    env_log_dir = (env.get(LOG_DIR_ENV) or "").strip()
    if env_log_dir:
        settings.log_dir = env_log_dir

    return settings


__all__ = [
    "DEFAULT_CREDENTIAL_CANDIDATES",
    "DEFAULT_PROBE_TIMEOUT",
    "DEFAULT_READ_RANGE",
    "DEFAULT_SPREADSHEET_ID",
    "StoreSettings",
    "load_store_settings",
]
