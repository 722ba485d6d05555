"""Positional column contracts for the SheetDesk tables.

The Sheets client never validates value order; every writer goes through a
:class:`TableLayout` so that the positional contract of each worksheet is
defined in exactly one place.
"""
from __future__ import annotations

import json
import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sheetdesk.sheets_client import column_letter, row_range_spec

logger = logging.getLogger(__name__)


class ColumnType(Enum):
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    OPTIONAL_JSON = "OPTIONAL_JSON"


_TRUE_STRINGS = {"1", "true", "yes", "y"}
_FALSE_STRINGS = {"0", "false", "no", "n", ""}
_ID_ALPHABET = string.ascii_lowercase + string.digits


def today() -> str:
    return date.today().isoformat()


def generate_id() -> str:
    """Return a sortable record id: epoch milliseconds plus nine base36 characters."""

    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}{suffix}"


def generate_customer_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return bool(value)


def parse_json(value: Any, default: Any) -> Any:
    """Decode a JSON cell, returning ``default`` for blank or malformed text."""

    if not isinstance(value, str):
        return default if value is None else value
    if not value.strip():
        return default
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        logger.warning("Could not decode JSON cell value %r", value[:80])
        return default


def format_cell(value: Any, column_type: ColumnType) -> str:
    """Return the text written to the sheet for ``value``."""

    if column_type is ColumnType.BOOLEAN:
        return "true" if parse_bool(value) else "false"
    if column_type is ColumnType.JSON:
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)
    if column_type is ColumnType.OPTIONAL_JSON:
        if value in (None, "", {}, []):
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False)
    return "" if value is None else str(value)


_MISSING = object()


@dataclass(frozen=True)
class TableColumn:
    field: str
    type: ColumnType = ColumnType.TEXT
    default: Any = ""
    default_factory: Optional[Callable[[Mapping[str, Any]], Any]] = None

    def resolve(self, record: Mapping[str, Any]) -> Any:
        value = record.get(self.field, _MISSING)
        if value is _MISSING or value is None or (value == "" and self.default_factory is not None):
            if self.default_factory is not None:
                return self.default_factory(record)
            return self.default
        return value

    def stored(self, record: Mapping[str, Any]) -> Any:
        """Return the cell value of ``record`` as is; blank stays blank."""

        value = record.get(self.field)
        return "" if value is None else value


@dataclass(frozen=True)
class TableLayout:
    """Ordered columns of one worksheet; column A always holds ``id``."""

    sheet_name: str
    columns: Tuple[TableColumn, ...]
    label: str = "Record"
    touch_updated_at: bool = True
    id_field: str = "id"

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def last_column(self) -> str:
        return column_letter(self.width)

    def fields(self) -> List[str]:
        return [column.field for column in self.columns]

    def build_row(self, record: Mapping[str, Any], *, fill_defaults: bool = True) -> List[str]:
        """Format ``record`` as one row.

        With ``fill_defaults`` off, missing or blank cells are written back
        blank instead of being generated, which is what partial updates need.
        """

        if fill_defaults:
            return [format_cell(column.resolve(record), column.type) for column in self.columns]
        return [format_cell(column.stored(record), column.type) for column in self.columns]

    def blank_row(self) -> List[str]:
        return [""] * self.width

    def row_range(self, row_number: int) -> str:
        return row_range_spec(row_number, self.width)

    def with_defaults(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Return ``record`` with every missing layout field filled in."""

        merged = dict(record)
        for column in self.columns:
            merged[column.field] = column.resolve(merged)
        return merged


def _today(_record: Mapping[str, Any]) -> str:
    return today()


def _same_as_id(record: Mapping[str, Any]) -> Any:
    return record.get("id", "")


def _text(name: str, default: Any = "") -> TableColumn:
    return TableColumn(name, ColumnType.TEXT, default)


def _timestamp(name: str) -> TableColumn:
    return TableColumn(name, ColumnType.TEXT, default_factory=_today)


USERS = TableLayout(
    sheet_name="users",
    label="User",
    columns=(
        _text("id"),
        _text("username"),
        _text("name"),
        _text("role"),
        _text("job_description"),
        TableColumn("active", ColumnType.BOOLEAN, False),
        TableColumn("permissions", ColumnType.JSON, default_factory=lambda _record: {}),
        TableColumn("settings", ColumnType.JSON, default_factory=lambda _record: {}),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _text("email"),
        TableColumn("auth_user_id", ColumnType.TEXT, default_factory=_same_as_id),
    ),
)

CUSTOMERS = TableLayout(
    sheet_name="customers",
    label="Customer",
    columns=(
        _text("id"),
        TableColumn("code", ColumnType.TEXT, default_factory=lambda _record: generate_customer_code()),
        _text("name"),
        _text("phone"),
        _text("email"),
        TableColumn("can_login", ColumnType.BOOLEAN, False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    ),
)

MESSAGES = TableLayout(
    sheet_name="messages",
    label="Message",
    columns=(
        _text("id"),
        _text("from_user_id"),
        _text("to_user_id"),
        _text("subject"),
        _text("content"),
        TableColumn("read", ColumnType.BOOLEAN, False),
        _timestamp("created_at"),
    ),
    touch_updated_at=False,
)

RECEPTIONS = TableLayout(
    sheet_name="receptions",
    label="Reception",
    columns=(
        _text("id"),
        TableColumn("customer_info", ColumnType.JSON, default_factory=lambda _record: {}),
        TableColumn("vehicle_info", ColumnType.JSON, default_factory=lambda _record: {}),
        TableColumn("service_info", ColumnType.JSON, default_factory=lambda _record: {}),
        _text("status", "pending"),
        _text("images"),
        _text("documents"),
        TableColumn("billing", ColumnType.OPTIONAL_JSON),
        _text("completed_at"),
        _text("completed_by"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    ),
)

TASKS = TableLayout(
    sheet_name="tasks",
    label="Task",
    columns=(
        _text("id"),
        _text("title"),
        _text("description"),
        _text("status", "pending"),
        _text("priority", "medium"),
        _text("assigned_to_id"),
        _text("assigned_to_name"),
        _text("vehicle_id"),
        TableColumn("vehicle_info", ColumnType.JSON, default_factory=lambda _record: {}),
        _text("due_date"),
        _text("images"),
        TableColumn("history", ColumnType.JSON, default_factory=lambda _record: []),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    ),
)

LAYOUTS: Dict[str, TableLayout] = {
    layout.sheet_name: layout for layout in (USERS, CUSTOMERS, MESSAGES, RECEPTIONS, TASKS)
}


def get_layout(name: str) -> TableLayout:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise KeyError(f"Unknown table: {name}") from None


__all__ = [
    "CUSTOMERS",
    "ColumnType",
    "LAYOUTS",
    "MESSAGES",
    "RECEPTIONS",
    "TASKS",
    "TableColumn",
    "TableLayout",
    "USERS",
    "format_cell",
    "generate_customer_code",
    "generate_id",
    "get_layout",
    "parse_bool",
    "parse_json",
    "today",
]
