"""Record semantics on top of the row/range primitives of the Sheets client.

Sheets has no row identifier, so every update or delete first reads the
whole table to resolve ``id -> row number`` and then overwrites exactly that
row. The read and the write are not atomic: a concurrent insert or reorder
between them can redirect the write. :meth:`RecordRepository.apply` is the
only place performing that sequence.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from sheetdesk.errors import RecordNotFoundError
from sheetdesk.sheets_client import ROW_NUMBER_FIELD, TabularStoreClient
from sheetdesk.tables import TableLayout, generate_id, today

logger = logging.getLogger(__name__)

RowBuilder = Callable[[Dict[str, Any]], Sequence[Any]]


@dataclass(frozen=True)
class RowAddress:
    """1-based position of a record; row 1 is the header row."""

    sheet_name: str
    row_number: int


class RecordRepository:
    """CRUD over the tables described by :mod:`sheetdesk.tables`."""

    def __init__(self, client: TabularStoreClient) -> None:
        self._client = client

    async def list(self, layout: TableLayout) -> List[Dict[str, Any]]:
        """Return the live records of ``layout``; blanked rows are skipped."""

        records = await self._client.read_all(layout.sheet_name)
        return [record for record in records if str(record.get(layout.id_field, "")).strip()]

    async def find(self, layout: TableLayout, record_id: str) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        for record in await self._client.read_all(layout.sheet_name):
            if str(record.get(layout.id_field, "")) == str(record_id):
                return record
        return None

    async def resolve(self, layout: TableLayout, record_id: str) -> Tuple[RowAddress, Dict[str, Any]]:
        record = await self.find(layout, record_id)
        if record is None:
            raise RecordNotFoundError(f"{layout.label} not found")
        return RowAddress(layout.sheet_name, int(record[ROW_NUMBER_FIELD])), record

    async def apply(self, layout: TableLayout, record_id: str, build_row: RowBuilder) -> RowAddress:
        """Resolve ``record_id`` and overwrite its row with ``build_row(current)``."""

        address, current = await self.resolve(layout, record_id)
        row = list(build_row(current))
        await self._client.update_range(address.sheet_name, layout.row_range(address.row_number), [row])
        logger.debug("Wrote %s row %d for id %s", address.sheet_name, address.row_number, record_id)
        return address

    async def create(self, layout: TableLayout, data: Mapping[str, Any]) -> Dict[str, Any]:
        record = layout.with_defaults({**data, layout.id_field: generate_id()})
        await self._client.append(layout.sheet_name, layout.build_row(record))
        return record

    async def update(self, layout: TableLayout, record_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``changes`` over the stored record and write it back in place."""

        updated: Dict[str, Any] = {}

        def _merge(current: Dict[str, Any]) -> Sequence[Any]:
            updated.update(current)
            updated.update(changes)
            updated[layout.id_field] = current[layout.id_field]
            updated[ROW_NUMBER_FIELD] = current[ROW_NUMBER_FIELD]
            if layout.touch_updated_at:
                updated["updated_at"] = today()
            return layout.build_row(updated, fill_defaults=False)

        await self.apply(layout, record_id, _merge)
        return updated

    async def delete(self, layout: TableLayout, record_id: str) -> RowAddress:
        """Soft delete: blank the row so every other row keeps its number."""

        return await self.apply(layout, record_id, lambda _current: layout.blank_row())


__all__ = ["RecordRepository", "RowAddress", "RowBuilder"]
