from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from fake_google import FakeSheetsService, static_factory, write_credentials
from sheetdesk.errors import RecordNotFoundError
from sheetdesk.google_credentials import CredentialLoader
from sheetdesk.records import RecordRepository
from sheetdesk.sheets_client import TabularStoreClient
from sheetdesk.tables import CUSTOMERS, MESSAGES, TASKS, USERS


def _repository(tmp_path: Path, service: FakeSheetsService) -> RecordRepository:
    credentials = write_credentials(tmp_path / "credentials.json")
    client = TabularStoreClient(
        CredentialLoader([credentials]),
        spreadsheet_id="sheet-123",
        service_factory=static_factory(service),
    )
    return RecordRepository(client)


def _sheet(layout, *rows):
    return {layout.sheet_name: [layout.fields(), *[list(row) for row in rows]]}


def test_create_then_list_round_trips(tmp_path: Path) -> None:
    service = FakeSheetsService(_sheet(TASKS))
    repository = _repository(tmp_path, service)

    created = asyncio.run(repository.create(TASKS, {"title": "Change oil", "history": [{"event": "created"}]}))
    records = asyncio.run(repository.list(TASKS))

    assert len(records) == 1
    stored = records[0]
    assert stored["id"] == created["id"]
    assert stored["title"] == "Change oil"
    assert stored["status"] == "pending"
    assert stored["priority"] == "medium"
    assert json.loads(stored["history"]) == [{"event": "created"}]
    assert stored["_rowNumber"] == 2
    assert len(service.appends[0]["values"][0]) == TASKS.width


def test_create_ignores_caller_supplied_id(tmp_path: Path) -> None:
    service = FakeSheetsService(_sheet(CUSTOMERS))
    repository = _repository(tmp_path, service)

    created = asyncio.run(repository.create(CUSTOMERS, {"id": "mine", "name": "Ada"}))

    assert created["id"] != "mine"
    assert len(created["code"]) == 6
    assert created["can_login"] is False
    assert service.sheets["customers"][1][5] == "false"


def test_update_writes_only_the_resolved_row(tmp_path: Path) -> None:
    service = FakeSheetsService(
        _sheet(
            MESSAGES,
            ["m1", "u1", "u2", "Hi", "first", "false", "2024-01-01"],
            ["m2", "u1", "u2", "Re", "second", "false", "2024-01-02"],
            ["m3", "u2", "u1", "Re", "third", "false", "2024-01-03"],
        )
    )
    repository = _repository(tmp_path, service)

    updated = asyncio.run(repository.update(MESSAGES, "m2", {"read": True}))

    assert updated["read"] is True
    assert updated["_rowNumber"] == 3
    assert len(service.updates) == 1
    assert service.updates[0]["range"] == "'messages'!A3:G3"
    assert service.updates[0]["values"] == [["m2", "u1", "u2", "Re", "second", "true", "2024-01-02"]]
    assert service.sheets["messages"][1][5] == "false"
    assert service.sheets["messages"][3][5] == "false"


def test_update_keeps_id_and_touches_updated_at(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sheetdesk.records.today", lambda: "2024-06-01")
    row = ["u1", "ada", "Ada", "admin", "", "true", "{}", "{}", "2024-01-01", "2024-01-01", "ada@example.com", "u1"]
    service = FakeSheetsService(_sheet(USERS, row))
    repository = _repository(tmp_path, service)

    updated = asyncio.run(repository.update(USERS, "u1", {"id": "other", "permissions": {"tasks": True}}))

    assert updated["id"] == "u1"
    assert updated["updated_at"] == "2024-06-01"
    written = service.sheets["users"][1]
    assert written[0] == "u1"
    assert json.loads(written[6]) == {"tasks": True}
    assert written[9] == "2024-06-01"


def test_delete_blanks_row_and_preserves_other_row_numbers(tmp_path: Path) -> None:
    service = FakeSheetsService(
        _sheet(
            CUSTOMERS,
            ["c1", "111111", "Ada", "", "", "false", "2024-01-01", "2024-01-01"],
            ["c2", "222222", "Grace", "", "", "false", "2024-01-01", "2024-01-01"],
            ["c3", "333333", "Linus", "", "", "true", "2024-01-01", "2024-01-01"],
        )
    )
    repository = _repository(tmp_path, service)

    asyncio.run(repository.delete(CUSTOMERS, "c2"))
    records = asyncio.run(repository.list(CUSTOMERS))

    assert service.updates[0]["values"] == [[""] * CUSTOMERS.width]
    assert [(record["id"], record["_rowNumber"]) for record in records] == [("c1", 2), ("c3", 4)]


def test_unknown_id_raises_not_found(tmp_path: Path) -> None:
    service = FakeSheetsService(_sheet(TASKS))
    repository = _repository(tmp_path, service)

    with pytest.raises(RecordNotFoundError, match="Task not found"):
        asyncio.run(repository.update(TASKS, "missing", {"title": "x"}))
    with pytest.raises(RecordNotFoundError):
        asyncio.run(repository.delete(TASKS, ""))
    assert service.updates == []


def test_partial_update_leaves_untouched_blank_cells_blank(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("sheetdesk.records.today", lambda: "2024-06-01")
    service = FakeSheetsService(_sheet(CUSTOMERS, ["c1", "", "Ali", "0912", "", "false", "", ""]))
    repository = _repository(tmp_path, service)

    asyncio.run(repository.update(CUSTOMERS, "c1", {"phone": "0935"}))

    assert service.updates[0]["values"] == [["c1", "", "Ali", "0935", "", "false", "", "2024-06-01"]]
