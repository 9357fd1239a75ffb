"""Tests for mcp_system/storage.py."""

from datetime import datetime
from pathlib import Path

import pytest

from mcp_system.errors import ConflictError, NotFoundError
from mcp_system.storage import InMemoryStorage


async def test_insert_assigns_id_and_timestamps(storage):
    row = await storage.insert("projects", {"name": "p"})
    assert row["id"]
    assert isinstance(row["created_at"], datetime)
    assert row["updated_at"] == row["created_at"]


async def test_insert_keeps_given_id(storage):
    row = await storage.insert("users", {"id": "u1", "email": "a@b.c"})
    assert row["id"] == "u1"
    assert (await storage.get("users", "u1"))["email"] == "a@b.c"


async def test_append_only_tables_have_no_updated_at(storage):
    row = await storage.insert("messages", {"content": "x"})
    assert "updated_at" not in row


async def test_rows_are_copied(storage):
    row = await storage.insert("projects", {"name": "p", "tags": ["a"]})
    row["tags"].append("b")
    fetched = await storage.get("projects", row["id"])
    assert fetched["tags"] == ["a"]


async def test_get_missing_raises(storage):
    with pytest.raises(NotFoundError, match="projects not found: nope"):
        await storage.get("projects", "nope")


async def test_unknown_table(storage):
    with pytest.raises(KeyError):
        await storage.insert("widgets", {})


async def test_update_with_matching_expectation(storage):
    row = await storage.insert("debates", {"current_turn": 1})
    updated = await storage.update("debates", row["id"], {"current_turn": 2}, expected={"current_turn": 1})
    assert updated["current_turn"] == 2
    assert updated["updated_at"] >= row["updated_at"]


async def test_update_conflict_writes_nothing(storage):
    row = await storage.insert("debates", {"current_turn": 3, "status": "active"})
    with pytest.raises(ConflictError):
        await storage.update(
            "debates", row["id"], {"current_turn": 4, "status": "completed"}, expected={"current_turn": 2}
        )
    stored = await storage.get("debates", row["id"])
    assert stored["current_turn"] == 3
    assert stored["status"] == "active"


async def test_delete(storage):
    row = await storage.insert("debate_entries", {"content": "x"})
    await storage.delete("debate_entries", row["id"])
    with pytest.raises(NotFoundError):
        await storage.delete("debate_entries", row["id"])


async def test_select_filters_orders_and_limits(storage):
    for turn in (3, 1, 2):
        await storage.insert("debate_entries", {"debate_id": "d1", "turn_number": turn})
    await storage.insert("debate_entries", {"debate_id": "d2", "turn_number": 1})

    rows = await storage.select("debate_entries", where={"debate_id": "d1"}, order_by="turn_number")
    assert [r["turn_number"] for r in rows] == [1, 2, 3]

    newest = await storage.select(
        "debate_entries", where={"debate_id": "d1"}, order_by="turn_number", descending=True, limit=1
    )
    assert [r["turn_number"] for r in newest] == [3]


async def test_dump_and_load_snapshot(storage, tmp_path: Path):
    row = await storage.insert("projects", {"name": "Tienda", "tags": ["web"]})
    path = storage.dump(tmp_path / "state" / "db.json")
    assert path.exists()

    restored = InMemoryStorage.load(path)
    loaded = await restored.get("projects", row["id"])
    assert loaded["name"] == "Tienda"
    assert loaded["created_at"] == row["created_at"]


def test_load_missing_file_gives_empty_storage(tmp_path: Path):
    restored = InMemoryStorage.load(tmp_path / "missing.json")
    assert isinstance(restored, InMemoryStorage)
