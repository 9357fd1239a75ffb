"""Storage collaborator: table/row primitives the orchestrators are written against.

InMemoryStorage backs the CLI and the tests. A hosted database adapter only has
to implement the same five coroutines.
"""

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from mcp_system.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

TABLES = (
    "users",
    "projects",
    "conversations",
    "messages",
    "debates",
    "debate_entries",
    "evaluations",
    "token_usage",
)

Row = dict[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Storage(ABC):
    """Row-level CRUD by table name and id, plus filtered, ordered selects."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert row, assigning id and timestamps when absent. Returns the stored row."""
        ...

    @abstractmethod
    async def get(self, table: str, row_id: str) -> Row:
        """Return the row. Raises NotFoundError."""
        ...

    @abstractmethod
    async def update(
        self,
        table: str,
        row_id: str,
        changes: Row,
        expected: Row | None = None,
    ) -> Row:
        """Apply changes and bump updated_at.

        When expected is given every key must hold that value at write time,
        otherwise ConflictError is raised and nothing is written.
        """
        ...

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        ...

    @abstractmethod
    async def select(
        self,
        table: str,
        where: Row | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        """Rows whose columns equal every value in where, optionally ordered."""
        ...


class InMemoryStorage(Storage):
    """Dict-backed storage. Rows are copied in and out so callers never alias them.

    Each coroutine completes without suspending, so a conditional update is
    atomic with respect to other tasks on the same event loop.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in TABLES}

    def _table(self, table: str) -> dict[str, Row]:
        if table not in self._tables:
            raise KeyError(f"Unknown table: {table}")
        return self._tables[table]

    async def insert(self, table: str, row: Row) -> Row:
        rows = self._table(table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        now = utcnow()
        stored.setdefault("created_at", now)
        if table not in ("messages", "debate_entries", "evaluations", "token_usage"):
            stored.setdefault("updated_at", now)
        rows[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def get(self, table: str, row_id: str) -> Row:
        row = self._table(table).get(row_id)
        if row is None:
            raise NotFoundError(table, row_id)
        return copy.deepcopy(row)

    async def update(
        self,
        table: str,
        row_id: str,
        changes: Row,
        expected: Row | None = None,
    ) -> Row:
        row = self._table(table).get(row_id)
        if row is None:
            raise NotFoundError(table, row_id)
        for key, value in (expected or {}).items():
            if row.get(key) != value:
                raise ConflictError(
                    f"{table} {row_id}: expected {key}={value!r}, found {row.get(key)!r}"
                )
        row.update(copy.deepcopy(changes))
        if "updated_at" in row:
            row["updated_at"] = utcnow()
        return copy.deepcopy(row)

    async def delete(self, table: str, row_id: str) -> None:
        if self._table(table).pop(row_id, None) is None:
            raise NotFoundError(table, row_id)

    async def select(
        self,
        table: str,
        where: Row | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        criteria = where or {}
        rows = [
            r for r in self._table(table).values()
            if all(r.get(k) == v for k, v in criteria.items())
        ]
        if order_by:
            rows.sort(key=lambda r: r.get(order_by), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    def dump(self, path: Path) -> Path:
        """Write every table to a JSON snapshot file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(
            json.dumps(self._tables, default=_encode, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        tmp.replace(path)
        logger.info("Storage snapshot saved to: %s", path)
        return path

    @classmethod
    def load(cls, path: Path) -> "InMemoryStorage":
        """Restore a snapshot written by dump(). Missing file gives empty storage."""
        storage = cls()
        if not path.exists():
            return storage
        raw = json.loads(path.read_text(encoding="utf-8"))
        for table, rows in raw.items():
            if table in storage._tables:
                storage._tables[table] = {row_id: _decode(row) for row_id, row in rows.items()}
        logger.info("Storage snapshot loaded from: %s", path)
        return storage


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def _decode(row: Row) -> Row:
    for key in ("created_at", "updated_at"):
        if isinstance(row.get(key), str):
            row[key] = datetime.fromisoformat(row[key])
    return row
