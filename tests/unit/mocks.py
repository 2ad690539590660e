"""Pure Python in-memory database for unit testing."""

import asyncio
import copy
from typing import Any

from src.core.db_client import OWNER_FIELD, DatabaseError, RecordNotFoundError, parse_conditions, utc_timestamp


class InMemoryDBClient:
    """Pure Python in-memory database for unit testing.

    Mirrors the ``src.core.db_client`` functions closely enough for service
    tests: server-assigned ids and timestamps, owner-scoped update/delete,
    ``&&``-joined equality filters and ``-field`` / ``+field`` sorting.

    Set ``fail_with`` to make every subsequent call raise that error.
    """

    def __init__(self):
        """Initialize empty in-memory database."""
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._id_counter = 1000
        self.fail_with: DatabaseError | None = None
        self.calls: list[str] = []

    def _record_call(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def create_record(self, *, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a new record with a fresh id and timestamps."""
        self._record_call("create_record")
        if not isinstance(data, dict):
            raise DatabaseError(f"Data must be a dictionary, got {type(data)}")

        # Keep created_at strictly increasing so newest-first ordering is deterministic
        await asyncio.sleep(0.001)

        record_id = str(self._id_counter)
        self._id_counter += 1
        now = utc_timestamp()
        record = {"id": record_id, **data, "created_at": now, "updated_at": now}
        self._collections.setdefault(collection, {})[record_id] = record
        return copy.deepcopy(record)

    async def get_record(self, *, collection: str, record_id: str) -> dict[str, Any]:
        """Get a record by ID."""
        self._record_call("get_record")
        record = self._collections.get(collection, {}).get(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return copy.deepcopy(record)

    def _find_owned(self, collection: str, record_id: str, owner_id: str | None) -> dict[str, Any]:
        record = self._collections.get(collection, {}).get(record_id)
        if record is None or (owner_id is not None and record.get(OWNER_FIELD) != owner_id):
            raise RecordNotFoundError(f"Record not found in {collection}: {record_id}")
        return record

    async def update_record(
        self,
        *,
        collection: str,
        record_id: str,
        data: dict[str, Any],
        owner_id: str | None = None,
    ) -> dict[str, Any]:
        """Update an existing record, optionally only if it belongs to ``owner_id``."""
        self._record_call("update_record")
        record = self._find_owned(collection, record_id, owner_id)

        await asyncio.sleep(0.001)
        record.update(data)
        record["updated_at"] = utc_timestamp()
        return copy.deepcopy(record)

    async def delete_record(self, *, collection: str, record_id: str, owner_id: str | None = None) -> None:
        """Delete a record, optionally only if it belongs to ``owner_id``."""
        self._record_call("delete_record")
        self._find_owned(collection, record_id, owner_id)
        del self._collections[collection][record_id]

    async def get_full_list(
        self,
        *,
        collection: str,
        filter_query: str = "",
        sort: str = "",
    ) -> list[dict[str, Any]]:
        """List every matching record."""
        self._record_call("get_full_list")
        records = list(self._collections.get(collection, {}).values())
        if filter_query:
            records = [r for r in records if self._parse_filter(filter_query, r)]
        if sort:
            records = self._apply_sort(records, sort)
        return [copy.deepcopy(r) for r in records]

    async def get_first_record(self, *, collection: str, filter_query: str) -> dict[str, Any] | None:
        """Return the first matching record or None."""
        self._record_call("get_first_record")
        for record in self._collections.get(collection, {}).values():
            if self._parse_filter(filter_query, record):
                return copy.deepcopy(record)
        return None

    def _parse_filter(self, filter_query: str, record: dict[str, Any]) -> bool:
        """Evaluate ``field = "value" && field != "value"`` against a record."""
        try:
            conditions = parse_conditions(filter_query)
        except ValueError as e:
            raise DatabaseError(str(e)) from e
        for field, op, value in conditions:
            actual = record.get(field)
            actual = "" if actual is None else str(actual)
            if (op == "=") != (actual == value):
                return False
        return True

    def _apply_sort(self, records: list[dict[str, Any]], sort: str) -> list[dict[str, Any]]:
        descending = sort.startswith("-")
        field = sort.lstrip("+-")
        return sorted(records, key=lambda r: r.get(field) or "", reverse=descending)

    def insert_raw(self, collection: str, record: dict[str, Any]) -> None:
        """Store a record exactly as given, bypassing id and timestamp assignment."""
        self._collections.setdefault(collection, {})[record["id"]] = copy.deepcopy(record)
