"""SQLite database client wrapper with collection-scoped CRUD operations."""

import asyncio
import json
import logging
import re
import threading
import uuid
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from src.core.config import settings


logger = logging.getLogger(__name__)

# Column that scopes records to their owning user
OWNER_FIELD = "user_id"


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when no record matches the requested id (and owner)."""


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value as the body of a double-quoted filter string; parse_conditions reverses it."""
    return json.dumps(str(value))[1:-1]


def utc_timestamp() -> str:
    """Return the current UTC time as a fixed-width, lexically sortable ISO string."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _serialize_value(value: Any) -> Any:
    """Convert a Python value into something SQLite can store."""
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


# One ``field = "value"`` or ``field != "value"`` comparison; the value is a
# JSON string body, as produced by sanitize_param
_COMPARISON = re.compile(r'\s*(\w+)\s*(!=|=)\s*"((?:[^"\\]|\\.)*)"\s*')
_AND = re.compile(r"&&")


def parse_conditions(filter_query: str) -> list[tuple[str, str, str]]:
    """Split a filter into ``(field, operator, value)`` triples.

    Supports ``field = "value"`` and ``field != "value"`` joined with ``&&``.
    Values are unescaped with the inverse of ``sanitize_param`` and always
    compared as text.
    """
    conditions: list[tuple[str, str, str]] = []
    if not filter_query.strip():
        return conditions

    pos = 0
    while True:
        match = _COMPARISON.match(filter_query, pos)
        if not match:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)
        field, op, raw_value = match.groups()
        try:
            value = json.loads(f'"{raw_value}"')
        except json.JSONDecodeError as e:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg) from e
        conditions.append((field, op, value))

        pos = match.end()
        if pos == len(filter_query):
            return conditions
        joiner = _AND.match(filter_query, pos)
        if not joiner:
            msg = f"Invalid filter syntax: {filter_query}"
            raise ValueError(msg)
        pos = joiner.end()


def parse_filter(filter_query: str) -> tuple[str, list[str]]:
    """Parse filter syntax into a SQL WHERE clause and bound parameters.

    e.g. ``user_id = "abc" && status != "done"`` becomes
    ``("user_id = ? AND status != ?", ["abc", "done"])``.
    """
    conditions = parse_conditions(filter_query)
    clause = " AND ".join(f"{field} {op} ?" for field, op, _ in conditions)
    return clause, [value for _, _, value in conditions]


def parse_sort(sort: str) -> str:
    """Translate ``-field`` / ``+field`` / ``field [ASC|DESC]`` into an ORDER BY clause.

    Falls back to ``created_at DESC`` when the sort expression is not recognised.
    """
    default = "created_at DESC"
    if not sort:
        return default

    sort = sort.strip()
    prefixed = re.match(r"^([+-])([A-Za-z_][A-Za-z0-9_]*)$", sort)
    if prefixed:
        direction = "DESC" if prefixed.group(1) == "-" else "ASC"
        return f"{prefixed.group(2)} {direction}"

    if re.match(r"^[A-Za-z_][A-Za-z0-9_]*(\s+(ASC|DESC))?$", sort, re.IGNORECASE):
        return sort

    logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
    return default


def _row_to_record(cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, row, strict=True))


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        await conn.close()

    logger.info(
        "Closed SQLite connection",
        extra={"thread_id": thread_id, "loop_id": loop_id, "db_path": str(path)},
    )


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from src.core.schema import init_db as init_schema

    await init_schema(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id and timestamps."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        now = utc_timestamp()
        record = {"id": uuid.uuid4().hex, **data, "created_at": now, "updated_at": now}

        columns_str = ", ".join(record)
        placeholders_str = ", ".join("?" for _ in record)
        values = [_serialize_value(val) for val in record.values()]

        query = f"INSERT INTO {collection} ({columns_str}) VALUES ({placeholders_str})"  # noqa: S608 - collection is validated
        await conn.execute(query, values)
        await conn.commit()

        logger.info("Created record", extra={"collection": collection, "record_id": record["id"]})
        return await get_record(collection=collection, record_id=record["id"])
    except DatabaseError:
        raise
    except Exception as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"SELECT * FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, (record_id,))
        row = await cursor.fetchone()
    except Exception as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    return _row_to_record(cursor, row)


async def update_record(
    *,
    collection: str,
    record_id: str,
    data: dict[str, Any],
    owner_id: str | None = None,
) -> dict[str, Any]:
    """Update a record by ID and return the updated record.

    When ``owner_id`` is given, only a record owned by that user is touched. Matching
    zero rows raises RecordNotFoundError.
    """
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        changes = {**data, "updated_at": utc_timestamp()}
        set_clause = ", ".join(f"{key} = ?" for key in changes)
        values = [_serialize_value(val) for val in changes.values()]

        where_clause = "id = ?"
        values.append(record_id)
        if owner_id is not None:
            where_clause += f" AND {OWNER_FIELD} = ?"
            values.append(owner_id)

        query = f"UPDATE {collection} SET {set_clause} WHERE {where_clause}"  # noqa: S608 - collection is validated
        cursor = await conn.execute(query, values)
        await conn.commit()
        rowcount = cursor.rowcount
    except Exception as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e

    if rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str, owner_id: str | None = None) -> None:
    """Delete a record by ID (optionally scoped to its owner), raising RecordNotFoundError if nothing matched."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        query = f"DELETE FROM {collection} WHERE id = ?"  # noqa: S608 - collection is validated
        params: list[str] = [record_id]
        if owner_id is not None:
            query += f" AND {OWNER_FIELD} = ?"
            params.append(owner_id)

        cursor = await conn.execute(query, params)
        await conn.commit()
        rowcount = cursor.rowcount
    except Exception as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)

    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def get_full_list(
    *,
    collection: str,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List every record matching the filter, in the requested order."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)
        if where_clause:
            where_clause = f"WHERE {where_clause}"

        query = f"SELECT * FROM {collection} {where_clause} ORDER BY {parse_sort(sort)}"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()
        records = [_row_to_record(cursor, row) for row in rows]
    except Exception as e:
        logger.error("get_full_list_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    try:
        _validate_collection_name(collection)
        conn = await get_connection()

        where_clause, params = parse_filter(filter_query)

        if where_clause:
            query = f"SELECT * FROM {collection} WHERE {where_clause} LIMIT 1"  # noqa: S608 - collection is validated
        else:
            query = f"SELECT * FROM {collection} LIMIT 1"  # noqa: S608 - collection is validated

        cursor = await conn.execute(query, params)
        row = await cursor.fetchone()
    except Exception as e:
        logger.error(
            "get_first_record_failed", extra={"collection": collection, "filter_query": filter_query, "error": str(e)}
        )
        msg = f"Failed to get first record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        return None
    return _row_to_record(cursor, row)
