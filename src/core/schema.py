"""SQLite schema management (code-first approach)."""

import logging
from typing import Any

from src.core.config import constants


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = [
    constants.USERS_COLLECTION,
    constants.TASKS_COLLECTION,
]


def _get_collection_schema(*, collection_name: str) -> dict[str, Any]:
    """Get the expected schema for a collection.

    Every collection gets a TEXT primary key ``id`` plus ``created_at`` and
    ``updated_at`` columns, all assigned by the database client on write.
    """
    schemas: dict[str, dict[str, Any]] = {
        constants.USERS_COLLECTION: {
            "fields": [
                "email TEXT NOT NULL UNIQUE",
                "password_hash TEXT NOT NULL",
                "password_salt TEXT NOT NULL",
            ],
            "indexes": [],
        },
        constants.TASKS_COLLECTION: {
            "fields": [
                f"user_id TEXT NOT NULL REFERENCES {constants.USERS_COLLECTION}(id) ON DELETE CASCADE",
                f"title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND {constants.TITLE_MAX_LENGTH})",
                f"description TEXT CHECK (description IS NULL OR length(description) <= "
                f"{constants.DESCRIPTION_MAX_LENGTH})",
                "due_date TEXT",
                "priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high'))",
                "status TEXT NOT NULL DEFAULT 'todo' CHECK (status IN ('todo', 'in_progress', 'done'))",
            ],
            "indexes": [
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_created ON tasks (user_id, created_at DESC)",
            ],
        },
    }
    return schemas[collection_name]


def build_create_table_sql(*, collection_name: str) -> str:
    """Render the CREATE TABLE statement for a collection."""
    schema = _get_collection_schema(collection_name=collection_name)
    columns = [
        "id TEXT PRIMARY KEY",
        *schema["fields"],
        "created_at TEXT NOT NULL",
        "updated_at TEXT NOT NULL",
    ]
    return f"CREATE TABLE IF NOT EXISTS {collection_name} ({', '.join(columns)})"


async def init_db(*, db_path: str | None = None) -> None:
    """Create all collections and indexes if they do not exist yet."""
    # Imported here to avoid a circular import with db_client.init_db
    from src.core.db_client import get_connection

    conn = await get_connection(db_path=db_path)
    for collection_name in COLLECTIONS:
        await conn.execute(build_create_table_sql(collection_name=collection_name))
        for index_sql in _get_collection_schema(collection_name=collection_name)["indexes"]:
            await conn.execute(index_sql)
    await conn.commit()

    logger.info("Schema initialized", extra={"collections": COLLECTIONS})
