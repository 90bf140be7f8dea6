"""Dashboard repository: read-only queries over the ScalarDB sample schema."""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scalardb_setup.db.exceptions import (
    ConnectionError,
    DatabaseError,
    QueryExecutionError,
    QueryRejectedError,
)

logger = logging.getLogger(__name__)

ALLOWED_QUERY_PREFIXES = ("select", "with")

_TABLES_SQL = text("""
    SELECT table_name,
           (SELECT COUNT(*) FROM information_schema.columns
            WHERE table_schema = 'public' AND table_name = t.table_name) AS column_count
    FROM information_schema.tables t
    WHERE table_schema = 'public'
    ORDER BY table_name
""")

_DESCRIBE_SQL = text("""
    SELECT column_name, data_type, is_nullable, column_default
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name
    ORDER BY ordinal_position
""")

_SCHEMA_SQL = text("""
    SELECT t.table_name, c.column_name, c.data_type, c.is_nullable,
           c.column_default, c.ordinal_position
    FROM information_schema.tables t
    JOIN information_schema.columns c ON t.table_name = c.table_name
    WHERE t.table_schema = 'public' AND c.table_schema = 'public'
    ORDER BY t.table_name, c.ordinal_position
""")

# Keyed lookups keep table names out of string formatting.
_LIST_SQL = {
    "customers": text("SELECT * FROM sample_customer ORDER BY customer_id LIMIT :limit"),
    "orders": text("SELECT * FROM sample_order ORDER BY order_id LIMIT :limit"),
}
_EXPORT_SQL = {
    "customers": text("SELECT * FROM sample_customer ORDER BY customer_id"),
    "orders": text("SELECT * FROM sample_order ORDER BY order_id"),
}
_COUNT_SQL = {
    "customers": text("SELECT COUNT(*) AS count FROM sample_customer"),
    "orders": text("SELECT COUNT(*) AS count FROM sample_order"),
}


def rows_to_dicts(result: Any) -> list[dict[str, Any]]:
    return [dict(row._mapping) for row in result]


async def fetch_all(db: AsyncSession, statement: Any, what: str, **params: Any) -> list[dict[str, Any]]:
    try:
        result = await db.execute(statement, params)
        return rows_to_dicts(result)
    except OperationalError as e:
        logger.error(f"Database connection error while fetching {what}: {e}")
        raise ConnectionError(f"Database connection failed: {e}") from e
    except Exception as e:
        logger.error(f"Unexpected error fetching {what}: {e}")
        raise DatabaseError(f"Failed to fetch {what}: {e}") from e


async def get_database_info(db: AsyncSession) -> dict[str, Any]:
    """Server version, database and user for the health check."""
    rows = await fetch_all(
        db,
        text("SELECT version() AS version, current_database() AS current_database, current_user AS current_user"),
        "database info",
    )
    return rows[0] if rows else {}


async def list_tables(db: AsyncSession) -> list[dict[str, Any]]:
    return await fetch_all(db, _TABLES_SQL, "tables")


async def describe_table(db: AsyncSession, table_name: str) -> list[dict[str, Any]]:
    return await fetch_all(db, _DESCRIBE_SQL, "table description", table_name=table_name)


async def list_rows(db: AsyncSession, kind: str, limit: int) -> list[dict[str, Any]]:
    """``kind`` is ``customers`` or ``orders``."""
    return await fetch_all(db, _LIST_SQL[kind], kind, limit=limit)


async def export_rows(db: AsyncSession, kind: str) -> list[dict[str, Any]]:
    return await fetch_all(db, _EXPORT_SQL[kind], kind)


async def count_rows(db: AsyncSession, kind: str) -> dict[str, Any]:
    rows = await fetch_all(db, _COUNT_SQL[kind], f"{kind} count")
    return {"count": rows[0]["count"] if rows else 0}


async def get_schema(db: AsyncSession) -> dict[str, list[dict[str, Any]]]:
    """Columns of every public table, grouped by table name."""
    schema: dict[str, list[dict[str, Any]]] = {}
    for row in await fetch_all(db, _SCHEMA_SQL, "schema"):
        schema.setdefault(row["table_name"], []).append({
            "name": row["column_name"],
            "type": row["data_type"],
            "nullable": row["is_nullable"] == "YES",
            "default": row["column_default"],
            "position": row["ordinal_position"],
        })
    return schema


async def get_recent_activity(db: AsyncSession) -> list[dict[str, Any]]:
    # Placeholder feed until an audit table exists.
    return await fetch_all(
        db,
        text("""
            SELECT 'sample_customer' AS table_name,
                   'INSERT' AS operation,
                   CURRENT_TIMESTAMP AS timestamp,
                   'System' AS user_name
            LIMIT 10
        """),
        "activity",
    )


def check_read_only(query: str) -> None:
    if not query.strip().lower().startswith(ALLOWED_QUERY_PREFIXES):
        raise QueryRejectedError("Only SELECT and WITH queries are allowed for security reasons")


async def run_read_only_query(db: AsyncSession, query: str) -> dict[str, Any]:
    """Run an ad-hoc SELECT/WITH statement inside a read-only transaction.

    The prefix check is a first filter only; on PostgreSQL the transaction
    itself refuses writes (e.g. a data-modifying CTE). The statement goes to
    the driver verbatim, so colons inside literals are not bind parameters.
    """
    check_read_only(query)
    try:
        if db.bind is not None and db.bind.dialect.name == "postgresql":
            await db.execute(text("SET TRANSACTION READ ONLY"))
        connection = await db.connection()
        result = await connection.exec_driver_sql(query)
        rows = rows_to_dicts(result)
    except SQLAlchemyError as e:
        reason = getattr(e, "orig", None) or e
        logger.warning("Ad-hoc query failed: %s", reason)
        raise QueryExecutionError(f"Query execution failed: {reason}") from e
    finally:
        await db.rollback()

    return {"success": True, "rows": rows, "rowCount": len(rows), "command": "SELECT"}
