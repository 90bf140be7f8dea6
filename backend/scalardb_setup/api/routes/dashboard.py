"""Dashboard endpoints over the ScalarDB sample schema (PostgreSQL)."""

import logging
import re
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from scalardb_setup.api.dependencies import DbSession
from scalardb_setup.config import settings
from scalardb_setup.db.exceptions import DatabaseError, QueryExecutionError, QueryRejectedError
from scalardb_setup.db.repositories import dashboard_repo
from scalardb_setup.middleware.rate_limiter import QUERY_LIMIT, limiter
from scalardb_setup.models.requests import QueryRequest

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LIMIT = 10
STATIC_DIR = Path(__file__).resolve().parents[2] / "static"

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def clamp_limit(limit: str | int | None) -> int:
    """Parse the leading integer of ``?limit=``.

    Missing, zero or non-numeric means the default; anything else is at least 1.
    """
    if isinstance(limit, str):
        match = _LEADING_INT_RE.match(limit)
        limit = int(match.group(1)) if match else None
    return max(1, limit or DEFAULT_LIMIT)


@router.get("/", include_in_schema=False)
async def dashboard_page() -> FileResponse:
    static_dir = Path(settings.dashboard_static_dir) if settings.dashboard_static_dir else STATIC_DIR
    return FileResponse(static_dir / "dashboard.html", media_type="text/html")


@router.get("/api/health")
async def health_check(db: DbSession) -> JSONResponse:
    try:
        info = await dashboard_repo.get_database_info(db)
    except DatabaseError as e:
        logger.error("Health check failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "message": f"Database connection failed: {e}"},
        )
    return JSONResponse(content={
        "status": "healthy",
        "message": "Database connection successful",
        "database_info": info,
    })


@router.get("/api/tables")
async def list_tables(db: DbSession) -> list[dict]:
    return await dashboard_repo.list_tables(db)


@router.get("/api/describe/{table_name}")
async def describe_table(table_name: str, db: DbSession) -> list[dict]:
    return await dashboard_repo.describe_table(db, table_name)


@router.get("/api/customers")
async def list_customers(db: DbSession, limit: str | None = None) -> list[dict]:
    return await dashboard_repo.list_rows(db, "customers", clamp_limit(limit))


@router.get("/api/orders")
async def list_orders(db: DbSession, limit: str | None = None) -> list[dict]:
    return await dashboard_repo.list_rows(db, "orders", clamp_limit(limit))


@router.get("/api/stats/customers")
async def customer_count(db: DbSession) -> dict:
    return await dashboard_repo.count_rows(db, "customers")


@router.get("/api/stats/orders")
async def order_count(db: DbSession) -> dict:
    return await dashboard_repo.count_rows(db, "orders")


@router.post("/api/query")
@limiter.limit(QUERY_LIMIT)
async def run_query(request: Request, body: QueryRequest, db: DbSession) -> dict:
    """Run an ad-hoc SELECT/WITH query read-only."""
    if not body.query:
        raise HTTPException(status_code=400, detail="Query is required")
    try:
        return await dashboard_repo.run_read_only_query(db, body.query)
    except (QueryRejectedError, QueryExecutionError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/api/schema")
async def get_schema(db: DbSession) -> dict:
    return await dashboard_repo.get_schema(db)


@router.get("/api/activity")
async def recent_activity(db: DbSession) -> list[dict]:
    return await dashboard_repo.get_recent_activity(db)
