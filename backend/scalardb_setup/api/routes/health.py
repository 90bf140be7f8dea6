"""Installer API liveness endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "message": "ScalarDB Installer API is running",
        "timestamp": datetime.now(UTC).isoformat(),
    }
