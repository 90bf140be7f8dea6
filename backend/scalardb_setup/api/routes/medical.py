"""Medical sample endpoints (patients, doctors, appointments, records)."""

from fastapi import APIRouter

from scalardb_setup.api.dependencies import DbSession
from scalardb_setup.db.repositories import medical_repo

router = APIRouter()


@router.get("/patients")
async def list_patients(db: DbSession) -> list[dict]:
    return await medical_repo.list_patients(db)


@router.get("/doctors")
async def list_doctors(db: DbSession) -> list[dict]:
    return await medical_repo.list_doctors(db)


@router.get("/appointments")
async def list_appointments(db: DbSession) -> list[dict]:
    return await medical_repo.list_appointments(db)


@router.get("/records")
async def list_records(db: DbSession) -> list[dict]:
    return await medical_repo.list_records(db)


@router.get("/stats")
async def stats(db: DbSession) -> dict:
    return await medical_repo.get_stats(db)
