"""Medical sample repository (patients, doctors, appointments, records)."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from scalardb_setup.db.repositories.dashboard_repo import fetch_all

_COUNTED_TABLES = {
    "patients": "patients",
    "doctors": "doctors",
    "appointments": "appointments",
    "records": "medical_records",
}


async def list_patients(db: AsyncSession) -> list[dict[str, Any]]:
    return await fetch_all(db, text("SELECT * FROM patients ORDER BY patient_id"), "patients")


async def list_doctors(db: AsyncSession) -> list[dict[str, Any]]:
    return await fetch_all(db, text("SELECT * FROM doctors ORDER BY doctor_id"), "doctors")


async def list_appointments(db: AsyncSession) -> list[dict[str, Any]]:
    """Appointments, newest first, with patient and doctor names joined in."""
    return await fetch_all(
        db,
        text("""
            SELECT a.*,
                   p.first_name || ' ' || p.last_name AS patient_name,
                   d.first_name || ' ' || d.last_name AS doctor_name
            FROM appointments a
            JOIN patients p ON a.patient_id = p.patient_id
            JOIN doctors d ON a.doctor_id = d.doctor_id
            ORDER BY a.appointment_date DESC
        """),
        "appointments",
    )


async def list_records(db: AsyncSession) -> list[dict[str, Any]]:
    return await fetch_all(
        db,
        text("""
            SELECT r.*,
                   p.first_name || ' ' || p.last_name AS patient_name,
                   d.first_name || ' ' || d.last_name AS doctor_name
            FROM medical_records r
            JOIN patients p ON r.patient_id = p.patient_id
            JOIN doctors d ON r.doctor_id = d.doctor_id
            ORDER BY r.visit_date DESC
        """),
        "medical records",
    )


async def get_stats(db: AsyncSession) -> dict[str, int]:
    stats = {}
    for key, table in _COUNTED_TABLES.items():
        rows = await fetch_all(db, text(f"SELECT COUNT(*) AS count FROM {table}"), f"{key} count")
        stats[key] = rows[0]["count"]
    return stats
