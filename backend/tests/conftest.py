"""Shared test fixtures for the ScalarDB setup backend tests."""

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from scalardb_setup.core.progress_relay import ProgressRelay


# Use an in-memory SQLite database for tests.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionFactory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


SAMPLE_DDL = [
    """CREATE TABLE sample_customer (
        customer_id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        credit_limit INTEGER,
        credit_total INTEGER
    )""",
    """CREATE TABLE sample_order (
        order_id TEXT PRIMARY KEY,
        customer_id INTEGER,
        timestamp INTEGER
    )""",
    """CREATE TABLE patients (
        patient_id INTEGER PRIMARY KEY,
        first_name TEXT,
        last_name TEXT
    )""",
    """CREATE TABLE doctors (
        doctor_id INTEGER PRIMARY KEY,
        first_name TEXT,
        last_name TEXT,
        specialty TEXT
    )""",
    """CREATE TABLE appointments (
        appointment_id INTEGER PRIMARY KEY,
        patient_id INTEGER,
        doctor_id INTEGER,
        appointment_date TEXT
    )""",
    """CREATE TABLE medical_records (
        record_id INTEGER PRIMARY KEY,
        patient_id INTEGER,
        doctor_id INTEGER,
        visit_date TEXT,
        diagnosis TEXT
    )""",
]

SAMPLE_ROWS = [
    "INSERT INTO sample_customer VALUES (1, 'Yamada Taro', 10000, 0)",
    "INSERT INTO sample_customer VALUES (2, 'Yamada Hanako', 10000, 0)",
    "INSERT INTO sample_customer VALUES (3, 'Suzuki Ichiro', 10000, 0)",
    "INSERT INTO sample_order VALUES ('o-1', 1, 1700000000)",
    "INSERT INTO sample_order VALUES ('o-2', 2, 1700000100)",
    "INSERT INTO patients VALUES (1, 'Ada', 'Lovelace')",
    "INSERT INTO patients VALUES (2, 'Alan', 'Turing')",
    "INSERT INTO doctors VALUES (1, 'Grace', 'Hopper', 'Cardiology')",
    "INSERT INTO appointments VALUES (1, 1, 1, '2024-01-10')",
    "INSERT INTO appointments VALUES (2, 2, 1, '2024-02-10')",
    "INSERT INTO medical_records VALUES (1, 1, 1, '2024-01-10', 'Healthy')",
]

SAMPLE_TABLES = [
    "medical_records", "appointments", "doctors", "patients", "sample_order", "sample_customer",
]


@pytest_asyncio.fixture
async def db() -> AsyncSession:
    """Create and seed the sample tables, then yield a fresh async session."""
    async with engine.begin() as conn:
        for ddl in SAMPLE_DDL:
            await conn.execute(text(ddl))
        for row in SAMPLE_ROWS:
            await conn.execute(text(row))

    async with TestSessionFactory() as session:
        yield session

    async with engine.begin() as conn:
        for table in SAMPLE_TABLES:
            await conn.execute(text(f"DROP TABLE IF EXISTS {table}"))


@pytest.fixture
def relay() -> ProgressRelay:
    """A relay with no shared state between tests."""
    return ProgressRelay()


def _drain(sub) -> list[dict]:
    messages = []
    while not sub.queue.empty():
        messages.append(sub.queue.get_nowait())
    return messages


@pytest.fixture
def drain():
    """Pop everything currently queued for a subscriber."""
    return _drain
