"""Repository tests against an in-memory SQLite copy of the sample tables."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import AsyncSession

from scalardb_setup.db.exceptions import (
    ConnectionError,
    DatabaseError,
    QueryExecutionError,
    QueryRejectedError,
)
from scalardb_setup.db.repositories import dashboard_repo, medical_repo


class TestSampleRows:
    @pytest.mark.asyncio
    async def test_customers_respect_limit_and_order(self, db):
        rows = await dashboard_repo.list_rows(db, "customers", 2)
        assert [r["customer_id"] for r in rows] == [1, 2]
        assert rows[0]["name"] == "Yamada Taro"

    @pytest.mark.asyncio
    async def test_orders(self, db):
        rows = await dashboard_repo.list_rows(db, "orders", 10)
        assert [r["order_id"] for r in rows] == ["o-1", "o-2"]

    @pytest.mark.asyncio
    async def test_counts(self, db):
        assert await dashboard_repo.count_rows(db, "customers") == {"count": 3}
        assert await dashboard_repo.count_rows(db, "orders") == {"count": 2}

    @pytest.mark.asyncio
    async def test_export_returns_every_row(self, db):
        assert len(await dashboard_repo.export_rows(db, "customers")) == 3

    @pytest.mark.asyncio
    async def test_activity_placeholder(self, db):
        [row] = await dashboard_repo.get_recent_activity(db)
        assert row["table_name"] == "sample_customer"
        assert row["operation"] == "INSERT"


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_operational_error_is_connection_error(self):
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        with pytest.raises(ConnectionError, match="Database connection failed"):
            await dashboard_repo.count_rows(db, "customers")

    @pytest.mark.asyncio
    async def test_other_errors_are_database_errors(self):
        db = AsyncMock(spec=AsyncSession)
        db.execute.side_effect = ProgrammingError("SELECT", {}, Exception("relation does not exist"))

        with pytest.raises(DatabaseError, match="Failed to fetch tables"):
            await dashboard_repo.list_tables(db)

    @pytest.mark.asyncio
    async def test_connection_error_is_a_database_error(self):
        assert issubclass(ConnectionError, DatabaseError)


class TestReadOnlyQuery:
    @pytest.mark.parametrize("query", [
        "SELECT 1",
        "  select * from sample_customer",
        "WITH t AS (SELECT 1) SELECT * FROM t",
    ])
    def test_allowed_prefixes(self, query):
        dashboard_repo.check_read_only(query)

    @pytest.mark.parametrize("query", [
        "DELETE FROM sample_customer",
        "update sample_customer set name = 'x'",
        "DROP TABLE sample_order",
        "",
    ])
    def test_rejected_prefixes(self, query):
        with pytest.raises(QueryRejectedError, match="Only SELECT and WITH queries are allowed"):
            dashboard_repo.check_read_only(query)

    @pytest.mark.asyncio
    async def test_select_returns_rows(self, db):
        result = await dashboard_repo.run_read_only_query(db, "SELECT name FROM sample_customer ORDER BY customer_id")

        assert result["success"] is True
        assert result["rowCount"] == 3
        assert result["command"] == "SELECT"
        assert result["rows"][0] == {"name": "Yamada Taro"}

    @pytest.mark.asyncio
    async def test_colons_inside_literals_are_plain_text(self, db):
        result = await dashboard_repo.run_read_only_query(db, """SELECT '{"a": :b}' AS doc, 'x :y' AS t""")

        assert result["rows"] == [{"doc": '{"a": :b}', "t": "x :y"}]

    @pytest.mark.asyncio
    async def test_bad_sql_is_query_execution_error(self, db):
        with pytest.raises(QueryExecutionError, match="Query execution failed"):
            await dashboard_repo.run_read_only_query(db, "SELECT * FROM no_such_table")

    @pytest.mark.asyncio
    async def test_rejected_query_never_reaches_database(self):
        db = AsyncMock(spec=AsyncSession)
        with pytest.raises(QueryRejectedError):
            await dashboard_repo.run_read_only_query(db, "INSERT INTO sample_order VALUES ('x', 1, 1)")
        db.execute.assert_not_called()


class TestMedical:
    @pytest.mark.asyncio
    async def test_patients_and_doctors(self, db):
        assert [p["first_name"] for p in await medical_repo.list_patients(db)] == ["Ada", "Alan"]
        assert (await medical_repo.list_doctors(db))[0]["specialty"] == "Cardiology"

    @pytest.mark.asyncio
    async def test_appointments_join_names_newest_first(self, db):
        rows = await medical_repo.list_appointments(db)
        assert [r["appointment_id"] for r in rows] == [2, 1]
        assert rows[0]["patient_name"] == "Alan Turing"
        assert rows[0]["doctor_name"] == "Grace Hopper"

    @pytest.mark.asyncio
    async def test_records(self, db):
        [record] = await medical_repo.list_records(db)
        assert record["diagnosis"] == "Healthy"
        assert record["patient_name"] == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_stats(self, db):
        assert await medical_repo.get_stats(db) == {"patients": 2, "doctors": 1, "appointments": 2, "records": 1}
