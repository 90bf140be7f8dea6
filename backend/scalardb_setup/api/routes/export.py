"""CSV export of the sample tables."""

import csv
import io
from typing import Any, Literal

from fastapi import APIRouter
from fastapi.responses import Response

from scalardb_setup.api.dependencies import DbSession
from scalardb_setup.db.repositories import dashboard_repo

router = APIRouter()


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    """Header from the first row's keys; ``None`` becomes an empty cell."""
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if value is None else value for key, value in row.items()})
    return buffer.getvalue()


@router.get("/{kind}.csv")
async def export_csv(kind: Literal["customers", "orders"], db: DbSession) -> Response:
    rows = await dashboard_repo.export_rows(db, kind)
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{kind}.csv"'},
    )
