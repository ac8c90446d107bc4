import datetime as dt
from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.services.export_service import export_all, export_table

router = APIRouter(prefix="/export", tags=["Export"])


def _attachment(filename: str) -> dict:
    return {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }


# =========================
# FULL JSON BACKUP
# =========================
@router.get("/all")
def export_backup(db: Session = Depends(get_db)):
    payload = export_all(db)
    filename = f"db-export-{dt.date.today().isoformat()}.json"

    return JSONResponse(
        content=jsonable_encoder(payload),
        headers=_attachment(filename),
    )


# =========================
# CSV PER TABLE
# =========================
@router.get("/{table}")
def export_csv(
    table: Literal["clients", "work", "payments"],
    client_ids: str | None = Query(default=None),
    from_date: dt.date | None = Query(default=None, alias="from"),
    to_date: dt.date | None = Query(default=None, alias="to"),
    db: Session = Depends(get_db)
):
    ids = [int(part) for part in (client_ids or "").split(",") if part.strip().isdigit()]

    body = export_table(table, db, client_ids=ids or None, start=from_date, end=to_date)
    filename = f"{table}-{dt.date.today().isoformat()}.csv"

    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers=_attachment(filename),
    )
