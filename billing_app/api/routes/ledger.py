import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.schemas.ledger import LedgerReport
from billing_app.services.ledger_service import ledger_report

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("", response_model=LedgerReport)
def get_ledger(
    from_date: dt.date | None = Query(default=None, alias="from"),
    to_date: dt.date | None = Query(default=None, alias="to"),
    db: Session = Depends(get_db)
):
    if from_date and to_date and from_date > to_date:
        raise HTTPException(status_code=400, detail="'from' must not be after 'to'")

    return ledger_report(db, start=from_date, end=to_date)
