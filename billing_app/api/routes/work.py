from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.schemas.work import WorkEntryResponse, WorkEntryUpdate
from billing_app.services.audit_service import log_action
from billing_app.services.work_service import (
    delete_work_entry,
    refresh_entry_rate,
    update_work_entry,
)

router = APIRouter(prefix="/work", tags=["Work"])


@router.patch("/{work_id}", response_model=WorkEntryResponse)
def edit_work(work_id: int, payload: WorkEntryUpdate, db: Session = Depends(get_db)):
    entry = update_work_entry(work_id, payload, db)

    log_action(
        db=db,
        action="UPDATE_WORK",
        entity_type="WorkEntry",
        entity_id=entry.id,
        details=(
            f"{entry.pricing_mode} | Rate: {entry.rate_snapshot} | "
            f"Amount: {entry.amount_due} | Refresh: {payload.refresh_rate}"
        )
    )

    return entry


@router.post("/{work_id}/refresh-rate", response_model=WorkEntryResponse)
def refresh_work_rate(work_id: int, db: Session = Depends(get_db)):
    entry = refresh_entry_rate(work_id, db)

    log_action(
        db=db,
        action="REFRESH_WORK_RATE",
        entity_type="WorkEntry",
        entity_id=entry.id,
        details=f"Rate: {entry.rate_snapshot} | Amount: {entry.amount_due}"
    )

    return entry


@router.delete("/{work_id}")
def remove_work(work_id: int, db: Session = Depends(get_db)):
    delete_work_entry(work_id, db)

    log_action(
        db=db,
        action="DELETE_WORK",
        entity_type="WorkEntry",
        entity_id=work_id,
    )

    return {"ok": True}
