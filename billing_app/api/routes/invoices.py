from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.schemas.invoice import (
    InvoiceCompose,
    InvoiceComposed,
    InvoiceResponse,
    InvoiceSettingsResponse,
    InvoiceSettingsUpdate,
)
from billing_app.services.audit_service import log_action
from billing_app.services.invoice_service import (
    compose_invoice,
    get_invoice_by_number,
    get_invoice_settings,
    update_invoice_settings,
)

router = APIRouter(tags=["Invoices"])


# =========================
# COMPOSE / REGENERATE INVOICE
# =========================
@router.post("/invoices", response_model=InvoiceComposed)
def create_or_update_invoice(payload: InvoiceCompose, db: Session = Depends(get_db)):
    invoice = compose_invoice(payload, db)

    log_action(
        db=db,
        action="COMPOSE_INVOICE",
        entity_type="Invoice",
        entity_id=invoice.id,
        details=(
            f"Invoice #{invoice.number} for client {invoice.client_id} | "
            f"Work: {payload.work_ids} | Total: {invoice.total}"
        )
    )

    return {"id": invoice.id, "number": invoice.number}


# =========================
# GET INVOICE DETAIL
# =========================
@router.get("/invoices/{number}", response_model=InvoiceResponse)
def get_invoice(number: int, db: Session = Depends(get_db)):
    return get_invoice_by_number(number, db)


# =========================
# INVOICE SETTINGS
# =========================
@router.get("/invoice-settings", response_model=InvoiceSettingsResponse)
def read_invoice_settings(db: Session = Depends(get_db)):
    row = get_invoice_settings(db)
    db.commit()
    return row


@router.put("/invoice-settings", response_model=InvoiceSettingsResponse)
def write_invoice_settings(payload: InvoiceSettingsUpdate, db: Session = Depends(get_db)):
    row = update_invoice_settings(payload, db)

    log_action(
        db=db,
        action="UPDATE_INVOICE_SETTINGS",
        entity_type="InvoiceSettings",
        entity_id=row.id,
        details=f"Fields: {sorted(payload.model_dump(exclude_unset=True))}"
    )

    return row
