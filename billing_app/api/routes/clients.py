import datetime as dt

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.models.enums import ChargedBy, PricingMode, WorkStatus
from billing_app.schemas.client import (
    BulkDeleteRequest,
    ClientCreate,
    ClientResponse,
    ClientUpdate,
)
from billing_app.schemas.invoice import InvoiceResponse
from billing_app.schemas.ledger import ClientDetail, ClientLedger
from billing_app.schemas.payment import PaymentResponse
from billing_app.schemas.work import (
    DeliveryToggle,
    VariantClear,
    VariantCount,
    VariantRename,
    WorkEntryCreate,
    WorkEntryResponse,
    WorkVariantsCreate,
)
from billing_app.services.audit_service import log_action
from billing_app.services.client_service import create_client, delete_clients, update_client
from billing_app.services.invoice_service import list_client_invoices
from billing_app.services.ledger_service import client_summary, ledger_report
from billing_app.services.payment_service import list_payments
from billing_app.services.work_service import (
    clear_variant,
    create_work_entry,
    create_work_variants,
    list_variant_counts,
    list_work_entries,
    rename_variant,
    set_delivery,
)

router = APIRouter(prefix="/clients", tags=["Clients"])


# ---------------- CLIENTS ----------------

@router.post("", response_model=ClientResponse)
def add_client(payload: ClientCreate, db: Session = Depends(get_db)):
    client = create_client(payload, db)

    log_action(
        db=db,
        action="CREATE_CLIENT",
        entity_type="Client",
        entity_id=client.id,
        details=f"Client '{client.name}' created"
    )

    return client


@router.get("", response_model=list[ClientLedger])
def get_clients(
    search: str | None = Query(default=None),
    db: Session = Depends(get_db)
):
    rows = ledger_report(db)["rows"]

    if search and search.strip():
        term = search.strip().lower()
        rows = [row for row in rows if term in row["client_name"].lower()]

    return rows


@router.post("/bulk-delete")
def bulk_delete_clients(payload: BulkDeleteRequest, db: Session = Depends(get_db)):
    deleted = delete_clients(payload.ids, db)

    log_action(
        db=db,
        action="BULK_DELETE_CLIENTS",
        entity_type="Client",
        details=f"Deleted {deleted} clients: {sorted(set(payload.ids))}"
    )

    return {"deleted": deleted}


@router.get("/{client_id}", response_model=ClientDetail)
def get_client_detail(client_id: int, db: Session = Depends(get_db)):
    return client_summary(client_id, db)


@router.patch("/{client_id}", response_model=ClientResponse)
def edit_client(client_id: int, payload: ClientUpdate, db: Session = Depends(get_db)):
    client = update_client(client_id, payload, db)

    log_action(
        db=db,
        action="UPDATE_CLIENT",
        entity_type="Client",
        entity_id=client.id,
        details=f"Fields: {sorted(payload.model_dump(exclude_unset=True))}"
    )

    return client


# ---------------- WORK ----------------

@router.post("/{client_id}/work", response_model=WorkEntryResponse)
def add_work(client_id: int, payload: WorkEntryCreate, db: Session = Depends(get_db)):
    entry = create_work_entry(client_id, payload, db)

    log_action(
        db=db,
        action="CREATE_WORK",
        entity_type="WorkEntry",
        entity_id=entry.id,
        details=(
            f"{entry.project_name} | {entry.pricing_mode} | "
            f"{entry.charged_by_snapshot} | Amount: {entry.amount_due}"
        )
    )

    return entry


@router.post("/{client_id}/work/variants", response_model=list[WorkEntryResponse])
def add_work_variants(
    client_id: int,
    payload: WorkVariantsCreate,
    db: Session = Depends(get_db)
):
    entries = create_work_variants(client_id, payload, db)

    log_action(
        db=db,
        action="CREATE_WORK_VARIANTS",
        entity_type="Client",
        entity_id=client_id,
        details=f"{payload.project_name} | Entries: {[e.id for e in entries]}"
    )

    return entries


@router.get("/{client_id}/work", response_model=list[WorkEntryResponse])
def get_work(
    client_id: int,
    status: WorkStatus | None = Query(default=None),
    basis: ChargedBy | None = Query(default=None),
    mode: PricingMode | None = Query(default=None),
    from_date: dt.date | None = Query(default=None, alias="from"),
    to_date: dt.date | None = Query(default=None, alias="to"),
    db: Session = Depends(get_db)
):
    return list_work_entries(
        client_id, db,
        status=status, basis=basis, mode=mode, start=from_date, end=to_date,
    )


@router.patch("/{client_id}/work/{work_id}/delivery", response_model=WorkEntryResponse)
def toggle_delivery(
    client_id: int,
    work_id: int,
    payload: DeliveryToggle,
    db: Session = Depends(get_db)
):
    entry = set_delivery(client_id, work_id, payload.delivered, db)

    log_action(
        db=db,
        action="DELIVER_WORK" if payload.delivered else "REOPEN_WORK",
        entity_type="WorkEntry",
        entity_id=entry.id,
    )

    return entry


# ---------------- VARIANTS ----------------

@router.get("/{client_id}/variants", response_model=list[VariantCount])
def get_variants(client_id: int, db: Session = Depends(get_db)):
    return list_variant_counts(client_id, db)


@router.patch("/{client_id}/variants")
def rename_variants(
    client_id: int,
    payload: VariantRename,
    db: Session = Depends(get_db)
):
    updated = rename_variant(client_id, payload.old_label, payload.new_label, db)

    log_action(
        db=db,
        action="RENAME_VARIANT",
        entity_type="Client",
        entity_id=client_id,
        details=f"'{payload.old_label}' -> '{payload.new_label}' ({updated} entries)"
    )

    return {"updated": updated}


@router.delete("/{client_id}/variants")
def clear_variants(
    client_id: int,
    payload: VariantClear,
    db: Session = Depends(get_db)
):
    updated = clear_variant(client_id, payload.label, db)

    log_action(
        db=db,
        action="CLEAR_VARIANT",
        entity_type="Client",
        entity_id=client_id,
        details=f"'{payload.label}' cleared ({updated} entries)"
    )

    return {"updated": updated}


# ---------------- PAYMENTS / INVOICES ----------------

@router.get("/{client_id}/payments", response_model=list[PaymentResponse])
def get_client_payments(client_id: int, db: Session = Depends(get_db)):
    return list_payments(client_id, db)


@router.get("/{client_id}/invoices", response_model=list[InvoiceResponse])
def get_client_invoices(client_id: int, db: Session = Depends(get_db)):
    return list_client_invoices(client_id, db)
