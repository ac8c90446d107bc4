from fastapi import HTTPException
from sqlalchemy.orm import Session

from billing_app.core.config import settings
from billing_app.core.dependencies import get_client_or_404
from billing_app.core.logging import get_logger
from billing_app.models.client import Client
from billing_app.models.invoice import Invoice
from billing_app.models.invoice_item import InvoiceItem
from billing_app.models.invoice_settings import InvoiceSettings
from billing_app.models.work_entry import WorkEntry
from billing_app.schemas.invoice import InvoiceCompose, InvoiceSettingsUpdate
from billing_app.services.pricing_service import round_money


logger = get_logger("invoice")

SETTINGS_ID = 1


# =========================
# SETTINGS
# =========================

def get_invoice_settings(db: Session, for_update: bool = False) -> InvoiceSettings:
    query = db.query(InvoiceSettings).filter(InvoiceSettings.id == SETTINGS_ID)
    if for_update:
        query = query.with_for_update()

    row = query.first()
    if row is None:
        row = InvoiceSettings(
            id=SETTINGS_ID,
            next_number=settings.INVOICE_START_NUMBER,
            currency=settings.CURRENCY,
        )
        db.add(row)
        db.flush()

    return row


def update_invoice_settings(payload: InvoiceSettingsUpdate, db: Session) -> InvoiceSettings:
    row = get_invoice_settings(db, for_update=True)

    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(row, key, value)

    db.commit()
    db.refresh(row)

    return row


def allocate_invoice_number(db: Session) -> int:
    """Take the counter's next number, skipping numbers already in use.

    Runs inside the caller's transaction; the settings row stays locked
    until that transaction ends.
    """
    row = get_invoice_settings(db, for_update=True)
    number = row.next_number

    while db.query(Invoice.id).filter(Invoice.number == number).first():
        number += 1

    row.next_number = number + 1
    logger.info("Allocated invoice number %s", number)

    return number


# =========================
# COMPOSITION
# =========================

def build_bill_to(client: Client) -> str:
    parts = [
        client.name,
        client.designation,
        client.contact_name,
        f"Phone: {client.phone}" if client.phone else None,
        client.email,
    ]
    return "\n".join(part for part in parts if part)


def line_description(entry: WorkEntry) -> str:
    parts = [
        entry.project_name or "-",
        f"({entry.variant_label})" if entry.variant_label else "",
        f"- {entry.date.isoformat()}" if entry.date else "",
    ]
    return " ".join(part for part in parts if part)


def _load_entries(client_id: int, work_ids: list[int], db: Session) -> list[WorkEntry]:
    unique_ids = list(dict.fromkeys(work_ids))
    if not unique_ids:
        return []

    entries = db.query(WorkEntry).filter(WorkEntry.id.in_(unique_ids)).all()
    by_id = {entry.id: entry for entry in entries}

    missing = [work_id for work_id in unique_ids if work_id not in by_id]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Work entries not found: {missing}",
        )

    foreign = [entry.id for entry in entries if entry.client_id != client_id]
    if foreign:
        raise HTTPException(
            status_code=400,
            detail=f"Work entries belong to another client: {sorted(foreign)}",
        )

    return [by_id[work_id] for work_id in unique_ids]


def compose_invoice(payload: InvoiceCompose, db: Session) -> Invoice:
    """Create or regenerate an invoice from a selection of work entries.

    An existing number is updated in place: its items are replaced and the
    previously linked entries are released before the new ones are linked.
    The counter only advances when no number was supplied.
    """
    client = get_client_or_404(payload.client_id, db)
    entries = _load_entries(client.id, payload.work_ids, db)

    subtotal = 0.0
    for entry in entries:
        subtotal = round_money(subtotal + (entry.amount_due or 0))

    try:
        invoice = None
        if payload.number is not None:
            invoice = (
                db.query(Invoice)
                .filter(Invoice.number == payload.number)
                .with_for_update()
                .first()
            )
            number = payload.number
        else:
            number = allocate_invoice_number(db)

        currency = get_invoice_settings(db).currency

        if invoice is None:
            invoice = Invoice(number=number)
            db.add(invoice)

        invoice.client_id = client.id
        invoice.issue_date = payload.issue_date
        invoice.bill_to = build_bill_to(client)
        invoice.from_text = payload.from_text
        invoice.payment_text = payload.payment_text
        invoice.currency = currency
        invoice.subtotal = subtotal
        invoice.total = subtotal
        db.flush()

        db.query(InvoiceItem).filter(
            InvoiceItem.invoice_id == invoice.id
        ).delete(synchronize_session=False)

        db.query(WorkEntry).filter(
            WorkEntry.invoice_id == invoice.id
        ).update({WorkEntry.invoice_id: None}, synchronize_session=False)

        for idx, entry in enumerate(entries):
            amount = round_money(entry.amount_due)
            db.add(
                InvoiceItem(
                    invoice_id=invoice.id,
                    work_entry_id=entry.id,
                    description=line_description(entry),
                    quantity=1,
                    rate=amount,
                    amount=amount,
                    sort_order=idx,
                )
            )

        if entries:
            db.query(WorkEntry).filter(
                WorkEntry.id.in_([entry.id for entry in entries])
            ).update({WorkEntry.invoice_id: invoice.id}, synchronize_session=False)

        if payload.remember_defaults:
            defaults = get_invoice_settings(db, for_update=True)
            defaults.from_text = payload.from_text
            defaults.payment_text = payload.payment_text

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(invoice)
    logger.info(
        "Invoice %s composed for client %s with %d items, total %.2f",
        invoice.number, client.id, len(entries), invoice.total,
    )

    return invoice


def get_invoice_by_number(number: int, db: Session) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.number == number).first()

    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    return invoice


def list_client_invoices(client_id: int, db: Session) -> list[Invoice]:
    get_client_or_404(client_id, db)

    return (
        db.query(Invoice)
        .filter(Invoice.client_id == client_id)
        .order_by(Invoice.number.desc())
        .all()
    )
