import csv
import datetime as dt
import io

from fastapi import HTTPException
from sqlalchemy.orm import Session

from billing_app.models.client import Client
from billing_app.models.enums import ChargedBy, PricingMode
from billing_app.models.invoice import Invoice
from billing_app.models.invoice_item import InvoiceItem
from billing_app.models.invoice_settings import InvoiceSettings
from billing_app.models.payment import PaymentEntry
from billing_app.models.work_entry import WorkEntry


CLIENT_COLUMNS = [
    "name", "charged_by", "rate", "status", "contact_name", "designation",
    "email", "phone", "note", "created_at",
]

WORK_COLUMNS = [
    "client_name", "work_name", "rate", "basis", "minutes", "seconds",
    "duration_seconds", "units", "amount", "manual_rate", "pricing_mode",
    "status", "date", "delivered_at", "note", "variant_label",
]

PAYMENT_COLUMNS = ["client_name", "amount", "medium", "date", "note"]


def _blank(value):
    return "" if value is None else value


def _iso_date(value) -> str:
    if value is None:
        return ""
    if isinstance(value, dt.datetime):
        return value.date().isoformat()
    return value.isoformat()


def to_csv(rows: list[dict], columns: list[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: _blank(row.get(column)) for column in columns})
    return buffer.getvalue()


def client_rows(db: Session) -> list[dict]:
    clients = db.query(Client).order_by(Client.created_at.asc(), Client.id.asc()).all()

    return [
        {
            "name": c.name,
            "charged_by": c.charged_by,
            "rate": c.rate,
            "status": c.status,
            "contact_name": c.contact_name,
            "designation": c.designation,
            "email": c.email,
            "phone": c.phone,
            "note": c.note,
            "created_at": _iso_date(c.created_at),
        }
        for c in clients
    ]


def work_row(entry: WorkEntry, client_name: str) -> dict:
    is_project = entry.charged_by_snapshot == ChargedBy.PROJECT.value
    seconds_total = entry.duration_seconds or 0

    return {
        "client_name": client_name,
        "work_name": entry.project_name,
        "rate": entry.rate_snapshot,
        "basis": entry.charged_by_snapshot,
        "minutes": seconds_total // 60 if seconds_total and not is_project else None,
        "seconds": seconds_total % 60 if seconds_total and not is_project else None,
        "duration_seconds": None if is_project else entry.duration_seconds,
        "units": entry.units,
        # manual values only travel with the mode that uses them
        "amount": entry.amount_due if entry.pricing_mode == PricingMode.MANUAL_TOTAL.value else None,
        "manual_rate": entry.rate_snapshot if entry.pricing_mode == PricingMode.MANUAL_RATE.value else None,
        "pricing_mode": entry.pricing_mode,
        "status": entry.status,
        "date": _iso_date(entry.date),
        "delivered_at": _iso_date(entry.delivered_at),
        "note": entry.note,
        "variant_label": entry.variant_label,
    }


def _scoped(query, model, client_ids, start, end):
    if client_ids:
        query = query.filter(model.client_id.in_(client_ids))
    if start:
        query = query.filter(model.date >= start)
    if end:
        query = query.filter(model.date <= end)
    return query.order_by(model.date.asc(), model.id.asc())


def export_table(
    table: str,
    db: Session,
    client_ids: list[int] | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> str:
    if table == "clients":
        return to_csv(client_rows(db), CLIENT_COLUMNS)

    names = {c.id: c.name for c in db.query(Client.id, Client.name).all()}

    if table == "work":
        entries = _scoped(db.query(WorkEntry), WorkEntry, client_ids, start, end).all()
        rows = [work_row(e, names.get(e.client_id, str(e.client_id))) for e in entries]
        return to_csv(rows, WORK_COLUMNS)

    if table == "payments":
        payments = _scoped(db.query(PaymentEntry), PaymentEntry, client_ids, start, end).all()
        rows = [
            {
                "client_name": names.get(p.client_id, str(p.client_id)),
                "amount": p.amount,
                "medium": p.medium,
                "date": _iso_date(p.date),
                "note": p.note,
            }
            for p in payments
        ]
        return to_csv(rows, PAYMENT_COLUMNS)

    raise HTTPException(status_code=400, detail="Invalid table")


# =========================
# FULL BACKUP
# =========================

EXPORT_VERSION = 1

# table name -> (model, ordering)
BACKUP_TABLES = {
    "clients": (Client, (Client.created_at, Client.id)),
    "work_entries": (WorkEntry, (WorkEntry.date, WorkEntry.id)),
    "payment_entries": (PaymentEntry, (PaymentEntry.date, PaymentEntry.id)),
    "invoices": (Invoice, (Invoice.number,)),
    "invoice_items": (InvoiceItem, (InvoiceItem.invoice_id, InvoiceItem.sort_order)),
    "invoice_settings": (InvoiceSettings, (InvoiceSettings.id,)),
}


def _row_dict(row) -> dict:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


def export_all(db: Session) -> dict:
    """Every table as plain rows, with a meta block of row counts."""
    data = {
        name: [_row_dict(row) for row in db.query(model).order_by(*ordering).all()]
        for name, (model, ordering) in BACKUP_TABLES.items()
    }

    return {
        "meta": {
            "exported_at": dt.datetime.utcnow(),
            "tables": {name: len(rows) for name, rows in data.items()},
            "export_version": EXPORT_VERSION,
        },
        "data": data,
    }
