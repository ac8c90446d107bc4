import datetime as dt
from datetime import datetime, time
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_client_or_404
from billing_app.models.client import Client
from billing_app.models.invoice import Invoice
from billing_app.models.invoice_item import InvoiceItem
from billing_app.models.payment import PaymentEntry
from billing_app.models.work_entry import WorkEntry
from billing_app.schemas.client import ClientCreate, ClientUpdate


def _enum_value(value):
    return getattr(value, "value", value)


def _start_of_day(value: dt.date | None) -> datetime | None:
    if value is None:
        return None
    return datetime.combine(value, time.min)


def _ensure_name_free(name: str, db: Session, client_id: int | None = None) -> None:
    existing = find_client_by_name(name, db)

    if existing is not None and existing.id != client_id:
        raise HTTPException(
            status_code=400,
            detail=f"A client named '{name}' already exists",
        )


def _commit_client(client: Client, db: Session) -> None:
    name = client.name
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=400,
            detail=f"A client named '{name}' already exists",
        )


def create_client(payload: ClientCreate, db: Session) -> Client:
    data = payload.model_dump()
    created_at = _start_of_day(data.pop("created_at"))
    _ensure_name_free(data["name"], db)

    client = Client(**{key: _enum_value(value) for key, value in data.items()})
    if created_at:
        client.created_at = created_at

    db.add(client)
    _commit_client(client, db)
    db.refresh(client)

    return client


def update_client(client_id: int, payload: ClientUpdate, db: Session) -> Client:
    client = get_client_or_404(client_id, db)
    patch = payload.model_dump(exclude_unset=True)

    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Name is required")
        _ensure_name_free(name, db, client_id=client.id)
        patch["name"] = name

    if "created_at" in patch:
        patch["created_at"] = _start_of_day(patch["created_at"])
        if patch["created_at"] is None:
            patch.pop("created_at")

    for field in ("charged_by", "rate", "status"):
        if field in patch and patch[field] is None:
            patch.pop(field)

    for key, value in patch.items():
        setattr(client, key, _enum_value(value))

    _commit_client(client, db)
    db.refresh(client)

    return client


def find_client_by_name(name: str, db: Session) -> Client | None:
    return (
        db.query(Client)
        .filter(Client.name == name)
        .order_by(Client.id.asc())
        .first()
    )


def upsert_client_by_name(
    name: str,
    values: dict[str, Any],
    db: Session,
) -> tuple[Client, bool]:
    """Update the client with this exact name, or insert a new one.

    Returns the client and whether it was created. Does not commit.
    """
    client = find_client_by_name(name, db)
    created = client is None

    if created:
        client = Client(name=name)
        db.add(client)

    for key, value in values.items():
        setattr(client, key, _enum_value(value))

    db.flush()
    return client, created


def delete_clients(ids: list[int], db: Session) -> int:
    """Delete clients together with their work, payments and invoices."""
    ids = sorted({client_id for client_id in ids if client_id})
    if not ids:
        return 0

    try:
        invoice_ids = [
            row.id
            for row in db.query(Invoice.id).filter(Invoice.client_id.in_(ids)).all()
        ]
        work_ids = [
            row.id
            for row in db.query(WorkEntry.id).filter(WorkEntry.client_id.in_(ids)).all()
        ]

        if invoice_ids:
            db.query(InvoiceItem).filter(
                InvoiceItem.invoice_id.in_(invoice_ids)
            ).delete(synchronize_session=False)

        if work_ids:
            db.query(InvoiceItem).filter(
                InvoiceItem.work_entry_id.in_(work_ids)
            ).delete(synchronize_session=False)
            db.query(WorkEntry).filter(
                WorkEntry.id.in_(work_ids)
            ).delete(synchronize_session=False)

        db.query(PaymentEntry).filter(
            PaymentEntry.client_id.in_(ids)
        ).delete(synchronize_session=False)

        if invoice_ids:
            # Entries of other clients may still point at these invoices
            db.query(WorkEntry).filter(
                WorkEntry.invoice_id.in_(invoice_ids)
            ).update({WorkEntry.invoice_id: None}, synchronize_session=False)
            db.query(Invoice).filter(
                Invoice.id.in_(invoice_ids)
            ).delete(synchronize_session=False)

        deleted = (
            db.query(Client)
            .filter(Client.id.in_(ids))
            .delete(synchronize_session=False)
        )

        db.commit()
    except Exception:
        db.rollback()
        raise

    return deleted
