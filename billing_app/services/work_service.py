import datetime as dt
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_client_or_404
from billing_app.models.client import Client
from billing_app.models.enums import ChargedBy, PricingMode, WorkStatus
from billing_app.models.invoice_item import InvoiceItem
from billing_app.models.work_entry import WorkEntry
from billing_app.schemas.work import (
    WorkEntryCreate,
    WorkEntryUpdate,
    WorkPricingInput,
    WorkVariantsCreate,
)
from billing_app.services.duration_service import resolve_quantity
from billing_app.services.pricing_service import resolve_price


# work_entries.duration_seconds is a 32-bit INTEGER column
MAX_DURATION_SECONDS = 2_147_483_647


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def price_work_fields(
    basis: ChargedBy,
    pricing_mode: PricingMode,
    client_rate: float | None,
    minutes: float | None = None,
    seconds: float | None = None,
    duration_seconds: float | None = None,
    units: float | None = None,
    manual_rate: float | None = None,
    manual_total: float | None = None,
) -> dict[str, Any]:
    """Run the duration and pricing rules and return the stored pricing columns."""
    basis = ChargedBy(basis)
    pricing_mode = PricingMode(pricing_mode)

    quantity = resolve_quantity(
        basis,
        minutes=minutes,
        seconds=seconds,
        duration_seconds=duration_seconds,
        units=units,
    )

    if (
        basis != ChargedBy.PROJECT
        and pricing_mode != PricingMode.MANUAL_TOTAL
        and not quantity.has_duration
    ):
        raise HTTPException(
            status_code=400,
            detail="Duration is required for time-based pricing",
        )

    if (quantity.duration_seconds or 0) > MAX_DURATION_SECONDS:
        raise HTTPException(
            status_code=400,
            detail="duration_seconds is out of range",
        )

    price = resolve_price(
        pricing_mode,
        quantity.units,
        client_rate=client_rate,
        manual_rate=manual_rate,
        manual_total=manual_total,
    )

    return {
        "charged_by_snapshot": basis.value,
        "pricing_mode": pricing_mode.value,
        "duration_seconds": quantity.duration_seconds,
        "units": quantity.units,
        "rate_snapshot": price.rate_snapshot,
        "amount_due": price.amount_due,
    }


def resolve_delivery(
    status: WorkStatus | None,
    delivered_at: datetime | None,
    current_delivered_at: datetime | None = None,
) -> tuple[str, datetime | None]:
    if status is None:
        status = WorkStatus.DELIVERED if delivered_at else WorkStatus.PROCESSING

    if WorkStatus(status) == WorkStatus.PROCESSING:
        return WorkStatus.PROCESSING.value, None

    return (
        WorkStatus.DELIVERED.value,
        delivered_at or current_delivered_at or datetime.utcnow(),
    )


def _build_entry(
    client: Client,
    pricing: WorkPricingInput,
    date: dt.date | None,
    project_name: str,
    note: str | None,
    status: WorkStatus | None,
    delivered_at: datetime | None,
    variant_label: str | None,
) -> WorkEntry:
    basis = pricing.charged_by_snapshot or ChargedBy(client.charged_by)

    fields = price_work_fields(
        basis,
        pricing.pricing_mode,
        client_rate=client.rate,
        minutes=pricing.minutes,
        seconds=pricing.seconds,
        duration_seconds=pricing.duration_seconds,
        units=pricing.units,
        manual_rate=pricing.manual_rate,
        manual_total=pricing.manual_total,
    )
    status_value, delivered_value = resolve_delivery(status, delivered_at)

    override_reason = None
    if pricing.pricing_mode != PricingMode.AUTO:
        override_reason = _clean(pricing.override_reason)

    return WorkEntry(
        client_id=client.id,
        date=date or dt.date.today(),
        project_name=(project_name or "").strip(),
        variant_label=_clean(variant_label),
        status=status_value,
        delivered_at=delivered_value,
        override_reason=override_reason,
        note=_clean(note),
        **fields,
    )


def get_work_or_404(entry_id: int, db: Session) -> WorkEntry:
    entry = db.query(WorkEntry).filter(WorkEntry.id == entry_id).first()

    if not entry:
        raise HTTPException(status_code=404, detail="Work entry not found")

    return entry


def create_work_entry(client_id: int, payload: WorkEntryCreate, db: Session) -> WorkEntry:
    client = get_client_or_404(client_id, db)

    entry = _build_entry(
        client,
        payload,
        date=payload.date,
        project_name=payload.project_name,
        note=payload.note,
        status=payload.status,
        delivered_at=payload.delivered_at,
        variant_label=payload.variant_label,
    )

    db.add(entry)
    db.commit()
    db.refresh(entry)

    return entry


def create_work_variants(
    client_id: int,
    payload: WorkVariantsCreate,
    db: Session,
) -> list[WorkEntry]:
    """Create sibling entries sharing date, project and note, one per variant."""
    client = get_client_or_404(client_id, db)

    entries = []
    for idx, variant in enumerate(payload.variants):
        try:
            entry = _build_entry(
                client,
                variant,
                date=payload.date,
                project_name=payload.project_name,
                note=payload.note,
                status=payload.status,
                delivered_at=payload.delivered_at,
                variant_label=variant.variant_label or f"Variant {idx + 1}",
            )
        except HTTPException as exc:
            raise HTTPException(
                status_code=exc.status_code,
                detail=f"Variant {idx + 1}: {exc.detail}",
            )
        entries.append(entry)

    try:
        db.add_all(entries)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for entry in entries:
        db.refresh(entry)

    return entries


def update_work_entry(entry_id: int, payload: WorkEntryUpdate, db: Session) -> WorkEntry:
    """Apply an edit and re-price the entry from its own values.

    Auto-priced entries keep the rate captured at creation unless
    ``refresh_rate`` is set or the entry had no auto rate before.
    """
    entry = get_work_or_404(entry_id, db)
    client = get_client_or_404(entry.client_id, db)
    patch = payload.model_dump(exclude_unset=True)

    basis = ChargedBy(patch.get("charged_by_snapshot") or entry.charged_by_snapshot)
    mode = PricingMode(patch.get("pricing_mode") or entry.pricing_mode)
    old_mode = PricingMode(entry.pricing_mode)
    old_basis = ChargedBy(entry.charged_by_snapshot)

    duration_keys = {"minutes", "seconds", "duration_seconds"}
    if duration_keys & patch.keys():
        minutes = patch.get("minutes")
        seconds = patch.get("seconds")
        duration_seconds = patch.get("duration_seconds")
    else:
        minutes = seconds = None
        duration_seconds = entry.duration_seconds

    units = patch.get("units")
    if units is None and old_basis == ChargedBy.PROJECT:
        units = entry.units

    manual_rate = patch.get("manual_rate")
    if manual_rate is None and old_mode == PricingMode.MANUAL_RATE:
        manual_rate = entry.rate_snapshot

    manual_total = patch.get("manual_total")
    if manual_total is None and old_mode == PricingMode.MANUAL_TOTAL:
        manual_total = entry.amount_due

    client_rate = client.rate
    if (
        old_mode == PricingMode.AUTO
        and entry.rate_snapshot is not None
        and not payload.refresh_rate
    ):
        client_rate = entry.rate_snapshot

    fields = price_work_fields(
        basis,
        mode,
        client_rate=client_rate,
        minutes=minutes,
        seconds=seconds,
        duration_seconds=duration_seconds,
        units=units,
        manual_rate=manual_rate,
        manual_total=manual_total,
    )
    for key, value in fields.items():
        setattr(entry, key, value)

    if "status" in patch or "delivered_at" in patch:
        status = patch.get("status")
        if "status" not in patch:
            status = WorkStatus.DELIVERED if patch.get("delivered_at") else entry.status
        entry.status, entry.delivered_at = resolve_delivery(
            status,
            patch.get("delivered_at"),
            current_delivered_at=entry.delivered_at,
        )

    if patch.get("date") is not None:
        entry.date = patch["date"]
    if patch.get("project_name") is not None:
        entry.project_name = patch["project_name"].strip()
    if "note" in patch:
        entry.note = _clean(patch["note"])
    if "variant_label" in patch:
        entry.variant_label = _clean(patch["variant_label"])

    if mode == PricingMode.AUTO:
        entry.override_reason = None
    elif "override_reason" in patch:
        entry.override_reason = _clean(patch["override_reason"])

    db.commit()
    db.refresh(entry)

    return entry


def refresh_entry_rate(entry_id: int, db: Session) -> WorkEntry:
    """Re-price an auto entry from the client's current default rate."""
    entry = get_work_or_404(entry_id, db)

    if entry.pricing_mode != PricingMode.AUTO.value:
        raise HTTPException(
            status_code=400,
            detail="Only auto-priced entries follow the client rate",
        )

    return update_work_entry(entry_id, WorkEntryUpdate(refresh_rate=True), db)


def set_delivery(client_id: int, entry_id: int, delivered: bool, db: Session) -> WorkEntry:
    entry = (
        db.query(WorkEntry)
        .filter(WorkEntry.id == entry_id, WorkEntry.client_id == client_id)
        .first()
    )

    if not entry:
        raise HTTPException(status_code=404, detail="Work entry not found")

    entry.status, entry.delivered_at = resolve_delivery(
        WorkStatus.DELIVERED if delivered else WorkStatus.PROCESSING,
        None,
        current_delivered_at=entry.delivered_at,
    )

    db.commit()
    db.refresh(entry)

    return entry


def delete_work_entry(entry_id: int, db: Session) -> None:
    entry = get_work_or_404(entry_id, db)

    # Invoice lines are snapshots; they survive the entry they came from
    db.query(InvoiceItem).filter(InvoiceItem.work_entry_id == entry.id).update(
        {InvoiceItem.work_entry_id: None}, synchronize_session=False
    )
    db.delete(entry)
    db.commit()


def list_work_entries(
    client_id: int,
    db: Session,
    status: WorkStatus | None = None,
    basis: ChargedBy | None = None,
    mode: PricingMode | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> list[WorkEntry]:
    get_client_or_404(client_id, db)

    query = db.query(WorkEntry).filter(WorkEntry.client_id == client_id)

    if status:
        query = query.filter(WorkEntry.status == WorkStatus(status).value)
    if basis:
        query = query.filter(WorkEntry.charged_by_snapshot == ChargedBy(basis).value)
    if mode:
        query = query.filter(WorkEntry.pricing_mode == PricingMode(mode).value)
    if start:
        query = query.filter(WorkEntry.date >= start)
    if end:
        query = query.filter(WorkEntry.date <= end)

    return query.order_by(WorkEntry.date.desc(), WorkEntry.id.desc()).all()


# =========================
# VARIANT LABELS
# =========================

def list_variant_counts(client_id: int, db: Session) -> list[dict]:
    get_client_or_404(client_id, db)

    rows = (
        db.query(WorkEntry.variant_label, func.count(WorkEntry.id).label("count"))
        .filter(
            WorkEntry.client_id == client_id,
            WorkEntry.variant_label.isnot(None),
            WorkEntry.variant_label != "",
        )
        .group_by(WorkEntry.variant_label)
        .all()
    )

    return sorted(
        ({"label": r.variant_label, "count": r.count} for r in rows),
        key=lambda row: row["label"],
    )


def rename_variant(client_id: int, old_label: str, new_label: str, db: Session) -> int:
    get_client_or_404(client_id, db)

    new_label = new_label.strip()
    if not new_label:
        raise HTTPException(status_code=400, detail="new_label is required")

    updated = (
        db.query(WorkEntry)
        .filter(WorkEntry.client_id == client_id, WorkEntry.variant_label == old_label)
        .update({WorkEntry.variant_label: new_label}, synchronize_session=False)
    )
    db.commit()

    return updated


def clear_variant(client_id: int, label: str, db: Session) -> int:
    get_client_or_404(client_id, db)

    updated = (
        db.query(WorkEntry)
        .filter(WorkEntry.client_id == client_id, WorkEntry.variant_label == label)
        .update({WorkEntry.variant_label: None}, synchronize_session=False)
    )
    db.commit()

    return updated
