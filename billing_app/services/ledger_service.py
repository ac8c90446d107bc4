import datetime as dt
from collections import defaultdict
from typing import Iterable, Mapping

from sqlalchemy import func
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_client_or_404
from billing_app.models.client import Client
from billing_app.models.enums import ClientStatus, WorkStatus
from billing_app.models.payment import PaymentEntry
from billing_app.models.work_entry import WorkEntry
from billing_app.services.pricing_service import round_money


# =====================================================
# FOLDS (pure; rows only need the attributes they read)
# =====================================================

def compute_dues(delivered_sum: float, payments_sum: float) -> float:
    return round_money(max(0.0, delivered_sum - payments_sum))


def compute_earnings(payments_sum: float, dues: float) -> float:
    return round_money(max(0.0, payments_sum - dues))


def summarize_client(
    client: Client,
    works: Iterable[WorkEntry],
    payments: Iterable[PaymentEntry],
    active_days: int = 0,
) -> dict:
    delivered_sum = 0.0
    projects_count = 0
    processing_count = 0
    last_delivered_at = None

    for work in works:
        if work.status != WorkStatus.DELIVERED.value:
            processing_count += 1
            continue

        delivered_sum = round_money(delivered_sum + (work.amount_due or 0))
        projects_count += 1

        if work.delivered_at and (
            last_delivered_at is None or work.delivered_at > last_delivered_at
        ):
            last_delivered_at = work.delivered_at

    payments_sum = 0.0
    for payment in payments:
        payments_sum = round_money(payments_sum + (payment.amount or 0))

    dues = compute_dues(delivered_sum, payments_sum)

    return {
        "client_id": client.id,
        "client_name": client.name,
        "status": client.status,
        "delivered_sum": delivered_sum,
        "payments_sum": payments_sum,
        "dues": dues,
        "earnings": compute_earnings(payments_sum, dues),
        "projects_count": projects_count,
        "processing_count": processing_count,
        "active_days": int(active_days or 0),
        "last_delivered_at": last_delivered_at,
    }


def summarize_global(rows: Iterable[dict], clients: Iterable[Client] = ()) -> dict:
    """Combine per-client summaries; each client's dues are already clamped."""
    total_delivered = 0.0
    total_payments = 0.0
    total_dues = 0.0
    projects_count = 0
    processing_count = 0

    for row in rows:
        total_delivered = round_money(total_delivered + row["delivered_sum"])
        total_payments = round_money(total_payments + row["payments_sum"])
        total_dues = round_money(total_dues + row["dues"])
        projects_count += row["projects_count"]
        processing_count += row["processing_count"]

    clients_by_status = {status.value: 0 for status in ClientStatus}
    for client in clients:
        clients_by_status[client.status] = clients_by_status.get(client.status, 0) + 1

    return {
        "total_delivered": total_delivered,
        "total_payments": total_payments,
        "total_dues": total_dues,
        "total_earnings": compute_earnings(total_payments, total_dues),
        "projects_count": projects_count,
        "processing_count": processing_count,
        "clients_by_status": clients_by_status,
    }


# =====================================================
# QUERIES
# =====================================================

def active_days_by_client(
    db: Session,
    client_ids: list[int] | None = None,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> dict[int, int]:
    """Inclusive day span between first and last delivered work date per client."""
    query = (
        db.query(
            WorkEntry.client_id,
            func.min(WorkEntry.date).label("first_date"),
            func.max(WorkEntry.date).label("last_date"),
        )
        .filter(WorkEntry.status == WorkStatus.DELIVERED.value)
    )

    if client_ids is not None:
        query = query.filter(WorkEntry.client_id.in_(client_ids))
    if start:
        query = query.filter(WorkEntry.date >= start)
    if end:
        query = query.filter(WorkEntry.date <= end)

    result = {}
    for row in query.group_by(WorkEntry.client_id).all():
        if row.first_date and row.last_date:
            result[row.client_id] = (row.last_date - row.first_date).days + 1

    return result


def _scoped_rows(db: Session, model, start: dt.date | None, end: dt.date | None):
    query = db.query(model)

    if start:
        query = query.filter(model.date >= start)
    if end:
        query = query.filter(model.date <= end)

    grouped = defaultdict(list)
    for row in query.all():
        grouped[row.client_id].append(row)

    return grouped


def build_client_rows(
    clients: Iterable[Client],
    works_by_client: Mapping[int, list],
    payments_by_client: Mapping[int, list],
    active_days: Mapping[int, int],
) -> list[dict]:
    rows = [
        summarize_client(
            client,
            works_by_client.get(client.id, []),
            payments_by_client.get(client.id, []),
            active_days.get(client.id, 0),
        )
        for client in clients
    ]

    return sorted(rows, key=lambda row: (-row["dues"], row["client_name"].lower()))


def ledger_report(
    db: Session,
    start: dt.date | None = None,
    end: dt.date | None = None,
) -> dict:
    """Per-client and global summaries, optionally limited to a date range."""
    clients = db.query(Client).order_by(Client.name.asc()).all()

    rows = build_client_rows(
        clients,
        _scoped_rows(db, WorkEntry, start, end),
        _scoped_rows(db, PaymentEntry, start, end),
        active_days_by_client(db, start=start, end=end),
    )

    return {
        "start": start,
        "end": end,
        "rows": rows,
        "summary": summarize_global(rows, clients),
    }


def client_summary(client_id: int, db: Session) -> dict:
    """Lifetime summary for one client."""
    client = get_client_or_404(client_id, db)

    works = db.query(WorkEntry).filter(WorkEntry.client_id == client_id).all()
    payments = db.query(PaymentEntry).filter(PaymentEntry.client_id == client_id).all()
    active_days = active_days_by_client(db, client_ids=[client_id])

    return {
        "client": client,
        "summary": summarize_client(
            client, works, payments, active_days.get(client_id, 0)
        ),
    }
