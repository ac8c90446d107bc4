from fastapi import HTTPException
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_client_or_404
from billing_app.models.enums import PaymentMedium
from billing_app.models.payment import PaymentEntry
from billing_app.schemas.payment import PaymentCreate, PaymentUpdate
from billing_app.services.pricing_service import round_money


def normalize_medium(value: str | None) -> PaymentMedium:
    cleaned = "".join(
        ch for ch in (value or "").strip().lower() if ch not in " _-\t"
    )

    if cleaned.startswith("bkash"):
        return PaymentMedium.BKASH
    if cleaned.startswith("nagad"):
        return PaymentMedium.NAGAD
    if cleaned.startswith("bank"):
        return PaymentMedium.BANK
    if cleaned == "cash":
        return PaymentMedium.CASH
    return PaymentMedium.OTHER


def get_payment_or_404(payment_id: int, db: Session) -> PaymentEntry:
    payment = db.query(PaymentEntry).filter(PaymentEntry.id == payment_id).first()

    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")

    return payment


def record_payment(payload: PaymentCreate, db: Session) -> PaymentEntry:
    client = get_client_or_404(payload.client_id, db)

    amount = round_money(payload.amount)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="amount must be > 0")

    payment = PaymentEntry(
        client_id=client.id,
        date=payload.date,
        amount=amount,
        medium=normalize_medium(payload.medium).value,
        note=(payload.note or "").strip() or None,
    )

    db.add(payment)
    db.commit()
    db.refresh(payment)

    return payment


def update_payment(payment_id: int, payload: PaymentUpdate, db: Session) -> PaymentEntry:
    payment = get_payment_or_404(payment_id, db)
    patch = payload.model_dump(exclude_unset=True)

    if patch.get("date") is not None:
        payment.date = patch["date"]

    if "amount" in patch:
        amount = round_money(patch["amount"])
        if amount <= 0:
            raise HTTPException(status_code=400, detail="amount must be > 0")
        payment.amount = amount

    if patch.get("medium") is not None:
        payment.medium = normalize_medium(patch["medium"]).value

    if "note" in patch:
        payment.note = (patch["note"] or "").strip() or None

    db.commit()
    db.refresh(payment)

    return payment


def delete_payment(payment_id: int, db: Session) -> None:
    payment = get_payment_or_404(payment_id, db)
    db.delete(payment)
    db.commit()


def list_payments(client_id: int, db: Session) -> list[PaymentEntry]:
    get_client_or_404(client_id, db)

    return (
        db.query(PaymentEntry)
        .filter(PaymentEntry.client_id == client_id)
        .order_by(PaymentEntry.date.desc(), PaymentEntry.id.desc())
        .all()
    )
