from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate
from billing_app.services.audit_service import log_action
from billing_app.services.payment_service import (
    delete_payment,
    record_payment,
    update_payment,
)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=PaymentResponse)
def add_payment(payload: PaymentCreate, db: Session = Depends(get_db)):
    payment = record_payment(payload, db)

    log_action(
        db=db,
        action="ADD_PAYMENT",
        entity_type="Client",
        entity_id=payment.client_id,
        details=f"Payment added: {payment.amount} | Medium: {payment.medium}"
    )

    return payment


@router.patch("/{payment_id}", response_model=PaymentResponse)
def edit_payment(payment_id: int, payload: PaymentUpdate, db: Session = Depends(get_db)):
    payment = update_payment(payment_id, payload, db)

    log_action(
        db=db,
        action="UPDATE_PAYMENT",
        entity_type="PaymentEntry",
        entity_id=payment.id,
        details=f"Amount: {payment.amount} | Medium: {payment.medium}"
    )

    return payment


@router.delete("/{payment_id}")
def remove_payment(payment_id: int, db: Session = Depends(get_db)):
    delete_payment(payment_id, db)

    log_action(
        db=db,
        action="DELETE_PAYMENT",
        entity_type="PaymentEntry",
        entity_id=payment_id,
    )

    return {"ok": True}
