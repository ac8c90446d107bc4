from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from billing_app.db.base import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(Integer, unique=True, nullable=False, index=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)

    issue_date = Column(Date, nullable=False)
    bill_to = Column(Text, nullable=True)
    from_text = Column(Text, nullable=True)
    payment_text = Column(Text, nullable=True)
    currency = Column(String, nullable=False)

    subtotal = Column(Float, default=0)
    total = Column(Float, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.sort_order",
    )

    work_entries = relationship("WorkEntry", back_populates="invoice")
