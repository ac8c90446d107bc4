from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from billing_app.db.base import Base


class InvoiceSettings(Base):
    """Single-row table (id = 1) holding invoice defaults and the number counter."""

    __tablename__ = "invoice_settings"

    id = Column(Integer, primary_key=True)

    next_number = Column(Integer, nullable=False)
    from_text = Column(Text, nullable=True)
    payment_text = Column(Text, nullable=True)
    currency = Column(String, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
