from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from billing_app.db.base import Base
from billing_app.models.enums import PricingMode, WorkStatus


class WorkEntry(Base):
    __tablename__ = "work_entries"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    project_name = Column(String, nullable=False, default="")
    variant_label = Column(String, nullable=True)
    status = Column(String, nullable=False, default=WorkStatus.PROCESSING.value)

    pricing_mode = Column(String, nullable=False, default=PricingMode.AUTO.value)
    charged_by_snapshot = Column(String, nullable=False)

    # Null exactly when charged_by_snapshot is "project"
    duration_seconds = Column(Integer, nullable=True)
    units = Column(Float, nullable=False, default=0)

    rate_snapshot = Column(Float, nullable=True)
    amount_due = Column(Float, nullable=False, default=0)
    override_reason = Column(Text, nullable=True)

    note = Column(Text, nullable=True)
    delivered_at = Column(DateTime, nullable=True)

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    client = relationship("Client")
    invoice = relationship("Invoice", back_populates="work_entries")
