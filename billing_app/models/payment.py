from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from billing_app.db.base import Base
from billing_app.models.enums import PaymentMedium


class PaymentEntry(Base):
    __tablename__ = "payment_entries"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False)
    medium = Column(String, nullable=False, default=PaymentMedium.OTHER.value)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    client = relationship("Client")
