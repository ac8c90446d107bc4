from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from billing_app.db.base import Base


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    work_entry_id = Column(Integer, ForeignKey("work_entries.id"), nullable=True)

    description = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    rate = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    invoice = relationship("Invoice", back_populates="items")
