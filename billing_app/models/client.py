from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text

from billing_app.db.base import Base
from billing_app.models.enums import ChargedBy, ClientStatus


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True, index=True)

    charged_by = Column(String, nullable=False, default=ChargedBy.MINUTE.value)
    rate = Column(Float, nullable=False, default=0)
    status = Column(String, nullable=False, default=ClientStatus.ACTIVE.value)

    contact_name = Column(String, nullable=True)
    designation = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
