import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from billing_app.models.enums import PaymentMedium


class PaymentCreate(BaseModel):
    client_id: int
    date: dt.date
    amount: float = Field(..., gt=0)
    medium: str = Field(..., min_length=1)
    note: Optional[str] = None


class PaymentUpdate(BaseModel):
    date: Optional[dt.date] = None
    amount: Optional[float] = Field(default=None, gt=0)
    medium: Optional[str] = None
    note: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    client_id: int
    date: dt.date
    amount: float
    medium: PaymentMedium
    note: Optional[str] = None

    class Config:
        from_attributes = True
