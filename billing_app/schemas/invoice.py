import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class InvoiceCompose(BaseModel):
    client_id: int
    work_ids: list[int]
    issue_date: dt.date
    number: Optional[int] = Field(default=None, ge=1)
    from_text: str = ""
    payment_text: str = ""
    remember_defaults: bool = False


class InvoiceComposed(BaseModel):
    id: int
    number: int


class InvoiceItemResponse(BaseModel):
    id: int
    work_entry_id: Optional[int] = None
    description: str
    quantity: int
    rate: float
    amount: float
    sort_order: int

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    number: int
    client_id: int
    issue_date: dt.date
    bill_to: Optional[str] = None
    from_text: Optional[str] = None
    payment_text: Optional[str] = None
    currency: str
    subtotal: float
    total: float
    items: list[InvoiceItemResponse]

    class Config:
        from_attributes = True


class InvoiceSettingsUpdate(BaseModel):
    from_text: Optional[str] = None
    payment_text: Optional[str] = None
    currency: Optional[str] = None
    next_number: Optional[int] = Field(default=None, ge=1)


class InvoiceSettingsResponse(BaseModel):
    next_number: int
    from_text: Optional[str] = None
    payment_text: Optional[str] = None
    currency: str

    class Config:
        from_attributes = True
