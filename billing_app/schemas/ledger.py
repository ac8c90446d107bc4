import datetime as dt
from typing import Optional

from pydantic import BaseModel

from billing_app.schemas.client import ClientResponse


class ClientLedger(BaseModel):
    client_id: int
    client_name: str
    status: str
    delivered_sum: float
    payments_sum: float
    dues: float
    earnings: float
    projects_count: int
    processing_count: int
    active_days: int
    last_delivered_at: Optional[dt.datetime] = None


class GlobalLedger(BaseModel):
    total_delivered: float
    total_payments: float
    total_dues: float
    total_earnings: float
    projects_count: int
    processing_count: int
    clients_by_status: dict[str, int]


class LedgerReport(BaseModel):
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None
    rows: list[ClientLedger]
    summary: GlobalLedger


class ClientDetail(BaseModel):
    client: ClientResponse
    summary: ClientLedger
