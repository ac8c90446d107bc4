import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from billing_app.models.enums import ChargedBy, PricingMode, WorkStatus


class WorkPricingInput(BaseModel):
    """Raw basis/duration/pricing fields as typed into the work form."""

    charged_by_snapshot: Optional[ChargedBy] = None
    pricing_mode: PricingMode = PricingMode.AUTO

    minutes: Optional[float] = None
    seconds: Optional[float] = None
    duration_seconds: Optional[float] = None
    units: Optional[float] = None

    manual_rate: Optional[float] = None
    manual_total: Optional[float] = None
    override_reason: Optional[str] = None
    variant_label: Optional[str] = None


class WorkEntryCreate(WorkPricingInput):
    date: Optional[dt.date] = None
    project_name: str = ""
    note: Optional[str] = None
    status: Optional[WorkStatus] = None
    delivered_at: Optional[dt.datetime] = None


class WorkVariantsCreate(BaseModel):
    date: Optional[dt.date] = None
    project_name: str = ""
    note: Optional[str] = None
    status: Optional[WorkStatus] = None
    delivered_at: Optional[dt.datetime] = None
    variants: list[WorkPricingInput] = Field(..., min_length=1, max_length=50)


class WorkEntryUpdate(BaseModel):
    date: Optional[dt.date] = None
    project_name: Optional[str] = None
    charged_by_snapshot: Optional[ChargedBy] = None
    pricing_mode: Optional[PricingMode] = None

    minutes: Optional[float] = None
    seconds: Optional[float] = None
    duration_seconds: Optional[float] = None
    units: Optional[float] = None

    manual_rate: Optional[float] = None
    manual_total: Optional[float] = None
    override_reason: Optional[str] = None

    note: Optional[str] = None
    status: Optional[WorkStatus] = None
    delivered_at: Optional[dt.datetime] = None
    variant_label: Optional[str] = None

    refresh_rate: bool = False


class DeliveryToggle(BaseModel):
    delivered: bool


class VariantRename(BaseModel):
    old_label: str = Field(..., min_length=1)
    new_label: str = Field(..., min_length=1)


class VariantClear(BaseModel):
    label: str = Field(..., min_length=1)


class VariantCount(BaseModel):
    label: str
    count: int


class WorkEntryResponse(BaseModel):
    id: int
    client_id: int
    date: dt.date
    project_name: str
    variant_label: Optional[str] = None
    status: WorkStatus
    pricing_mode: PricingMode
    charged_by_snapshot: ChargedBy
    duration_seconds: Optional[int] = None
    units: float
    rate_snapshot: Optional[float] = None
    amount_due: float
    override_reason: Optional[str] = None
    note: Optional[str] = None
    delivered_at: Optional[dt.datetime] = None
    invoice_id: Optional[int] = None

    class Config:
        from_attributes = True
