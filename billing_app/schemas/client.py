import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from billing_app.models.enums import ChargedBy, ClientStatus


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    charged_by: ChargedBy = ChargedBy.MINUTE
    rate: float = Field(default=0, ge=0)
    status: ClientStatus = ClientStatus.ACTIVE
    contact_name: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[dt.date] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    charged_by: Optional[ChargedBy] = None
    rate: Optional[float] = Field(default=None, ge=0)
    status: Optional[ClientStatus] = None
    contact_name: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[dt.date] = None


class ClientResponse(BaseModel):
    id: int
    name: str
    charged_by: ChargedBy
    rate: float
    status: ClientStatus
    contact_name: Optional[str] = None
    designation: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class BulkDeleteRequest(BaseModel):
    ids: list[int]
