from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


ImportType = Literal["clients", "work", "payments"]


class BulkUploadRequest(BaseModel):
    type: ImportType
    rows: list[dict[str, Any]]
    create_missing_clients: bool = False


class CsvUploadRequest(BaseModel):
    type: ImportType
    csv_text: str = Field(..., min_length=1)
    # canonical field -> header in the CSV; suggested from headers when omitted
    mapping: Optional[dict[str, str]] = None
    create_missing_clients: bool = False


class MappingSuggestRequest(BaseModel):
    type: ImportType
    headers: list[str]


class BulkUploadResult(BaseModel):
    type: ImportType
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
