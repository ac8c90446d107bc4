from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from billing_app.core.dependencies import get_db
from billing_app.schemas.bulk import (
    BulkUploadRequest,
    BulkUploadResult,
    CsvUploadRequest,
    MappingSuggestRequest,
)
from billing_app.services.audit_service import log_action
from billing_app.services.import_service import import_csv, import_rows, suggest_mapping

router = APIRouter(prefix="/bulk-upload", tags=["Bulk Upload"])


def _respond(result: dict, db: Session) -> JSONResponse:
    log_action(
        db=db,
        action="BULK_UPLOAD",
        entity_type="Import",
        details=(
            f"Type: {result['type']} | Inserted: {result['inserted']} | "
            f"Updated: {result['updated']} | Skipped: {result['skipped']}"
        )
    )

    body = BulkUploadResult(**result).model_dump()
    return JSONResponse(content=body, status_code=207 if result["errors"] else 200)


@router.post("", response_model=BulkUploadResult)
def upload_rows(payload: BulkUploadRequest, db: Session = Depends(get_db)):
    result = import_rows(
        payload.type,
        payload.rows,
        db,
        create_missing_clients=payload.create_missing_clients,
    )
    return _respond(result, db)


@router.post("/csv", response_model=BulkUploadResult)
def upload_csv(payload: CsvUploadRequest, db: Session = Depends(get_db)):
    result = import_csv(
        payload.type,
        payload.csv_text,
        db,
        mapping=payload.mapping,
        create_missing_clients=payload.create_missing_clients,
    )
    return _respond(result, db)


@router.post("/suggest-mapping")
def get_mapping_suggestion(payload: MappingSuggestRequest):
    return {"type": payload.type, "mapping": suggest_mapping(payload.type, payload.headers)}
