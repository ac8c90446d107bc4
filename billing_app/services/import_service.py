import csv
import datetime as dt
import io
import math
import re
from datetime import datetime, time
from typing import Any, Iterable

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billing_app.core.logging import get_logger
from billing_app.models.enums import ChargedBy, ClientStatus, PricingMode, WorkStatus
from billing_app.models.payment import PaymentEntry
from billing_app.models.work_entry import WorkEntry
from billing_app.services.client_service import find_client_by_name, upsert_client_by_name
from billing_app.services.duration_service import resolve_quantity
from billing_app.services.payment_service import normalize_medium
from billing_app.services.pricing_service import round_money
from billing_app.services.work_service import price_work_fields


logger = get_logger("import")


REQUIRED = {
    "clients": ["name"],
    "work": ["client_name", "work_name"],
    "payments": ["client_name", "amount"],
}

OPTIONAL = {
    "clients": [
        "charged_by", "rate", "status", "contact_name", "designation",
        "email", "phone", "note", "created_at",
    ],
    "work": [
        "basis", "rate", "minutes", "seconds", "duration_seconds", "units",
        "amount", "manual_rate", "pricing_mode", "status", "date",
        "delivered_at", "note", "variant_label",
    ],
    "payments": ["date", "medium", "note"],
}

# canonical field -> accepted header synonyms
ALIASES = {
    "name": ["name", "client", "client_name"],
    "charged_by": ["charged_by", "basis", "chargedby"],
    "rate": ["rate", "default_rate", "client_rate", "price"],
    "status": ["status", "client_status"],
    "contact_name": ["contact_name", "contact", "person", "contactname"],
    "designation": ["designation", "title", "role", "position"],
    "email": ["email", "mail", "e_mail"],
    "phone": ["phone", "mobile", "telephone", "cell", "contact_phone"],
    "note": ["note", "notes", "remarks", "comment"],
    "created_at": ["created_at", "client_date", "date", "joined_on"],
    "client_name": ["client_name", "client", "customer", "account"],
    "work_name": ["work_name", "work", "project_name", "project", "task"],
    "basis": ["basis", "charged_by", "charged_by_snapshot"],
    "minutes": ["minutes", "mins"],
    "seconds": ["seconds", "secs"],
    "duration_seconds": ["duration_seconds", "duration", "total_seconds", "time_seconds"],
    "units": ["units", "project_units", "qty", "quantity"],
    "amount": ["amount", "total", "manual_total", "price_total", "paid", "payment", "value"],
    "manual_rate": ["manual_rate", "custom_rate"],
    "pricing_mode": ["pricing_mode", "mode"],
    "date": ["date", "work_date"],
    "delivered_at": ["delivered_at", "delivered", "delivery_date"],
    "variant_label": ["variant_label", "variant", "work_variant", "label"],
    "medium": ["medium", "method", "channel"],
}

# per-type overrides of the shared table
TYPE_ALIASES = {
    "payments": {
        "amount": ["amount", "paid", "payment", "value"],
        "date": ["date", "payment_date", "paid_on"],
    },
}

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y", "%d %B %Y", "%d %b %Y")


# =========================
# HEADER MAPPING
# =========================

def normalize_header(value: Any) -> str:
    text = str(value if value is not None else "").strip().lower()
    text = re.sub(r"\s+", "_", text)
    return re.sub(r"[^\w]", "", text)


def aliases_for(kind: str, field: str) -> list[str]:
    return TYPE_ALIASES.get(kind, {}).get(field) or ALIASES.get(field) or [field]


def find_header(headers: Iterable[str], candidates: list[str]) -> str | None:
    normalized = [(header, normalize_header(header)) for header in headers]

    for candidate in candidates:
        wanted = normalize_header(candidate)
        for raw, norm in normalized:
            if norm == wanted:
                return raw

    return None


def suggest_mapping(kind: str, headers: list[str]) -> dict[str, str]:
    """Suggest a canonical field -> header mapping for one import type."""
    mapping = {}
    used = set()

    for field in REQUIRED[kind] + OPTIONAL[kind]:
        available = [header for header in headers if header not in used]
        header = find_header(available, aliases_for(kind, field))
        if header is not None:
            mapping[field] = header
            used.add(header)

    return mapping


def parse_csv(text: str) -> tuple[list[str], list[dict[str, str]]]:
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    headers = [header for header in (reader.fieldnames or []) if header is not None]
    records = [
        {key: value for key, value in record.items() if key is not None}
        for record in reader
    ]
    return headers, records


def apply_mapping(records: Iterable[dict], mapping: dict[str, str]) -> list[dict]:
    return [
        {field: record.get(header) for field, header in mapping.items()}
        for record in records
    ]


# =========================
# CELL COERCION
# =========================

def clean_str(value: Any) -> str | None:
    text = str(value if value is not None else "").strip()
    return text or None


def to_number(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
    else:
        try:
            number = float(str(value if value is not None else "").replace(",", "").strip() or 0)
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


def to_optional_number(value: Any) -> float | None:
    if clean_str(value) is None:
        return None
    return to_number(value)


def as_date(value: Any) -> dt.date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value

    raw = clean_str(value)
    if not raw:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def norm_basis(value: Any, default: ChargedBy = ChargedBy.MINUTE) -> ChargedBy:
    try:
        return ChargedBy(str(value or "").strip().lower())
    except ValueError:
        return default


def norm_client_status(value: Any) -> ClientStatus:
    try:
        return ClientStatus(str(value or "").strip().lower())
    except ValueError:
        return ClientStatus.ACTIVE


def norm_work_status(value: Any) -> WorkStatus:
    if str(value or "").strip().lower() == WorkStatus.PROCESSING.value:
        return WorkStatus.PROCESSING
    return WorkStatus.DELIVERED


def norm_pricing_mode(value: Any) -> PricingMode | None:
    try:
        return PricingMode(str(value or "").strip().lower())
    except ValueError:
        return None


# =========================
# ROW HANDLERS
# =========================

def _new_result(kind: str) -> dict:
    return {"type": kind, "inserted": 0, "updated": 0, "skipped": 0, "errors": []}


def _skip(result: dict, message: str) -> None:
    result["skipped"] += 1
    result["errors"].append(message)
    logger.debug("Import row skipped: %s", message)


def _row_label(kind: str, row: dict) -> str:
    if kind == "clients":
        return clean_str(row.get("name")) or "unnamed client"

    client_name = clean_str(row.get("client_name")) or "unknown client"
    if kind == "work":
        return f'{client_name} / "{clean_str(row.get("work_name")) or ""}"'
    return client_name


def _import_client_row(row: dict, db: Session, result: dict) -> None:
    name = clean_str(row.get("name"))
    if not name:
        _skip(result, "Client row skipped (missing name)")
        return

    values = {
        "charged_by": norm_basis(row.get("charged_by")).value,
        "rate": to_number(row.get("rate")),
        "status": norm_client_status(row.get("status")).value,
        "contact_name": clean_str(row.get("contact_name")),
        "designation": clean_str(row.get("designation")),
        "email": clean_str(row.get("email")),
        "phone": clean_str(row.get("phone")),
        "note": clean_str(row.get("note")),
    }

    created_at = as_date(row.get("created_at"))
    if created_at:
        values["created_at"] = datetime.combine(created_at, time.min)

    _, created = upsert_client_by_name(name, values, db)
    db.commit()

    if created:
        result["inserted"] += 1
    else:
        result["updated"] += 1


def _import_work_row(
    row: dict,
    db: Session,
    result: dict,
    create_missing_clients: bool,
) -> None:
    client_name = clean_str(row.get("client_name"))
    work_name = clean_str(row.get("work_name"))
    if not client_name or not work_name:
        _skip(result, "Work row skipped (needs client_name and work_name)")
        return

    client = find_client_by_name(client_name, db)
    if client is None and not create_missing_clients:
        _skip(result, f'Work skipped (client "{client_name}" missing)')
        return

    row_rate = to_optional_number(row.get("rate"))
    default_basis = ChargedBy(client.charged_by) if client else ChargedBy.MINUTE
    basis = norm_basis(row.get("basis"), default=default_basis)

    manual_total = to_number(row.get("amount"))
    pricing_mode = norm_pricing_mode(row.get("pricing_mode")) or (
        PricingMode.MANUAL_TOTAL if manual_total > 0 else PricingMode.AUTO
    )

    minutes = to_number(row.get("minutes"))
    seconds = to_number(row.get("seconds"))
    duration_seconds = to_number(row.get("duration_seconds")) or None
    if duration_seconds is None and basis == ChargedBy.SECOND:
        # a second-basis sheet carries the whole duration in one cell
        duration_seconds = (seconds or minutes) or None

    quantity = resolve_quantity(
        basis,
        minutes=minutes,
        seconds=seconds,
        duration_seconds=duration_seconds,
        units=to_number(row.get("units")),
    )

    if (
        basis != ChargedBy.PROJECT
        and not quantity.duration_seconds
        and pricing_mode != PricingMode.MANUAL_TOTAL
    ):
        _skip(
            result,
            f'Work skipped ({client_name} / "{work_name}") - '
            "duration_seconds required for time-based pricing",
        )
        return

    if client is not None:
        client_rate = row_rate if row_rate is not None else client.rate
    else:
        client_rate = row_rate or 0.0

    fields = price_work_fields(
        basis,
        pricing_mode,
        client_rate=client_rate,
        duration_seconds=quantity.duration_seconds,
        units=quantity.units,
        manual_rate=to_optional_number(row.get("manual_rate")),
        manual_total=to_optional_number(row.get("amount")),
    )

    if client is None:
        client, _ = upsert_client_by_name(
            client_name,
            {
                "charged_by": basis.value,
                "rate": row_rate or 0.0,
                "status": ClientStatus.ACTIVE.value,
            },
            db,
        )

    date = as_date(row.get("date")) or dt.date.today()
    delivered_raw = row.get("delivered_at")
    status = norm_work_status(
        clean_str(row.get("status"))
        or (WorkStatus.DELIVERED.value if clean_str(delivered_raw) else WorkStatus.PROCESSING.value)
    )

    delivered_at = None
    if status == WorkStatus.DELIVERED:
        delivered_at = datetime.combine(as_date(delivered_raw) or date, time.min)

    variant_label = clean_str(
        row.get("variant_label") or row.get("work_variant") or row.get("variant")
    )

    db.add(
        WorkEntry(
            client_id=client.id,
            date=date,
            project_name=work_name,
            status=status.value,
            delivered_at=delivered_at,
            note=clean_str(row.get("note")),
            variant_label=variant_label,
            **fields,
        )
    )
    db.commit()
    result["inserted"] += 1


def _import_payment_row(
    row: dict,
    db: Session,
    result: dict,
    create_missing_clients: bool,
) -> None:
    client_name = clean_str(row.get("client_name"))
    amount = to_number(row.get("amount"))
    if not client_name or amount <= 0:
        _skip(result, "Payment row skipped (needs client_name and a positive amount)")
        return

    client = find_client_by_name(client_name, db)
    if client is None:
        if not create_missing_clients:
            _skip(result, f'Payment skipped (client "{client_name}" missing)')
            return
        client, _ = upsert_client_by_name(client_name, {}, db)

    db.add(
        PaymentEntry(
            client_id=client.id,
            date=as_date(row.get("date")) or dt.date.today(),
            amount=round_money(amount),
            medium=normalize_medium(clean_str(row.get("medium"))).value,
            note=clean_str(row.get("note")),
        )
    )
    db.commit()
    result["inserted"] += 1


# =========================
# ENTRY POINTS
# =========================

def import_rows(
    kind: str,
    rows: list[dict[str, Any]],
    db: Session,
    create_missing_clients: bool = False,
) -> dict:
    """Import canonical-keyed rows; every row is attempted independently."""
    if kind not in REQUIRED:
        raise HTTPException(status_code=400, detail=f"Unknown import type: {kind}")

    result = _new_result(kind)

    for index, row in enumerate(rows, start=1):
        try:
            if kind == "clients":
                _import_client_row(row, db, result)
            elif kind == "work":
                _import_work_row(row, db, result, create_missing_clients)
            else:
                _import_payment_row(row, db, result, create_missing_clients)
        except HTTPException as exc:
            db.rollback()
            _skip(result, f"Row {index} skipped ({_row_label(kind, row)}): {exc.detail}")
        except (SQLAlchemyError, OverflowError) as exc:
            # drivers raise OverflowError unwrapped for out-of-range integers
            db.rollback()
            _skip(result, f"Row {index} failed ({_row_label(kind, row)}): {exc}")

    logger.info(
        "Imported %s: inserted=%d updated=%d skipped=%d",
        kind, result["inserted"], result["updated"], result["skipped"],
    )

    return result


def import_csv(
    kind: str,
    csv_text: str,
    db: Session,
    mapping: dict[str, str] | None = None,
    create_missing_clients: bool = False,
) -> dict:
    if kind not in REQUIRED:
        raise HTTPException(status_code=400, detail=f"Unknown import type: {kind}")

    headers, records = parse_csv(csv_text)
    if not headers:
        raise HTTPException(status_code=400, detail="CSV has no header row")

    if mapping is None:
        mapping = suggest_mapping(kind, headers)

    unknown = sorted(set(mapping.values()) - set(headers))
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Mapped headers not found in CSV: {', '.join(unknown)}",
        )

    return import_rows(
        kind,
        apply_mapping(records, mapping),
        db,
        create_missing_clients=create_missing_clients,
    )
