import datetime as dt

import pytest
from fastapi import HTTPException

from billing_app.models.enums import ChargedBy, PricingMode, WorkStatus
from billing_app.models.invoice import Invoice
from billing_app.models.invoice_item import InvoiceItem
from billing_app.schemas.work import (
    WorkEntryCreate,
    WorkEntryUpdate,
    WorkPricingInput,
    WorkVariantsCreate,
)
from billing_app.services.work_service import (
    clear_variant,
    create_work_entry,
    create_work_variants,
    delete_work_entry,
    list_variant_counts,
    list_work_entries,
    refresh_entry_rate,
    rename_variant,
    resolve_delivery,
    set_delivery,
    update_work_entry,
)


class TestCreateWork:
    def test_minute_basis_auto_price(self, db, make_client):
        client = make_client(rate=100)
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(project_name="Reel", minutes=1, seconds=30),
            db,
        )

        assert entry.charged_by_snapshot == "minute"
        assert entry.duration_seconds == 90
        assert entry.units == 1.5
        assert entry.rate_snapshot == 100
        assert entry.amount_due == 150
        assert entry.status == WorkStatus.PROCESSING.value
        assert entry.delivered_at is None

    def test_project_basis_manual_rate(self, db, make_client):
        client = make_client(charged_by=ChargedBy.PROJECT, rate=3000)
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(
                project_name="Logo",
                units=2,
                pricing_mode=PricingMode.MANUAL_RATE,
                manual_rate=4000,
                override_reason="rush job",
            ),
            db,
        )

        assert entry.duration_seconds is None
        assert entry.units == 2
        assert entry.rate_snapshot == 4000
        assert entry.amount_due == 8000
        assert entry.override_reason == "rush job"

    def test_basis_override_on_entry(self, db, make_client):
        client = make_client(charged_by=ChargedBy.MINUTE, rate=600)
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(charged_by_snapshot=ChargedBy.HOUR, duration_seconds=1800),
            db,
        )

        assert entry.charged_by_snapshot == "hour"
        assert entry.units == 0.5
        assert entry.amount_due == 300

    def test_time_basis_without_duration_rejected(self, db, make_client):
        client = make_client()
        with pytest.raises(HTTPException) as exc:
            create_work_entry(client.id, WorkEntryCreate(project_name="Reel"), db)
        assert exc.value.status_code == 400

    def test_duration_beyond_column_range_rejected(self, db, make_client):
        client = make_client()
        with pytest.raises(HTTPException) as exc:
            create_work_entry(client.id, WorkEntryCreate(duration_seconds=1e12), db)
        assert exc.value.status_code == 400
        assert list_work_entries(client.id, db) == []

    def test_manual_total_needs_no_duration(self, db, make_client):
        client = make_client()
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(pricing_mode=PricingMode.MANUAL_TOTAL, manual_total=500),
            db,
        )

        assert entry.amount_due == 500
        assert entry.rate_snapshot is None

    def test_auto_pricing_drops_override_reason(self, db, make_client):
        client = make_client()
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(duration_seconds=60, override_reason="ignored"),
            db,
        )
        assert entry.override_reason is None

    def test_delivered_at_implies_delivered(self, db, make_client):
        client = make_client()
        delivered_at = dt.datetime(2024, 3, 1, 9, 0)
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(duration_seconds=60, delivered_at=delivered_at),
            db,
        )

        assert entry.status == WorkStatus.DELIVERED.value
        assert entry.delivered_at == delivered_at

    def test_unknown_client(self, db):
        with pytest.raises(HTTPException) as exc:
            create_work_entry(999, WorkEntryCreate(duration_seconds=60), db)
        assert exc.value.status_code == 404


class TestResolveDelivery:
    def test_processing_clears_timestamp(self):
        status, delivered_at = resolve_delivery(
            WorkStatus.PROCESSING, dt.datetime(2024, 1, 1)
        )
        assert status == "processing"
        assert delivered_at is None

    def test_delivered_keeps_existing_timestamp(self):
        current = dt.datetime(2024, 1, 1)
        status, delivered_at = resolve_delivery(WorkStatus.DELIVERED, None, current)
        assert status == "delivered"
        assert delivered_at == current

    def test_delivered_without_timestamp_gets_now(self):
        _, delivered_at = resolve_delivery(WorkStatus.DELIVERED, None)
        assert delivered_at is not None


class TestVariants:
    def test_default_labels_and_shared_fields(self, db, make_client):
        client = make_client(rate=10)
        entries = create_work_variants(
            client.id,
            WorkVariantsCreate(
                date=dt.date(2024, 5, 1),
                project_name="Campaign",
                note="batch",
                variants=[
                    WorkPricingInput(duration_seconds=60),
                    WorkPricingInput(duration_seconds=120, variant_label="Square"),
                ],
            ),
            db,
        )

        assert [e.variant_label for e in entries] == ["Variant 1", "Square"]
        assert [e.amount_due for e in entries] == [10, 20]
        assert {e.project_name for e in entries} == {"Campaign"}
        assert {e.date for e in entries} == {dt.date(2024, 5, 1)}

    def test_invalid_variant_creates_nothing(self, db, make_client):
        client = make_client()
        with pytest.raises(HTTPException) as exc:
            create_work_variants(
                client.id,
                WorkVariantsCreate(
                    project_name="Campaign",
                    variants=[WorkPricingInput(duration_seconds=60), WorkPricingInput()],
                ),
                db,
            )

        assert "Variant 2" in exc.value.detail
        assert list_work_entries(client.id, db) == []

    def test_rename_and_clear(self, db, make_client, make_work):
        client = make_client()
        make_work(client, 10, variant_label="Wide")
        make_work(client, 10, variant_label="Wide")
        make_work(client, 10, variant_label="Tall")

        assert list_variant_counts(client.id, db) == [
            {"label": "Tall", "count": 1},
            {"label": "Wide", "count": 2},
        ]

        assert rename_variant(client.id, "Wide", "16:9", db) == 2
        assert clear_variant(client.id, "Tall", db) == 1
        db.expire_all()

        assert list_variant_counts(client.id, db) == [{"label": "16:9", "count": 2}]

    def test_rename_to_blank_rejected(self, db, make_client):
        client = make_client()
        with pytest.raises(HTTPException):
            rename_variant(client.id, "Wide", "   ", db)


class TestFrozenRate:
    @pytest.fixture
    def entry(self, db, make_client):
        client = make_client(rate=100)
        entry = create_work_entry(client.id, WorkEntryCreate(duration_seconds=60), db)
        client.rate = 200
        db.commit()
        return entry

    def test_edit_keeps_captured_rate(self, db, entry):
        updated = update_work_entry(entry.id, WorkEntryUpdate(duration_seconds=120), db)
        assert updated.rate_snapshot == 100
        assert updated.amount_due == 200

    def test_edit_with_refresh_uses_current_rate(self, db, entry):
        updated = update_work_entry(
            entry.id, WorkEntryUpdate(note="re-cut", refresh_rate=True), db
        )
        assert updated.rate_snapshot == 200
        assert updated.amount_due == 200
        assert updated.note == "re-cut"

    def test_refresh_rate_endpoint_logic(self, db, entry):
        updated = refresh_entry_rate(entry.id, db)
        assert updated.rate_snapshot == 200

    def test_refresh_rejected_for_manual_entries(self, db, make_client):
        client = make_client()
        manual = create_work_entry(
            client.id,
            WorkEntryCreate(pricing_mode=PricingMode.MANUAL_TOTAL, manual_total=80),
            db,
        )
        with pytest.raises(HTTPException) as exc:
            refresh_entry_rate(manual.id, db)
        assert exc.value.status_code == 400

    def test_switch_to_auto_uses_current_client_rate(self, db, make_client):
        client = make_client(rate=100)
        manual = create_work_entry(
            client.id,
            WorkEntryCreate(
                duration_seconds=60,
                pricing_mode=PricingMode.MANUAL_RATE,
                manual_rate=500,
                override_reason="friend rate",
            ),
            db,
        )

        updated = update_work_entry(
            manual.id, WorkEntryUpdate(pricing_mode=PricingMode.AUTO), db
        )
        assert updated.rate_snapshot == 100
        assert updated.amount_due == 100
        assert updated.override_reason is None


class TestEditWork:
    def test_switch_to_project_drops_duration(self, db, make_client):
        client = make_client(rate=100)
        entry = create_work_entry(client.id, WorkEntryCreate(duration_seconds=120), db)

        updated = update_work_entry(
            entry.id,
            WorkEntryUpdate(charged_by_snapshot=ChargedBy.PROJECT, units=3),
            db,
        )
        assert updated.duration_seconds is None
        assert updated.units == 3
        assert updated.amount_due == 300

    def test_reopen_clears_delivered_at(self, db, make_client):
        client = make_client()
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(duration_seconds=60, status=WorkStatus.DELIVERED),
            db,
        )
        assert entry.delivered_at is not None

        updated = update_work_entry(
            entry.id, WorkEntryUpdate(status=WorkStatus.PROCESSING), db
        )
        assert updated.status == "processing"
        assert updated.delivered_at is None

    def test_manual_total_kept_when_other_fields_change(self, db, make_client):
        client = make_client()
        entry = create_work_entry(
            client.id,
            WorkEntryCreate(pricing_mode=PricingMode.MANUAL_TOTAL, manual_total=750),
            db,
        )

        updated = update_work_entry(entry.id, WorkEntryUpdate(project_name="  Promo "), db)
        assert updated.amount_due == 750
        assert updated.project_name == "Promo"


class TestDeliveryAndDelete:
    def test_toggle_delivery(self, db, make_client, make_work):
        client = make_client()
        entry = make_work(client, 100, status=WorkStatus.PROCESSING)

        delivered = set_delivery(client.id, entry.id, True, db)
        assert delivered.status == "delivered"
        assert delivered.delivered_at is not None

        reopened = set_delivery(client.id, entry.id, False, db)
        assert reopened.status == "processing"
        assert reopened.delivered_at is None

    def test_redelivering_keeps_original_timestamp(self, db, make_client, make_work):
        client = make_client()
        entry = make_work(client, 100, date=dt.date(2024, 1, 10))
        original = entry.delivered_at

        again = set_delivery(client.id, entry.id, True, db)
        assert again.delivered_at == original

    def test_toggle_requires_matching_client(self, db, make_client, make_work):
        owner = make_client(name="Owner")
        other = make_client(name="Other")
        entry = make_work(owner, 100)

        with pytest.raises(HTTPException) as exc:
            set_delivery(other.id, entry.id, True, db)
        assert exc.value.status_code == 404

    def test_delete_keeps_invoice_line(self, db, make_client, make_work):
        client = make_client()
        entry = make_work(client, 100)
        invoice = Invoice(
            number=1, client_id=client.id, issue_date=dt.date(2024, 1, 1), currency="BDT"
        )
        db.add(invoice)
        db.flush()
        item = InvoiceItem(
            invoice_id=invoice.id,
            work_entry_id=entry.id,
            description="Edit",
            quantity=1,
            rate=100,
            amount=100,
        )
        db.add(item)
        db.commit()

        delete_work_entry(entry.id, db)
        db.expire_all()

        assert db.get(InvoiceItem, item.id).work_entry_id is None


def test_list_filters(db, make_client, make_work):
    client = make_client()
    make_work(client, 10, date=dt.date(2024, 1, 1))
    make_work(client, 20, date=dt.date(2024, 2, 1), status=WorkStatus.PROCESSING)
    make_work(client, 30, date=dt.date(2024, 3, 1))

    delivered = list_work_entries(client.id, db, status=WorkStatus.DELIVERED)
    assert [e.amount_due for e in delivered] == [30, 10]

    ranged = list_work_entries(
        client.id, db, start=dt.date(2024, 1, 15), end=dt.date(2024, 2, 15)
    )
    assert [e.amount_due for e in ranged] == [20]
