import datetime as dt

from types import SimpleNamespace

from billing_app.models.enums import ClientStatus, WorkStatus
from billing_app.services.ledger_service import (
    active_days_by_client,
    client_summary,
    compute_dues,
    compute_earnings,
    ledger_report,
    summarize_client,
    summarize_global,
)


def _client(id=1, name="Acme", status="active"):
    return SimpleNamespace(id=id, name=name, status=status)


def _work(amount, status="delivered", delivered_at=None):
    return SimpleNamespace(amount_due=amount, status=status, delivered_at=delivered_at)


def _payment(amount):
    return SimpleNamespace(amount=amount)


class TestFolds:
    def test_dues_never_negative(self):
        assert compute_dues(100, 250) == 0
        assert compute_dues(250, 100) == 150

    def test_earnings_are_payments_less_dues(self):
        assert compute_earnings(250, 0) == 250
        assert compute_earnings(100, 150) == 0

    def test_only_delivered_work_is_billed(self):
        summary = summarize_client(
            _client(),
            [_work(100), _work(40.5), _work(999, status="processing")],
            [_payment(50)],
            active_days=3,
        )

        assert summary["delivered_sum"] == 140.5
        assert summary["payments_sum"] == 50
        assert summary["dues"] == 90.5
        assert summary["earnings"] == 0
        assert summary["projects_count"] == 2
        assert summary["processing_count"] == 1
        assert summary["active_days"] == 3

    def test_overpaid_client_has_no_dues(self):
        summary = summarize_client(_client(), [_work(100)], [_payment(300)])
        assert summary["dues"] == 0
        assert summary["earnings"] == 300

    def test_last_delivered_at(self):
        latest = dt.datetime(2024, 3, 1)
        summary = summarize_client(
            _client(),
            [_work(1, delivered_at=dt.datetime(2024, 1, 1)), _work(1, delivered_at=latest)],
            [],
        )
        assert summary["last_delivered_at"] == latest

    def test_global_dues_clamped_per_client(self):
        overpaid = summarize_client(_client(1, "A"), [_work(100)], [_payment(300)])
        owing = summarize_client(_client(2, "B"), [_work(500)], [_payment(100)])

        summary = summarize_global(
            [overpaid, owing],
            [_client(1, "A"), _client(2, "B", status="closed")],
        )

        assert summary["total_delivered"] == 600
        assert summary["total_payments"] == 400
        assert summary["total_dues"] == 400
        assert summary["total_earnings"] == 0
        assert summary["clients_by_status"] == {
            "active": 1,
            "closed": 1,
            "payment_expired": 0,
        }


class TestLedgerQueries:
    def test_active_days_span_delivered_dates(self, db, make_client, make_work):
        client = make_client()
        make_work(client, 10, date=dt.date(2024, 1, 1))
        make_work(client, 10, date=dt.date(2024, 1, 10))
        make_work(client, 10, date=dt.date(2024, 3, 1), status=WorkStatus.PROCESSING)

        assert active_days_by_client(db) == {client.id: 10}

    def test_report_sorted_by_dues(self, db, make_client, make_work, make_payment):
        small = make_client(name="Small")
        big = make_client(name="Big")
        idle = make_client(name="Idle", status=ClientStatus.PAYMENT_EXPIRED)
        make_work(small, 100)
        make_work(big, 1000)
        make_payment(big, 200)

        report = ledger_report(db)

        assert [row["client_name"] for row in report["rows"]] == ["Big", "Small", "Idle"]
        assert report["summary"]["total_dues"] == 900
        assert report["summary"]["clients_by_status"]["payment_expired"] == 1
        assert idle.id in [row["client_id"] for row in report["rows"]]

    def test_report_date_range(self, db, make_client, make_work, make_payment):
        client = make_client()
        make_work(client, 100, date=dt.date(2024, 1, 5))
        make_work(client, 200, date=dt.date(2024, 2, 5))
        make_payment(client, 50, date=dt.date(2024, 2, 10))

        report = ledger_report(db, start=dt.date(2024, 2, 1), end=dt.date(2024, 2, 28))
        row = report["rows"][0]

        assert row["delivered_sum"] == 200
        assert row["payments_sum"] == 50
        assert row["dues"] == 150
        assert row["active_days"] == 1

    def test_client_summary_is_lifetime(self, db, make_client, make_work, make_payment):
        client = make_client()
        make_work(client, 100, date=dt.date(2023, 6, 1))
        make_work(client, 100, date=dt.date(2024, 6, 1))
        make_payment(client, 500)

        detail = client_summary(client.id, db)

        assert detail["client"].id == client.id
        assert detail["summary"]["delivered_sum"] == 200
        assert detail["summary"]["dues"] == 0
        assert detail["summary"]["earnings"] == 500
