import pytest
from fastapi import HTTPException

from billing_app.models.enums import PricingMode
from billing_app.services.pricing_service import resolve_price, round_money


def test_round_money():
    assert round_money(None) == 0
    assert round_money(10.126) == 10.13
    assert round_money(3) == 3.0


class TestAutoPricing:
    def test_uses_client_rate(self):
        price = resolve_price(PricingMode.AUTO, 1.5, client_rate=100)
        assert price.rate_snapshot == 100
        assert price.amount_due == 150

    def test_missing_client_rate_rejected(self):
        with pytest.raises(HTTPException) as exc:
            resolve_price(PricingMode.AUTO, 1, client_rate=None)
        assert exc.value.status_code == 400


class TestManualRate:
    def test_project_units_times_manual_rate(self):
        price = resolve_price(PricingMode.MANUAL_RATE, 2, client_rate=100, manual_rate=4000)
        assert price.rate_snapshot == 4000
        assert price.amount_due == 8000

    def test_missing_manual_rate_rejected(self):
        with pytest.raises(HTTPException) as exc:
            resolve_price(PricingMode.MANUAL_RATE, 2, client_rate=100)
        assert exc.value.status_code == 400


class TestManualTotal:
    def test_total_stored_without_rate(self):
        price = resolve_price(PricingMode.MANUAL_TOTAL, 3, client_rate=100, manual_total=999.999)
        assert price.rate_snapshot is None
        assert price.amount_due == 1000.0

    def test_negative_total_floors_at_zero(self):
        price = resolve_price(PricingMode.MANUAL_TOTAL, 1, manual_total=-50)
        assert price.amount_due == 0

    def test_missing_total_rejected(self):
        with pytest.raises(HTTPException):
            resolve_price(PricingMode.MANUAL_TOTAL, 1)


def test_amount_never_negative():
    price = resolve_price(PricingMode.MANUAL_RATE, 2, manual_rate=-10)
    assert price.amount_due == 0
