from dataclasses import dataclass

from fastapi import HTTPException

from billing_app.models.enums import PricingMode


@dataclass(frozen=True)
class PriceResolution:
    rate_snapshot: float | None
    amount_due: float


def round_money(value: float | int | None) -> float:
    return round(float(value or 0), 2)


def resolve_price(
    pricing_mode: PricingMode,
    units: float,
    client_rate: float | None = None,
    manual_rate: float | None = None,
    manual_total: float | None = None,
) -> PriceResolution:
    pricing_mode = PricingMode(pricing_mode)

    if pricing_mode == PricingMode.MANUAL_TOTAL:
        if manual_total is None:
            raise HTTPException(
                status_code=400,
                detail="manual_total is required for manual_total pricing",
            )
        return PriceResolution(
            rate_snapshot=None,
            amount_due=round_money(max(0.0, float(manual_total))),
        )

    if pricing_mode == PricingMode.MANUAL_RATE:
        if manual_rate is None:
            raise HTTPException(
                status_code=400,
                detail="manual_rate is required for manual_rate pricing",
            )
        rate = float(manual_rate)
    else:
        if client_rate is None:
            raise HTTPException(
                status_code=400,
                detail="Client rate is required for auto pricing",
            )
        rate = float(client_rate)

    return PriceResolution(
        rate_snapshot=rate,
        amount_due=round_money(max(0.0, float(units or 0) * rate)),
    )
