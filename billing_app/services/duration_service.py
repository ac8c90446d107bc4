from dataclasses import dataclass

from billing_app.models.enums import ChargedBy


SECONDS_PER_UNIT = {
    ChargedBy.SECOND: 1,
    ChargedBy.MINUTE: 60,
    ChargedBy.HOUR: 3600,
}


@dataclass(frozen=True)
class ResolvedQuantity:
    duration_seconds: int | None
    units: float
    # False when neither a total duration nor minutes/seconds were given
    has_duration: bool


def clamp_seconds(value: float | None) -> float:
    try:
        seconds = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, min(59.0, seconds))


def combine_duration(minutes: float | None, seconds: float | None) -> int:
    total = max(0.0, float(minutes or 0)) * 60 + clamp_seconds(seconds)
    return int(round(total))


def units_from_seconds(basis: ChargedBy, total_seconds: float) -> float:
    basis = ChargedBy(basis)
    if basis == ChargedBy.PROJECT:
        raise ValueError("Project basis is not measured in seconds")

    return max(0.0, float(total_seconds or 0)) / SECONDS_PER_UNIT[basis]


def resolve_quantity(
    basis: ChargedBy,
    minutes: float | None = None,
    seconds: float | None = None,
    duration_seconds: float | None = None,
    units: float | None = None,
) -> ResolvedQuantity:
    """Turn raw form/CSV duration fields into the stored duration and units.

    A total ``duration_seconds`` wins over ``minutes``/``seconds``. Project
    basis ignores any duration and bills at least one unit.
    """
    basis = ChargedBy(basis)

    if basis == ChargedBy.PROJECT:
        project_units = float(units) if units else 1.0
        return ResolvedQuantity(
            duration_seconds=None,
            units=max(1.0, project_units),
            has_duration=True,
        )

    if duration_seconds is not None:
        total = int(round(max(0.0, float(duration_seconds))))
        has_duration = True
    else:
        total = combine_duration(minutes, seconds)
        has_duration = minutes is not None or seconds is not None

    return ResolvedQuantity(
        duration_seconds=total,
        units=units_from_seconds(basis, total),
        has_duration=has_duration,
    )
