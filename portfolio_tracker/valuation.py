"""Valuation math: holding period and compound annual growth rate.

Purchase dates are calendar dates anchored at UTC midnight. The holding period
is measured in Julian years (365.25 days) so leap years are spread evenly.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal

SECONDS_PER_YEAR = Decimal("365.25") * Decimal("86400")


def annualized_growth(
    initial_value: Decimal, final_value: Decimal, years: Decimal
) -> Decimal:
    """Compound annual growth rate taking initial_value to final_value.

    Computes ``(final_value / initial_value) ** (1 / years) - 1``.

    Args:
        initial_value: Starting value, must be strictly positive.
        final_value: Ending value, must not be negative.
        years: Length of the period in years, must be non-zero.

    Returns:
        The growth rate as a decimal fraction (0.10 means 10% per year).

    Raises:
        ValueError: If the inputs are outside the domain of the formula.
    """
    if initial_value <= 0:
        raise ValueError(f"Initial value must be positive, got {initial_value}")
    if final_value < 0:
        raise ValueError(f"Final value must not be negative, got {final_value}")
    if years == 0:
        raise ValueError("Period must be non-zero")

    ratio = Decimal(final_value) / Decimal(initial_value)
    if ratio == 0:
        return Decimal("-1")
    return ratio ** (Decimal(1) / Decimal(years)) - 1


def purchase_instant(purchase_date: date) -> datetime:
    return datetime.combine(purchase_date, time.min, tzinfo=timezone.utc)


def elapsed_years(purchase_date: date, as_of: datetime) -> Decimal:
    """Years between UTC midnight of purchase_date and as_of.

    Naive as_of values are treated as UTC. The result is negative when the
    purchase date lies after as_of.
    """
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)

    delta = as_of - purchase_instant(purchase_date)
    seconds = (
        Decimal(delta.days) * 86400
        + Decimal(delta.seconds)
        + Decimal(delta.microseconds) / Decimal(1_000_000)
    )
    return seconds / SECONDS_PER_YEAR


def project_value(current_value: Decimal, expected_rate_of_return: Decimal) -> Decimal:
    return current_value * (1 + expected_rate_of_return)
