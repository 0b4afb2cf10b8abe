"""Time-value-of-money helpers used by the contribution planner.

Rates are annual percentages (``5`` means 5%), ``n_per_year`` is 1 or 12 and
``t_years`` is a fractional number of years.
"""

import math
import sys
from datetime import datetime

DAYS_IN_YEAR = 365.25
SECONDS_PER_DAY = 24 * 60 * 60


def year_fraction(start: datetime, end: datetime) -> float:
    """Years between two instants using 365.25-day years; negative when end < start."""
    return (end - start).total_seconds() / SECONDS_PER_DAY / DAYS_IN_YEAR


def _growth_factor(periodic_rate: float, period_count: float) -> float:
    try:
        return math.pow(1 + periodic_rate, period_count)
    except OverflowError:
        return math.inf


def required_payment_for_future_value(
    future_value: float,
    rate_percent: float,
    n_per_year: int,
    t_years: float,
) -> float:
    """Level payment per period that grows to ``future_value`` (ordinary annuity).

    Returns ``math.inf`` when no periods remain.
    """
    period_count = n_per_year * t_years

    # Also catches NaN
    if not period_count > 0:
        return math.inf

    if rate_percent == 0:
        return future_value / period_count

    periodic_rate = (rate_percent / 100) / n_per_year
    denominator = _growth_factor(periodic_rate, period_count) - 1

    if abs(denominator) < sys.float_info.epsilon:
        return future_value / period_count

    return periodic_rate * future_value / denominator


def required_lump_sum_for_future_value(
    future_value: float,
    rate_percent: float,
    n_per_year: int,
    t_years: float,
) -> float:
    """Single payment today that grows to ``future_value``."""
    if t_years <= 0 or rate_percent == 0:
        return future_value

    periodic_rate = (rate_percent / 100) / n_per_year
    return future_value / _growth_factor(periodic_rate, n_per_year * t_years)


def future_value_of_present(
    present_value: float,
    rate_percent: float,
    n_per_year: int,
    t_years: float,
) -> float:
    """Value of ``present_value`` after compounding for ``t_years``."""
    if t_years <= 0 or rate_percent == 0 or present_value == 0:
        return present_value

    periodic_rate = (rate_percent / 100) / n_per_year
    return present_value * _growth_factor(periodic_rate, n_per_year * t_years)


def net_target_after_existing(
    future_value: float,
    existing: float,
    rate_percent: float,
    n_per_year: int,
    t_years: float,
) -> float:
    """Amount still to be saved once existing savings have grown; never negative."""
    existing_future_value = future_value_of_present(existing, rate_percent, n_per_year, t_years)
    return max(future_value - existing_future_value, 0.0)
