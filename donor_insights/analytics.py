"""Descriptive and predictive analytics over grouped donors."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable

from .models import (
    AnalysisResult,
    Donor,
    ForecastData,
    MonthlyTrend,
    PeriodComparison,
    Prediction,
    RetentionData,
)
from .normalize import short_month_label
from .store import group_by_donor


TOP_DONOR_LIMIT = 10
FORECAST_WINDOW = 6
MIN_FORECAST_MONTHS = 3
TREND_SLOPE_THRESHOLD = 0.1


@dataclass(frozen=True)
class MonthRange:
    start: date
    end: date


def month_bounds(anchor: date) -> MonthRange:
    first_day = anchor.replace(day=1)
    if first_day.month == 12:
        next_month = date(first_day.year + 1, 1, 1)
    else:
        next_month = date(first_day.year, first_day.month + 1, 1)
    return MonthRange(start=first_day, end=next_month - timedelta(days=1))


def shift_month(year: int, month: int, months_back: int) -> tuple[int, int]:
    month -= months_back
    while month <= 0:
        month += 12
        year -= 1
    while month > 12:
        month -= 12
        year += 1
    return year, month


def calculate_monthly_trends(donors: Iterable[Donor]) -> list[MonthlyTrend]:
    amounts: dict[tuple[int, int], float] = {}
    givers: dict[tuple[int, int], set[str]] = {}

    for donor in donors:
        for donation in donor.donations:
            bucket = (donation.date.year, donation.date.month)
            amounts[bucket] = amounts.get(bucket, 0.0) + donation.amount
            givers.setdefault(bucket, set()).add(donor.id)

    trends: list[MonthlyTrend] = []
    for year, month in sorted(amounts):
        amount = amounts[(year, month)]
        donor_count = len(givers[(year, month)])
        trends.append(
            MonthlyTrend(
                year=year,
                month_number=month,
                month=short_month_label(year, month),
                amount=amount,
                donor_count=donor_count,
                average_donation=amount / donor_count if donor_count else 0.0,
            )
        )
    return trends


def calculate_retention(donors: Iterable[Donor]) -> RetentionData:
    """Compare the latest month's donors with the month before it.

    When either month has no donors the result falls back to donation
    frequency: regular and frequent donors count as returning, one-time
    donors as new, and the rate is taken over all donors. That fallback is a
    rough proxy for sparse exports and says nothing about real cohorts.
    """

    donors = list(donors)
    all_dates = [donation.date for donor in donors for donation in donor.donations]
    if not all_dates:
        return RetentionData(new_donors=0, returning_donors=0, retention_rate=0.0, churn_rate=0.0)

    latest = max(all_dates)
    current_month = (latest.year, latest.month)
    previous_month = shift_month(latest.year, latest.month, 1)

    current_donors: set[str] = set()
    previous_donors: set[str] = set()
    for donor in donors:
        for donation in donor.donations:
            bucket = (donation.date.year, donation.date.month)
            if bucket == current_month:
                current_donors.add(donor.id)
            elif bucket == previous_month:
                previous_donors.add(donor.id)

    if current_donors and previous_donors:
        returning = len(current_donors & previous_donors)
        retention_rate = returning / len(previous_donors)
        return RetentionData(
            new_donors=len(current_donors) - returning,
            returning_donors=returning,
            retention_rate=retention_rate,
            churn_rate=1 - retention_rate,
            method="cohort",
            current_month=current_month,
            previous_month=previous_month,
        )

    returning = sum(1 for donor in donors if donor.frequency in ("frequent", "regular"))
    new = sum(1 for donor in donors if donor.frequency == "one-time")
    retention_rate = returning / len(donors) if donors else 0.0
    return RetentionData(
        new_donors=new,
        returning_donors=returning,
        retention_rate=retention_rate,
        churn_rate=1 - retention_rate,
        method="frequency",
        current_month=current_month,
        previous_month=previous_month,
    )


@dataclass(frozen=True)
class LinearFit:
    slope: float
    intercept: float
    r_squared: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def linear_regression(values: list[float]) -> LinearFit:
    """Least-squares line through ``values`` indexed 0..n-1.

    ``r_squared`` is 0 when the values are constant (zero total variance).
    """

    n = len(values)
    if n == 0:
        return LinearFit(slope=0.0, intercept=0.0, r_squared=0.0)

    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(index * value for index, value in enumerate(values))
    sum_xx = sum(index * index for index in range(n))

    denominator = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator else 0.0
    intercept = (sum_y - slope * sum_x) / n

    y_mean = sum_y / n
    ss_res = sum((value - (slope * index + intercept)) ** 2 for index, value in enumerate(values))
    ss_tot = sum((value - y_mean) ** 2 for value in values)
    r_squared = 1 - ss_res / ss_tot if ss_tot else 0.0

    return LinearFit(slope=slope, intercept=intercept, r_squared=r_squared)


def _flat_forecast() -> ForecastData:
    return ForecastData(
        next_month=Prediction(predicted_amount=0.0, confidence=0.0),
        next_quarter=Prediction(predicted_amount=0.0, confidence=0.0),
        trend_direction="stable",
    )


def generate_forecast(monthly_trends: list[MonthlyTrend]) -> ForecastData:
    if len(monthly_trends) < MIN_FORECAST_MONTHS:
        return _flat_forecast()

    recent = [trend.amount for trend in monthly_trends[-FORECAST_WINDOW:]]
    fit = linear_regression(recent)
    n = len(recent)

    next_month = fit.predict(n)
    next_quarter = (fit.predict(n + 1) + fit.predict(n + 2) + fit.predict(n + 3)) / 3
    confidence = max(0.0, min(1.0, fit.r_squared))

    if fit.slope > TREND_SLOPE_THRESHOLD:
        direction = "up"
    elif fit.slope < -TREND_SLOPE_THRESHOLD:
        direction = "down"
    else:
        direction = "stable"

    return ForecastData(
        next_month=Prediction(predicted_amount=max(0.0, next_month), confidence=confidence),
        next_quarter=Prediction(predicted_amount=max(0.0, next_quarter), confidence=confidence),
        trend_direction=direction,
    )


def analyze_donors(donors: Iterable[Donor], top_limit: int = TOP_DONOR_LIMIT) -> AnalysisResult:
    donors = list(donors)
    total_amount = sum(donor.total_amount for donor in donors)
    donation_count = sum(donor.donation_count for donor in donors)

    top_donors = sorted(donors, key=lambda donor: donor.total_amount, reverse=True)[:top_limit]
    monthly_trends = calculate_monthly_trends(donors)

    return AnalysisResult(
        total_donors=len(donors),
        total_amount=total_amount,
        average_donation=total_amount / donation_count if donation_count else 0.0,
        donation_count=donation_count,
        top_donors=top_donors,
        monthly_trends=monthly_trends,
        donor_retention=calculate_retention(donors),
        forecast=generate_forecast(monthly_trends),
    )


def filter_donations_by_period(donors: Iterable[Donor], start: date, end: date) -> list[Donor]:
    """Rebuild donor aggregates from the donations dated within [start, end].

    The source donors are left untouched; the returned donors hold copies of
    the matching donations.
    """

    if end < start:
        raise ValueError("Period end cannot be before period start.")

    selected = [
        replace(donation, donor_id="")
        for donor in donors
        for donation in donor.donations
        if start <= donation.date <= end
    ]
    return list(group_by_donor(selected).values())


def _growth(baseline: float, current: float) -> float:
    if baseline == 0:
        return 0.0
    return (current - baseline) / baseline


def compare_periods(
    first_period: Iterable[Donor],
    second_period: Iterable[Donor],
) -> PeriodComparison:
    first = analyze_donors(first_period)
    second = analyze_donors(second_period)
    return PeriodComparison(
        first=first,
        second=second,
        donor_growth=_growth(first.total_donors, second.total_donors),
        amount_growth=_growth(first.total_amount, second.total_amount),
        average_donation_growth=_growth(first.average_donation, second.average_donation),
    )
