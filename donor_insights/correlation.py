"""Correlate monthly donation totals with external economic indicators."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .models import AlignedPoint, CorrelationResult, EconomicIndicator, MonthlyTrend


MIN_ALIGNED_MONTHS = 3

STRENGTH_BANDS = (
    (0.8, "Very Strong"),
    (0.6, "Strong"),
    (0.4, "Moderate"),
    (0.2, "Weak"),
)


def align_series(
    monthly_trends: Iterable[MonthlyTrend],
    indicator: EconomicIndicator,
) -> list[AlignedPoint]:
    """Pair each donation month with the indicator value for the same month.

    Months missing on either side are dropped. When the indicator has several
    points in one month, the first one listed is used.
    """

    indicator_by_month: dict[tuple[int, int], float] = {}
    for point in indicator.data:
        indicator_by_month.setdefault((point.date.year, point.date.month), point.value)

    aligned: list[AlignedPoint] = []
    for trend in monthly_trends:
        value = indicator_by_month.get((trend.year, trend.month_number))
        if value is None:
            continue
        aligned.append(
            AlignedPoint(
                year=trend.year,
                month=trend.month_number,
                donation_amount=trend.amount,
                economic_value=value,
            )
        )
    return aligned


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    if len(x) != len(y):
        raise ValueError("Series must have the same length.")

    n = len(x)
    if n == 0:
        return 0.0
    # Cancellation in the sums below leaves a tiny variance for constant decimals.
    if len(set(x)) == 1 or len(set(y)) == 1:
        return 0.0

    sum_x = sum(x)
    sum_y = sum(y)
    sum_xy = sum(left * right for left, right in zip(x, y))
    sum_x2 = sum(value * value for value in x)
    sum_y2 = sum(value * value for value in y)

    numerator = n * sum_xy - sum_x * sum_y
    variance_product = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if variance_product <= 0:
        return 0.0

    coefficient = numerator / math.sqrt(variance_product)
    return max(-1.0, min(1.0, coefficient))


def correlation_strength(coefficient: float) -> str:
    magnitude = abs(coefficient)
    for threshold, label in STRENGTH_BANDS:
        if magnitude >= threshold:
            return label
    return "Very Weak"


def approximate_p_value(coefficient: float, sample_size: int) -> float:
    """Rough two-tailed p-value from a simplified t transform.

    Not a Student's t distribution lookup; treat the result as a hint of
    significance only. Clamped to [0.001, 0.999].
    """

    degrees = sample_size - 2
    if degrees <= 0:
        return 0.999

    remainder = 1 - coefficient * coefficient
    if remainder <= 0:
        return 0.001

    t_stat = coefficient * math.sqrt(degrees / remainder)
    p_value = 2 * (1 - abs(t_stat) / math.sqrt(degrees + t_stat * t_stat))
    return max(0.001, min(0.999, p_value))


def significance_label(p_value: float) -> str:
    if p_value < 0.01:
        return "Highly Significant"
    if p_value < 0.05:
        return "Significant"
    return "Not Significant"


def correlate(
    monthly_trends: Iterable[MonthlyTrend],
    indicator: EconomicIndicator,
) -> CorrelationResult | None:
    """Live correlation of donations against ``indicator``.

    Returns ``None`` when fewer than three months line up.
    """

    aligned = align_series(monthly_trends, indicator)
    if len(aligned) < MIN_ALIGNED_MONTHS:
        return None

    coefficient = pearson(
        [point.donation_amount for point in aligned],
        [point.economic_value for point in aligned],
    )
    p_value = approximate_p_value(coefficient, len(aligned))

    return CorrelationResult(
        coefficient=coefficient,
        strength=correlation_strength(coefficient),
        direction="Positive" if coefficient >= 0 else "Negative",
        p_value=p_value,
        significance=significance_label(p_value),
        sample_size=len(aligned),
        aligned=aligned,
    )


def correlate_all(
    monthly_trends: Iterable[MonthlyTrend],
    indicators: Iterable[EconomicIndicator],
) -> dict[str, CorrelationResult | None]:
    monthly_trends = list(monthly_trends)
    return {indicator.name: correlate(monthly_trends, indicator) for indicator in indicators}
