from __future__ import annotations

from datetime import date

import pytest

from donor_insights.analytics import (
    analyze_donors,
    calculate_monthly_trends,
    calculate_retention,
    compare_periods,
    filter_donations_by_period,
    generate_forecast,
    linear_regression,
    month_bounds,
    shift_month,
)
from donor_insights.models import Donation, Donor, MonthlyTrend
from donor_insights.store import group_by_donor


def _donation(first: str, last: str, amount: float, when: date) -> Donation:
    return Donation(
        id=f"{first}-{when.isoformat()}-{amount}",
        first_name=first,
        last_name=last,
        amount=amount,
        date=when,
        month=when.strftime("%B %Y"),
        year=when.year,
    )


def _donors(*gifts: tuple[str, float, date]) -> list[Donor]:
    donations = [_donation(name, "Donor", amount, when) for name, amount, when in gifts]
    return list(group_by_donor(donations).values())


def _trends(amounts: list[float]) -> list[MonthlyTrend]:
    trends: list[MonthlyTrend] = []
    year, month = 2023, 1
    for amount in amounts:
        trends.append(
            MonthlyTrend(
                year=year,
                month_number=month,
                month=f"{month}/{year}",
                amount=amount,
                donor_count=1,
                average_donation=amount,
            )
        )
        year, month = shift_month(year, month, -1)
    return trends


def test_monthly_trends_sort_by_calendar_and_count_unique_donors() -> None:
    donors = _donors(
        ("Avery", 40.0, date(2024, 2, 3)),
        ("Avery", 10.0, date(2024, 2, 20)),
        ("Blake", 25.0, date(2023, 12, 31)),
        ("Casey", 30.0, date(2024, 1, 15)),
        ("Blake", 5.0, date(2024, 2, 1)),
        ("Casey", 100.0, date(2024, 4, 9)),
    )

    trends = calculate_monthly_trends(donors)

    assert [(trend.year, trend.month_number) for trend in trends] == [(2023, 12), (2024, 1), (2024, 2), (2024, 4)]
    assert [trend.month for trend in trends] == ["Dec 2023", "Jan 2024", "Feb 2024", "Apr 2024"]

    february = trends[2]
    assert february.amount == pytest.approx(55.0)
    assert february.donor_count == 2
    assert february.average_donation == pytest.approx(27.5)
    assert len({(trend.year, trend.month_number) for trend in trends}) == len(trends)


def test_retention_uses_latest_two_months() -> None:
    donors = _donors(
        ("Avery", 10.0, date(2024, 8, 5)),
        ("Avery", 10.0, date(2024, 9, 5)),
        ("Blake", 10.0, date(2024, 9, 6)),
        ("Casey", 10.0, date(2024, 8, 7)),
        ("Drew", 10.0, date(2024, 3, 7)),
    )

    retention = calculate_retention(donors)

    assert retention.method == "cohort"
    assert retention.current_month == (2024, 9)
    assert retention.previous_month == (2024, 8)
    assert retention.returning_donors == 1
    assert retention.new_donors == 1
    assert retention.retention_rate == pytest.approx(0.5)
    assert retention.churn_rate == pytest.approx(0.5)


def test_retention_spans_year_boundary() -> None:
    donors = _donors(
        ("Avery", 10.0, date(2023, 12, 24)),
        ("Avery", 10.0, date(2024, 1, 2)),
    )

    retention = calculate_retention(donors)

    assert retention.method == "cohort"
    assert retention.previous_month == (2023, 12)
    assert retention.retention_rate == pytest.approx(1.0)
    assert retention.churn_rate == pytest.approx(0.0)


def test_retention_falls_back_to_frequency_for_sparse_months() -> None:
    gifts = [("Avery", 10.0, date(2024, 9, day)) for day in range(1, 5)]
    gifts += [("Blake", 10.0, date(2024, 9, 10))]
    gifts += [("Casey", 10.0, date(2024, 9, 11)), ("Casey", 10.0, date(2024, 9, 12))]

    retention = calculate_retention(_donors(*gifts))

    assert retention.method == "frequency"
    assert retention.returning_donors == 1
    assert retention.new_donors == 1
    assert retention.retention_rate == pytest.approx(1 / 3)
    assert retention.churn_rate == pytest.approx(2 / 3)


def test_retention_without_donations_is_zero() -> None:
    retention = calculate_retention([])

    assert retention.new_donors == 0
    assert retention.returning_donors == 0
    assert retention.retention_rate == 0
    assert retention.churn_rate == 0


@pytest.mark.parametrize("amounts", [[], [100.0], [100.0, 250.0]])
def test_forecast_needs_three_months(amounts) -> None:  # type: ignore[no-untyped-def]
    forecast = generate_forecast(_trends(amounts))

    assert forecast.next_month.predicted_amount == 0
    assert forecast.next_month.confidence == 0
    assert forecast.next_quarter.predicted_amount == 0
    assert forecast.next_quarter.confidence == 0
    assert forecast.trend_direction == "stable"


def test_forecast_projects_linear_growth() -> None:
    forecast = generate_forecast(_trends([100.0, 200.0, 300.0]))

    assert forecast.next_month.predicted_amount == pytest.approx(400.0)
    assert forecast.next_quarter.predicted_amount == pytest.approx(600.0)
    assert forecast.next_month.confidence == pytest.approx(1.0)
    assert forecast.trend_direction == "up"


def test_forecast_uses_last_six_months_only() -> None:
    forecast = generate_forecast(_trends([1000.0, 1000.0, 10.0, 20.0, 30.0, 40.0, 50.0, 60.0]))

    assert forecast.next_month.predicted_amount == pytest.approx(70.0)
    assert forecast.next_quarter.predicted_amount == pytest.approx(90.0)


def test_forecast_clamps_negative_predictions() -> None:
    forecast = generate_forecast(_trends([300.0, 150.0, 0.0]))

    assert forecast.next_month.predicted_amount == 0
    assert forecast.next_quarter.predicted_amount == 0
    assert forecast.trend_direction == "down"


def test_forecast_on_flat_history_has_zero_confidence() -> None:
    forecast = generate_forecast(_trends([50.0, 50.0, 50.0, 50.0]))

    assert forecast.next_month.predicted_amount == pytest.approx(50.0)
    assert forecast.next_month.confidence == 0
    assert forecast.trend_direction == "stable"


def test_linear_regression_fit_quality() -> None:
    fit = linear_regression([2.0, 4.0, 5.0, 4.0, 5.0])

    assert fit.slope == pytest.approx(0.6)
    assert fit.intercept == pytest.approx(2.8)
    assert fit.r_squared == pytest.approx(0.6)
    assert fit.predict(5) == pytest.approx(5.8)


def test_analyze_donors_summarizes_without_reordering_input() -> None:
    donors = _donors(
        ("Avery", 20.0, date(2024, 1, 5)),
        ("Blake", 500.0, date(2024, 2, 5)),
        ("Casey", 80.0, date(2024, 3, 5)),
        ("Casey", 20.0, date(2024, 3, 6)),
    )
    original_order = [donor.first_name for donor in donors]

    analysis = analyze_donors(donors, top_limit=2)

    assert [donor.first_name for donor in donors] == original_order
    assert analysis.total_donors == 3
    assert analysis.donation_count == 4
    assert analysis.total_amount == pytest.approx(620.0)
    assert analysis.average_donation == pytest.approx(155.0)
    assert [donor.first_name for donor in analysis.top_donors] == ["Blake", "Casey"]
    assert len(analysis.monthly_trends) == 3
    assert analysis.forecast.trend_direction in {"up", "down", "stable"}

    snapshot = analysis.to_dict()
    assert snapshot["total_donors"] == 3
    assert snapshot["top_donors"][0]["frequency"] == "one-time"
    assert snapshot["monthly_trends"][0]["month"] == "Jan 2024"


def test_analyze_donors_handles_empty_input() -> None:
    analysis = analyze_donors([])

    assert analysis.total_donors == 0
    assert analysis.average_donation == 0
    assert analysis.monthly_trends == []
    assert analysis.forecast.trend_direction == "stable"


def test_period_comparison_and_filtering() -> None:
    donors = _donors(
        ("Avery", 100.0, date(2024, 8, 5)),
        ("Avery", 150.0, date(2024, 9, 5)),
        ("Blake", 50.0, date(2024, 9, 6)),
    )
    august = month_bounds(date(2024, 8, 17))
    september = month_bounds(date(2024, 9, 1))

    first = filter_donations_by_period(donors, august.start, august.end)
    second = filter_donations_by_period(donors, september.start, september.end)
    comparison = compare_periods(first, second)

    assert september.end == date(2024, 9, 30)
    assert comparison.first.total_amount == pytest.approx(100.0)
    assert comparison.second.total_amount == pytest.approx(200.0)
    assert comparison.donor_growth == pytest.approx(1.0)
    assert comparison.amount_growth == pytest.approx(1.0)
    assert comparison.average_donation_growth == pytest.approx(0.0)
    assert donors[0].donation_count == 2

    empty_baseline = compare_periods([], second)
    assert empty_baseline.donor_growth == 0
    assert empty_baseline.amount_growth == 0

    with pytest.raises(ValueError):
        filter_donations_by_period(donors, september.end, september.start)
