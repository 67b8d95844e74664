from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from donor_insights.indicators import calculate_trend, indicator_from_frame, read_indicator_csv
from donor_insights.models import EconomicDataPoint


def _points(values: list[float]) -> list[EconomicDataPoint]:
    return [EconomicDataPoint(date=date(2024, index + 1, 1), value=value) for index, value in enumerate(values)]


def test_calculate_trend_compares_recent_and_prior_windows() -> None:
    assert calculate_trend(_points([100, 100, 100, 110, 110, 110])) == "up"
    assert calculate_trend(_points([100, 100, 100, 90, 90, 90])) == "down"
    assert calculate_trend(_points([100, 100, 100, 101, 101, 101])) == "stable"
    assert calculate_trend(_points([100])) == "stable"
    assert calculate_trend(_points([100, 120, 140])) == "stable"
    assert calculate_trend(_points([0, 0, 0, 5, 5, 5])) == "stable"


def test_indicator_from_frame_sorts_and_drops_bad_rows() -> None:
    frame = pd.DataFrame(
        {
            "date": ["2024-03-01", "2024-01-01", "not a date", "2024-02-01"],
            "value": ["3.9", "3.7", "4.0", "n/a"],
        }
    )

    indicator = indicator_from_frame("Unemployment Rate", frame, declared_correlation=-0.62)

    assert [point.date for point in indicator.data] == [date(2024, 1, 1), date(2024, 3, 1)]
    assert indicator.current_value == pytest.approx(3.9)
    assert indicator.correlation == pytest.approx(-0.62)
    assert indicator.trend == "stable"


def test_indicator_from_frame_requires_columns() -> None:
    with pytest.raises(ValueError, match="missing columns"):
        indicator_from_frame("Broken", pd.DataFrame({"when": ["2024-01-01"]}))

    with pytest.raises(ValueError, match="no usable observations"):
        indicator_from_frame("Empty", pd.DataFrame({"date": ["x"], "value": ["y"]}))


def test_read_indicator_csv_names_series_after_file(tmp_path) -> None:  # type: ignore[no-untyped-def]
    path = tmp_path / "consumer_sentiment.csv"
    path.write_text("Date,Value\n2024-01-01,79.0\n2024-02-01,76.9\n", encoding="utf-8")

    indicator = read_indicator_csv(path)

    assert indicator.name == "consumer_sentiment"
    assert len(indicator.data) == 2
    assert indicator.current_value == pytest.approx(76.9)
