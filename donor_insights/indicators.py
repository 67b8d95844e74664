"""Build economic indicator series from already-fetched tabular data."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from .models import EconomicDataPoint, EconomicIndicator


TREND_CHANGE_THRESHOLD = 0.02


def calculate_trend(points: list[EconomicDataPoint]) -> str:
    """Compare the mean of the last three points with the three before them."""

    if len(points) < 2:
        return "stable"

    recent = points[-3:]
    older = points[-6:-3]
    if not recent or not older:
        return "stable"

    recent_avg = sum(point.value for point in recent) / len(recent)
    older_avg = sum(point.value for point in older) / len(older)
    if older_avg == 0:
        return "stable"

    change = (recent_avg - older_avg) / abs(older_avg)
    if change > TREND_CHANGE_THRESHOLD:
        return "up"
    if change < -TREND_CHANGE_THRESHOLD:
        return "down"
    return "stable"


def indicator_from_frame(
    name: str,
    frame: pd.DataFrame,
    date_column: str = "date",
    value_column: str = "value",
    declared_correlation: float = 0.0,
    description: str | None = None,
) -> EconomicIndicator:
    missing = {date_column, value_column} - set(frame.columns)
    if missing:
        raise ValueError("Indicator data is missing columns: " + ", ".join(sorted(missing)))

    series = pd.DataFrame(
        {
            "date": pd.to_datetime(frame[date_column], errors="coerce"),
            "value": pd.to_numeric(frame[value_column], errors="coerce"),
        }
    ).dropna()
    series = series.sort_values("date", kind="stable")

    points = [
        EconomicDataPoint(date=row.date.date(), value=float(row.value))
        for row in series.itertuples(index=False)
    ]
    if not points:
        raise ValueError(f"Indicator '{name}' has no usable observations.")

    return EconomicIndicator(
        name=name,
        data=points,
        current_value=points[-1].value,
        trend=calculate_trend(points),
        correlation=declared_correlation,
        description=description,
    )


def read_indicator_csv(
    source: Any,
    name: str | None = None,
    date_column: str = "date",
    value_column: str = "value",
    declared_correlation: float = 0.0,
) -> EconomicIndicator:
    """Load an indicator from a CSV with date and value columns.

    The name defaults to the file stem.
    """

    frame = pd.read_csv(source)
    frame.columns = [str(column).strip().lower() for column in frame.columns]

    if name is None:
        source_name = source if isinstance(source, (str, Path)) else getattr(source, "name", "")
        name = Path(str(source_name)).stem or "Indicator"

    return indicator_from_frame(
        name,
        frame,
        date_column=date_column.lower(),
        value_column=value_column.lower(),
        declared_correlation=declared_correlation,
    )
