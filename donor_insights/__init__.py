"""Donor contribution import and analytics."""

from .analytics import (
    analyze_donors,
    calculate_monthly_trends,
    calculate_retention,
    compare_periods,
    filter_donations_by_period,
    generate_forecast,
    month_bounds,
)
from .correlation import correlate, correlate_all, pearson
from .indicators import indicator_from_frame, read_indicator_csv
from .models import (
    AnalysisResult,
    CorrelationResult,
    Donation,
    Donor,
    EconomicDataPoint,
    EconomicIndicator,
    ForecastData,
    ImportResult,
    MonthlyTrend,
    RetentionData,
)
from .records import ImportOptions
from .store import DonorStore, donor_display_name, format_currency, group_by_donor

__all__ = [
    "AnalysisResult",
    "CorrelationResult",
    "Donation",
    "Donor",
    "DonorStore",
    "EconomicDataPoint",
    "EconomicIndicator",
    "ForecastData",
    "ImportOptions",
    "ImportResult",
    "MonthlyTrend",
    "RetentionData",
    "analyze_donors",
    "calculate_monthly_trends",
    "calculate_retention",
    "compare_periods",
    "correlate",
    "correlate_all",
    "donor_display_name",
    "filter_donations_by_period",
    "format_currency",
    "generate_forecast",
    "group_by_donor",
    "indicator_from_frame",
    "month_bounds",
    "pearson",
    "read_indicator_csv",
]
