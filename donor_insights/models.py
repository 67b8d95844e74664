"""Data models for donor contribution analytics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any


FREQUENCY_LABELS = ("one-time", "occasional", "regular", "frequent")


def classify_frequency(donation_count: int) -> str:
    if donation_count <= 1:
        return "one-time"
    if donation_count <= 3:
        return "occasional"
    if donation_count <= 6:
        return "regular"
    return "frequent"


@dataclass
class Donation:
    """A single gift built from one spreadsheet row."""
    id: str
    first_name: str
    last_name: str
    amount: float
    date: date
    month: str
    year: int
    email: str | None = None
    phone: str | None = None
    donor_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass
class Donor:
    """Donations grouped under one normalized name."""
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    donations: list[Donation] = field(default_factory=list)
    total_amount: float = 0.0
    donation_count: int = 0
    first_donation: date | None = None
    last_donation: date | None = None

    @property
    def key(self) -> str:
        return f"{self.first_name.lower()}_{self.last_name.lower()}"

    @property
    def average_donation(self) -> float:
        if self.donation_count == 0:
            return 0.0
        return self.total_amount / self.donation_count

    @property
    def frequency(self) -> str:
        return classify_frequency(self.donation_count)

    def add_donation(self, donation: Donation) -> None:
        donation.donor_id = self.id
        self.donations.append(donation)
        self.total_amount += donation.amount
        self.donation_count += 1

        if self.first_donation is None or donation.date < self.first_donation:
            self.first_donation = donation.date
        if self.last_donation is None or donation.date > self.last_donation:
            self.last_donation = donation.date

        if not self.email and donation.email:
            self.email = donation.email
        if not self.phone and donation.phone:
            self.phone = donation.phone

    def to_dict(self, include_donations: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "total_amount": self.total_amount,
            "donation_count": self.donation_count,
            "average_donation": self.average_donation,
            "first_donation": self.first_donation.isoformat() if self.first_donation else None,
            "last_donation": self.last_donation.isoformat() if self.last_donation else None,
            "frequency": self.frequency,
        }
        if include_donations:
            data["donations"] = [donation.to_dict() for donation in self.donations]
        return data


@dataclass(frozen=True)
class MonthlyTrend:
    year: int
    month_number: int
    month: str
    amount: float
    donor_count: int
    average_donation: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RetentionData:
    """New vs. returning donors for the latest month and the one before it.

    ``method`` is ``"cohort"`` when both months have donors. Sparse exports
    switch to ``"frequency"``, which counts regular and frequent donors as
    returning; that mode is an approximation, not cohort retention.
    """
    new_donors: int
    returning_donors: int
    retention_rate: float
    churn_rate: float
    method: str = "cohort"
    current_month: tuple[int, int] | None = None
    previous_month: tuple[int, int] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Prediction:
    predicted_amount: float
    confidence: float


@dataclass(frozen=True)
class ForecastData:
    next_month: Prediction
    next_quarter: Prediction
    trend_direction: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EconomicDataPoint:
    date: date
    value: float


@dataclass
class EconomicIndicator:
    """An external series supplied by an indicator source.

    ``current_value``, ``trend`` and ``correlation`` are display values from
    the source; live correlation is computed from ``data`` only.
    """
    name: str
    data: list[EconomicDataPoint]
    current_value: float = 0.0
    trend: str = "stable"
    correlation: float = 0.0
    description: str | None = None


@dataclass(frozen=True)
class AlignedPoint:
    year: int
    month: int
    donation_amount: float
    economic_value: float


@dataclass(frozen=True)
class CorrelationResult:
    coefficient: float
    strength: str
    direction: str
    p_value: float
    significance: str
    sample_size: int
    aligned: list[AlignedPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisResult:
    total_donors: int
    total_amount: float
    average_donation: float
    donation_count: int
    top_donors: list[Donor]
    monthly_trends: list[MonthlyTrend]
    donor_retention: RetentionData
    forecast: ForecastData

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_donors": self.total_donors,
            "total_amount": self.total_amount,
            "average_donation": self.average_donation,
            "donation_count": self.donation_count,
            "top_donors": [donor.to_dict() for donor in self.top_donors],
            "monthly_trends": [trend.to_dict() for trend in self.monthly_trends],
            "donor_retention": self.donor_retention.to_dict(),
            "forecast": self.forecast.to_dict(),
        }


@dataclass(frozen=True)
class PeriodComparison:
    first: AnalysisResult
    second: AnalysisResult
    donor_growth: float
    amount_growth: float
    average_donation_growth: float


@dataclass
class ImportResult:
    """Outcome of one file import."""
    success: bool
    error: str | None = None
    rows_read: int = 0
    records_processed: int = 0
    donors_created: int = 0
    donors_updated: int = 0

    @property
    def rows_skipped(self) -> int:
        return max(self.rows_read - self.records_processed, 0)
