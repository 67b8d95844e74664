"""Read donation exports and turn mapped rows into donation records."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from .mapping import map_row, resolve_columns
from .models import Donation
from .normalize import month_label, parse_amount, resolve_donation_date

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv",)
UNDATED_ROW_POLICIES = ("reject", "today")


@dataclass(frozen=True)
class ImportOptions:
    """Settings for one import.

    ``undated_rows`` decides what happens to rows with neither a parseable
    date nor a month: ``"reject"`` drops them, ``"today"`` dates them today.
    """
    undated_rows: str = "reject"
    today: date | None = None

    def __post_init__(self) -> None:
        if self.undated_rows not in UNDATED_ROW_POLICIES:
            raise ValueError(
                "Undated row policy must be one of: " + ", ".join(UNDATED_ROW_POLICIES)
            )

    @property
    def reference_date(self) -> date:
        return self.today or date.today()


def _source_name(source: Any) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    return str(getattr(source, "name", "") or "")


def check_file_type(source: Any) -> str:
    name = _source_name(source)
    extension = Path(name).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise ValueError("Unsupported file format. Please use CSV files.")
    return extension


def read_donation_rows(source: Any) -> list[dict[str, Any]]:
    """Read a CSV export into raw rows keyed by trimmed header text.

    Cells are kept as strings; rows with every cell blank are dropped.
    """

    check_file_type(source)
    frame = pd.read_csv(
        source,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        encoding="utf-8",
    )
    frame.columns = [str(column).strip() for column in frame.columns]

    rows: list[dict[str, Any]] = []
    for record in frame.to_dict(orient="records"):
        if any(str(value).strip() for value in record.values()):
            rows.append(record)

    if not rows:
        raise ValueError("No data found in the CSV file")
    return rows


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    return _clean_text(value) or None


def split_full_name(full_name: Any) -> tuple[str, str]:
    parts = _clean_text(full_name).split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def build_donation(
    mapped: Mapping[str, Any],
    options: ImportOptions | None = None,
) -> Donation | None:
    """Build a donation from a mapped row, or ``None`` if the row is unusable."""

    options = options or ImportOptions()

    first_name = _clean_text(mapped.get("firstName"))
    last_name = _clean_text(mapped.get("lastName"))
    if not first_name and not last_name:
        if not _clean_text(mapped.get("name")):
            return None
        first_name, last_name = split_full_name(mapped.get("name"))
        if not first_name and not last_name:
            return None

    amount = parse_amount(mapped.get("amount"))
    if amount <= 0:
        return None

    donation_date = resolve_donation_date(
        mapped.get("date"),
        mapped.get("month"),
        today=options.reference_date,
    )
    if donation_date is None:
        if options.undated_rows != "today":
            return None
        donation_date = options.reference_date
        logger.warning(
            "Dating undated gift from %s %s as %s",
            first_name,
            last_name,
            donation_date.isoformat(),
        )

    return Donation(
        id=uuid.uuid4().hex,
        first_name=first_name,
        last_name=last_name,
        amount=amount,
        date=donation_date,
        month=month_label(donation_date),
        year=donation_date.year,
        email=_optional_text(mapped.get("email")),
        phone=_optional_text(mapped.get("phone")),
    )


def build_donations(
    rows: Iterable[Mapping[str, Any]],
    options: ImportOptions | None = None,
) -> list[Donation]:
    options = options or ImportOptions()
    rows = list(rows)
    if not rows:
        return []

    columns = resolve_columns(rows[0].keys())
    logger.debug("Resolved import columns: %s", columns)

    donations: list[Donation] = []
    for index, row in enumerate(rows):
        donation = build_donation(map_row(row, columns), options)
        if donation is None:
            logger.debug("Skipping row %d: missing name, amount, or date", index + 1)
            continue
        donations.append(donation)
    return donations
