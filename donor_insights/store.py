"""In-memory donor store: grouping, merging re-imports, and directory search."""

from __future__ import annotations

import logging
import re
import uuid
from difflib import SequenceMatcher
from typing import Any, Iterable

from .models import Donation, Donor, ImportResult
from .records import ImportOptions, build_donations, read_donation_rows

logger = logging.getLogger(__name__)

SORT_FIELDS = ("total_amount", "donation_count", "average_donation", "last_donation", "name")


# Each group is one given name and the nicknames donors file under.
NICKNAME_GROUPS = (
    ("alexander", "alex", "sasha"),
    ("andrew", "andy", "drew"),
    ("anthony", "tony"),
    ("benjamin", "ben"),
    ("charles", "charlie", "chuck"),
    ("christopher", "chris"),
    ("daniel", "dan", "danny"),
    ("david", "dave"),
    ("elizabeth", "liz", "beth", "eliza"),
    ("james", "jim", "jimmy"),
    ("jennifer", "jen", "jenny"),
    ("john", "johnny", "jack", "jon"),
    ("joseph", "joe", "joey"),
    ("katherine", "kathryn", "kate", "katie"),
    ("margaret", "maggie", "meg", "peggy"),
    ("michael", "mike"),
    ("nicholas", "nick", "nicky"),
    ("patrick", "pat"),
    ("robert", "rob", "bob", "bobby"),
    ("stephen", "steve", "steven"),
    ("susan", "sue", "suzy"),
    ("thomas", "tom", "tommy"),
    ("william", "will", "bill", "billy"),
)

TYPO_RATIO = 0.8

_NICKNAMES: dict[str, frozenset[str]] = {
    name: frozenset(group) for group in NICKNAME_GROUPS for name in group
}


def _name_tokens(value: str | None) -> list[str]:
    return re.findall(r"[a-z0-9]+", (value or "").lower())


def _token_match(query_token: str, name_token: str) -> int:
    """Rank one query word against one name word: 3 same name, 2 prefix, 1 typo."""

    if query_token == name_token or name_token in _NICKNAMES.get(query_token, ()):
        return 3
    if len(query_token) >= 2 and name_token.startswith(query_token):
        return 2
    if SequenceMatcher(None, query_token, name_token).ratio() >= TYPO_RATIO:
        return 1
    return 0


def _smart_match_rank(donor: Donor, search_term: str) -> int:
    """Sum of per-word ranks; 0 unless every query word matches the donor.

    A word that matches no name part still counts when the email contains it.
    """

    query_tokens = _name_tokens(search_term)
    name_tokens = _name_tokens(donor.first_name) + _name_tokens(donor.last_name)
    email = (donor.email or "").lower()

    rank = 0
    for query_token in query_tokens:
        best = max((_token_match(query_token, name_token) for name_token in name_tokens), default=0)
        if not best and query_token in email:
            best = 1
        if not best:
            return 0
        rank += best
    return rank


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def donor_display_name(donor: Donor) -> str:
    full_name = f"{donor.first_name.strip()} {donor.last_name.strip()}".strip()
    return full_name or "Unnamed donor"


def donor_key(first_name: str, last_name: str) -> str:
    return f"{first_name.lower()}_{last_name.lower()}"


def group_by_donor(
    donations: Iterable[Donation],
    existing: dict[str, Donor] | None = None,
) -> dict[str, Donor]:
    """Group donations into donors keyed by lower-cased ``first_last`` name.

    Donors already in ``existing`` receive matching donations; the mapping is
    updated in place and returned. Keys keep first-seen order.
    """

    donors = existing if existing is not None else {}
    for donation in donations:
        key = donor_key(donation.first_name, donation.last_name)
        donor = donors.get(key)
        if donor is None:
            donor = Donor(
                id=uuid.uuid4().hex,
                first_name=donation.first_name,
                last_name=donation.last_name,
                email=donation.email,
                phone=donation.phone,
            )
            donors[key] = donor
        donor.add_donation(donation)
    return donors


def _sort_value(donor: Donor, sort_by: str) -> Any:
    if sort_by == "name":
        return f"{donor.first_name} {donor.last_name}".lower()
    if sort_by == "last_donation":
        return donor.last_donation.toordinal() if donor.last_donation else 0
    if sort_by == "donation_count":
        return donor.donation_count
    if sort_by == "average_donation":
        return donor.average_donation
    return donor.total_amount


class DonorStore:
    """Session-scoped donor set that merges successive imports by name."""

    def __init__(self) -> None:
        self._donors: dict[str, Donor] = {}

    @property
    def donors(self) -> list[Donor]:
        return list(self._donors.values())

    @property
    def donations(self) -> list[Donation]:
        return [donation for donor in self._donors.values() for donation in donor.donations]

    def __len__(self) -> int:
        return len(self._donors)

    def clear(self) -> None:
        self._donors = {}

    def get_donor(self, donor_id: str) -> Donor | None:
        for donor in self._donors.values():
            if donor.id == donor_id:
                return donor
        return None

    def find_donor(self, first_name: str, last_name: str) -> Donor | None:
        return self._donors.get(donor_key(first_name.strip(), last_name.strip()))

    def merge(self, donations: Iterable[Donation]) -> tuple[int, int]:
        """Append donations to matching donors; return (created, updated)."""

        donations = list(donations)
        keys_before = set(self._donors)
        touched = {donor_key(donation.first_name, donation.last_name) for donation in donations}

        group_by_donor(donations, existing=self._donors)

        created = len(touched - keys_before)
        updated = len(touched & keys_before)
        return created, updated

    def import_file(self, source: Any, options: ImportOptions | None = None) -> ImportResult:
        """Import one CSV export and merge it into the store.

        File-level failures leave the store untouched and come back as an
        unsuccessful result with zero records processed.
        """

        options = options or ImportOptions()
        try:
            rows = read_donation_rows(source)
            donations = build_donations(rows, options)
        except (OSError, ValueError) as exc:
            logger.warning("Import failed: %s", exc)
            return ImportResult(success=False, error=str(exc))

        created, updated = self.merge(donations)
        result = ImportResult(
            success=True,
            rows_read=len(rows),
            records_processed=len(donations),
            donors_created=created,
            donors_updated=updated,
        )
        logger.info(
            "Imported %d of %d rows (%d new donors, %d updated)",
            result.records_processed,
            result.rows_read,
            created,
            updated,
        )
        return result

    def list_donors(
        self,
        search_term: str = "",
        smart_search: bool = False,
        frequency: str | None = None,
        sort_by: str = "total_amount",
        descending: bool = True,
    ) -> list[Donor]:
        if sort_by not in SORT_FIELDS:
            raise ValueError("Sort field must be one of: " + ", ".join(SORT_FIELDS))

        candidates = self.donors
        if frequency:
            candidates = [donor for donor in candidates if donor.frequency == frequency]

        needle = (search_term or "").strip().lower()
        ordered = sorted(candidates, key=lambda donor: _sort_value(donor, sort_by), reverse=descending)
        if not needle:
            return ordered

        if not smart_search:
            return [
                donor
                for donor in ordered
                if needle in f"{donor.first_name} {donor.last_name}".lower()
                or needle in (donor.email or "").lower()
            ]

        ranks = {donor.id: _smart_match_rank(donor, needle) for donor in ordered}
        matches = [donor for donor in ordered if ranks[donor.id]]
        # Stable: equal ranks keep the requested sort order.
        matches.sort(key=lambda donor: ranks[donor.id], reverse=True)
        return matches
