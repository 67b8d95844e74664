"""Map arbitrary spreadsheet headers onto canonical donation fields."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping


FIELD_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("firstName", ("first_name", "firstname", "fname", "first", "given_name", "givenname")),
    ("lastName", ("last_name", "lastname", "lname", "last", "surname", "family_name", "familyname")),
    (
        "amount",
        ("amount", "donation", "gift", "contribution", "value", "total", "sum", "dollars", "money"),
    ),
    (
        "date",
        (
            "date",
            "donation_date",
            "gift_date",
            "received_date",
            "received_on",
            "receivedon",
            "createdon",
            "created_on",
            "timestamp",
            "when",
            "time",
        ),
    ),
    ("month", ("month", "donation_month", "gift_month", "period")),
    ("email", ("email", "email_address", "e_mail", "mail", "emailaddress")),
    (
        "phone",
        (
            "phone",
            "phone_number",
            "telephone",
            "mobile",
            "phonenumber",
            "tel",
            "mobilenumber",
            "mobile_number",
        ),
    ),
)

CANONICAL_FIELDS = tuple(field_name for field_name, _ in FIELD_PATTERNS)

# Headers holding a whole name; split later instead of feeding first/last.
FULL_NAME_HEADERS = frozenset(
    {
        "name",
        "full_name",
        "fullname",
        "donor_name",
        "donor",
        "contact_name",
        "constituent_name",
    }
)

_NAME_FIELDS = {"firstName", "lastName"}
_FULL_NAME_SUFFIXES = ("full_name", "fullname")
_EXCLUDED_NAME_TOKENS = ("fund", "batch")
_AMOUNT_HINTS = ("amount", "donation", "gift", "total")
_AMOUNT_VALUE_PATTERN = re.compile(r"[\d.,$]")


def normalize_header(header: Any) -> str:
    text = str(header).lower()
    text = re.sub(r"\s+", "_", text)
    return re.sub(r"[^\w]", "", text)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def _text_value(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _excluded_for_names(header: str) -> bool:
    if header in FULL_NAME_HEADERS or header.endswith(_FULL_NAME_SUFFIXES):
        return True
    return any(token in header for token in _EXCLUDED_NAME_TOKENS)


def resolve_columns(headers: Iterable[Any]) -> dict[str, str]:
    """Return ``{canonical_field: original_header}`` from header text alone.

    Exact synonym matches are taken first for every field; fields still
    unresolved then fall back to substring containment in either direction
    against the headers nobody has claimed.
    """

    normalized: dict[str, str] = {}
    for header in headers:
        key = normalize_header(header)
        if key and key not in normalized:
            normalized[key] = str(header)

    resolved: dict[str, str] = {}
    claimed: set[str] = set()

    for field_name, patterns in FIELD_PATTERNS:
        for pattern in patterns:
            if pattern in normalized and pattern not in claimed:
                resolved[field_name] = pattern
                claimed.add(pattern)
                break

    for field_name, patterns in FIELD_PATTERNS:
        if field_name in resolved:
            continue
        for key in normalized:
            if key in claimed:
                continue
            if field_name in _NAME_FIELDS and _excluded_for_names(key):
                continue
            if any(pattern in key or key in pattern for pattern in patterns):
                resolved[field_name] = key
                claimed.add(key)
                break

    return {field_name: normalized[key] for field_name, key in resolved.items()}


def map_row(row: Mapping[Any, Any], columns: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Map one raw row onto canonical fields.

    ``columns`` may carry a mapping already resolved for the file's headers;
    otherwise it is resolved from this row. Missing fields are simply absent
    from the result. A single unsplit full-name column is returned under
    ``name``.
    """

    if columns is None:
        columns = resolve_columns(row.keys())

    mapped: dict[str, Any] = {}
    for field_name, header in columns.items():
        value = row.get(header)
        if not _is_blank(value):
            mapped[field_name] = value

    normalized_row = [(normalize_header(header), value) for header, value in row.items()]

    if "firstName" not in mapped or "lastName" not in mapped:
        for key, value in normalized_row:
            if not _text_value(value) or _excluded_for_names(key):
                continue
            if "firstName" not in mapped and ("name" in key or "first" in key):
                if "last" in key or "surname" in key:
                    if "lastName" not in mapped:
                        mapped["lastName"] = value
                    continue
                mapped["firstName"] = value
            elif "lastName" not in mapped and ("last" in key or "surname" in key):
                mapped["lastName"] = value

    if "amount" not in mapped:
        for key, value in normalized_row:
            if not any(hint in key for hint in _AMOUNT_HINTS):
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool) and value == value:
                mapped["amount"] = value
                break
            if isinstance(value, str) and _AMOUNT_VALUE_PATTERN.search(value):
                mapped["amount"] = value
                break

    if "firstName" not in mapped and "lastName" not in mapped:
        for key, value in normalized_row:
            if not _text_value(value) or "name" not in key:
                continue
            if any(token in key for token in _EXCLUDED_NAME_TOKENS):
                continue
            mapped["name"] = value
            break

    return mapped
