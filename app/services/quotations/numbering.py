"""Quotation numbers.

Daily numbers look like ``20250615Q3``: the UTC date, ``Q`` and a per-day
sequence. Revisions append ``R<n>`` to the original number, so every revision
of one logical quotation shares the same prefix (``20250615Q3R1``,
``20250615Q3R2``...).

Generation reads the existing numbers and takes ``max + 1``; it does not lock.
Two submissions on the same day can compute the same number, in which case
the unique constraint on ``quotations.quotation_number`` rejects the second
insert.
"""

import re
import uuid
from datetime import date, datetime, timezone
from typing import Iterable

from app.core.exceptions import MalformedInput

SEQUENCE_PATTERN = re.compile(r"Q(\d+)$")
LEADING_DIGITS = re.compile(r"^\d+")
REVISION_SEPARATOR = "R"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def generate_quotation_id() -> str:
    return f"QT{uuid.uuid4().hex[:16].upper()}"


def _sequence_of(number: str) -> int:
    match = SEQUENCE_PATTERN.search(number)
    return int(match.group(1)) if match else 0


def next_quotation_number(existing_numbers: Iterable[str], today: date | None = None) -> str:
    if isinstance(existing_numbers, (str, bytes)) or existing_numbers is None:
        raise MalformedInput("existing quotation numbers must be a list of strings")
    try:
        numbers = list(existing_numbers)
    except TypeError:
        raise MalformedInput("existing quotation numbers must be a list of strings")

    bad = [n for n in numbers if not isinstance(n, str)]
    if bad:
        raise MalformedInput(f"non-string quotation number in input: {bad[0]!r}")

    prefix = (today or utc_today()).strftime("%Y%m%d")
    todays = [n for n in numbers if n.startswith(prefix)]

    sequence = max((_sequence_of(n) for n in todays), default=0) + 1
    return f"{prefix}Q{sequence}"


def split_revision(quotation_no: str) -> tuple[str, int]:
    """``"20250101Q1R2"`` -> ``("20250101Q1", 2)``; unrevised numbers give index 0."""
    base, sep, rest = quotation_no.partition(REVISION_SEPARATOR)
    if not sep:
        return base, 0
    match = LEADING_DIGITS.match(rest)
    return base, int(match.group(0)) if match else 0


def revise_number(base_quotation_no: str) -> str:
    if not isinstance(base_quotation_no, str) or not base_quotation_no:
        raise MalformedInput("quotation number to revise must be a non-empty string")

    base, index = split_revision(base_quotation_no)
    return f"{base}{REVISION_SEPARATOR}{index + 1}"


def revision_base(quotation_no: str) -> str:
    return split_revision(quotation_no)[0]
