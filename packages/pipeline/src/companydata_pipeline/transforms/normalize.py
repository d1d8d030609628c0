"""
transforms/normalize.py — Value normalisation applied before insert.

Postcodes are the join key between the two datasets, so both importers
pass them through normalize_postcode() and the search query can use
plain equality.
"""

from __future__ import annotations

import re

UK_UNIT_POSTCODE_RE = re.compile(r"^([A-Z]{1,2}\d[A-Z\d]?)(\d[A-Z]{2})$")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_postcode(raw: str) -> str:
    """
    Canonicalise a UK postcode to "OUTWARD INWARD" form.

    CodePoint Open writes postcodes unspaced or space-padded ("AB101AA",
    "B1  1AA"); Companies House writes "AB10 1AA". Values that do not look
    like a unit postcode (overseas addresses, partial postcodes) are only
    stripped and upper-cased.

        >>> normalize_postcode("b1  1aa")
        'B1 1AA'
        >>> normalize_postcode(" AB101AA ")
        'AB10 1AA'
        >>> normalize_postcode("BFPO 61")
        'BFPO 61'
    """
    cleaned = _WHITESPACE_RE.sub(" ", raw.strip().upper())
    match = UK_UNIT_POSTCODE_RE.match(cleaned.replace(" ", ""))
    if match is None:
        return cleaned
    return f"{match.group(1)} {match.group(2)}"
