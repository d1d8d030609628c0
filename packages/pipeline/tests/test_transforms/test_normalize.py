"""
tests/test_transforms/test_normalize.py — Tests for postcode normalisation.
"""

from __future__ import annotations

import pytest

from companydata_pipeline.transforms.normalize import normalize_postcode


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("AB101AA", "AB10 1AA"),
        ("AB10 1AA", "AB10 1AA"),
        ("ab10 1aa", "AB10 1AA"),
        ("B1  1AA", "B1 1AA"),
        ("W1A0AX", "W1A 0AX"),
        ("EC1A1BB", "EC1A 1BB"),
        (" M1 1AE ", "M1 1AE"),
    ],
)
def test_unit_postcodes_canonicalised(raw: str, expected: str):
    assert normalize_postcode(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("BFPO 61", "BFPO 61"),
        ("75008", "75008"),
        ("sw1a", "SW1A"),
        ("", ""),
    ],
)
def test_other_values_only_cleaned(raw: str, expected: str):
    assert normalize_postcode(raw) == expected


def test_both_datasets_meet_on_same_key():
    assert normalize_postcode("SW1A1AA") == normalize_postcode("SW1A 1AA")
