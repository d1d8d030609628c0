"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  company_row()     — factory for 55-column Companies House data rows
  code_point_row()  — factory for headerless CodePoint Open rows
  make_zip()        — writes a zip archive of CSV members under tmp_path
  memory_conn       — schema-bootstrapped in-memory DuckDB connection
  mock_http         — configured respx router for faking HTTP responses
"""

from __future__ import annotations

import csv
import io
import itertools
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
import respx

from companydata_shared.constants import COMPANIES_HOUSE_WIDTH
from companydata_shared.db import MEMORY_DATABASE, connect, ensure_schema

COMPANIES_HOUSE_HEADER: list[str] = [
    "CompanyName", "CompanyNumber", "RegAddress.CareOf", "RegAddress.POBox",
    "RegAddress.AddressLine1", "RegAddress.AddressLine2", "RegAddress.PostTown",
    "RegAddress.County", "RegAddress.Country", "RegAddress.PostCode",
    "CompanyCategory", "CompanyStatus", "CountryOfOrigin", "DissolutionDate",
    "IncorporationDate", "Accounts.AccountRefDay", "Accounts.AccountRefMonth",
    "Accounts.NextDueDate", "Accounts.LastMadeUpDate", "Accounts.AccountCategory",
    "Returns.NextDueDate", "Returns.LastMadeUpDate", "Mortgages.NumMortCharges",
    "Mortgages.NumMortOutstanding", "Mortgages.NumMortPartSatisfied",
    "Mortgages.NumMortSatisfied", "SICCode.SicText_1", "SICCode.SicText_2",
    "SICCode.SicText_3", "SICCode.SicText_4", "LimitedPartnerships.NumGenPartners",
    "LimitedPartnerships.NumLimPartners", "URI",
    *[f"PreviousName_{n}.{part}" for n in range(1, 11) for part in ("CONDATE", "CompanyName")],
    "ConfStmtNextDueDate", "ConfStmtLastMadeUpDate",
]


def _csv_text(rows: list[list[str]]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\r\n").writerows(rows)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def company_header() -> list[str]:
    assert len(COMPANIES_HOUSE_HEADER) == COMPANIES_HOUSE_WIDTH
    return list(COMPANIES_HOUSE_HEADER)


@pytest.fixture
def company_row() -> Callable[..., list[str]]:
    """
    Build a Companies House row.

    Usage:
        row = company_row("01234567", post_code="SW1A 1AA", overrides={14: ""})
    """

    def _build(
        company_number: str,
        *,
        name: str | None = None,
        post_code: str = "AB10 1AA",
        incorporation_date: str = "01/06/2020",
        overrides: dict[int, str] | None = None,
    ) -> list[str]:
        row = [""] * COMPANIES_HOUSE_WIDTH
        row[0] = name or f"COMPANY {company_number} LIMITED"
        row[1] = company_number
        row[4] = "1 UNION STREET"
        row[6] = "ABERDEEN"
        row[8] = "UNITED KINGDOM"
        row[9] = post_code
        row[10] = "Private Limited Company"
        row[11] = "Active"
        row[12] = "United Kingdom"
        row[14] = incorporation_date
        row[15] = "30"
        row[16] = "6"
        row[17] = "31/03/2026"
        row[18] = "30/06/2024"
        row[19] = "MICRO ENTITY"
        row[22:26] = ["1", "0", "0", "1"]
        row[26] = "62020 - Information technology consultancy activities"
        row[30] = "0"
        row[31] = "0"
        row[32] = f"http://business.data.gov.uk/id/company/{company_number}"
        row[53] = "15/06/2026"
        row[54] = "01/06/2025"
        for index, value in (overrides or {}).items():
            row[index] = value
        return row

    return _build


@pytest.fixture
def code_point_row() -> Callable[..., list[str]]:
    """Build a CodePoint Open row: postcode, quality, easting, northing, codes."""

    def _build(post_code: str, easting: int | str, northing: int | str) -> list[str]:
        return [post_code, "10", str(easting), str(northing), "S92000003", "", "S08000020", "", "S12000033", "S13002842"]

    return _build


# ---------------------------------------------------------------------------
# Archives
# ---------------------------------------------------------------------------

@pytest.fixture
def make_zip(tmp_path: Path) -> Callable[..., Path]:
    """
    Write a zip archive and return its path.

    Members are written in dict order. A value may be a list of rows (CSV
    encoded), raw text, or raw bytes; a name ending in "/" is a directory.
    """
    counter = itertools.count()

    def _make(members: dict[str, list[list[str]] | str | bytes], name: str | None = None) -> Path:
        path = tmp_path / (name or f"archive-{next(counter)}.zip")
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for member, content in members.items():
                if isinstance(content, list):
                    content = _csv_text(content)
                zf.writestr(member, content)
        return path

    return _make


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_conn():
    """In-memory DuckDB with the code_point and company_data tables."""
    conn = connect(MEMORY_DATABASE)
    ensure_schema(conn)
    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://...").mock(return_value=httpx.Response(200, content=b"..."))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router
