"""
sources/companies_house.py — Companies House "Basic Company Data" export.

The free bulk product is a zip holding a single CSV (or, for the multi-part
product, one CSV per zip) with a header row and 55 positional columns. The
column layout is described in transforms/fields.py.

Output record: CompanyRecord

Usage:
    source = CompaniesHouseSource(strict_integers=False)
    for result in source.records("BasicCompanyDataAsOneFile-2025-06-01.zip"):
        ...
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from companydata_shared.models import CompanyRecord

from companydata_pipeline.sources.base import ArchiveSource
from companydata_pipeline.transforms.decode import make_company_decoder


class CompaniesHouseSource(ArchiveSource[CompanyRecord]):
    """Streams company records out of a Basic Company Data archive."""

    name = "CompaniesHouse"
    has_header = True

    def __init__(self, *, strict_integers: bool | None = None) -> None:
        super().__init__(strict_integers=strict_integers)
        self._decode = make_company_decoder(strict_integers=self.strict_integers)

    def accepts(self, member_name: str) -> bool:
        return True

    def decode(self, fields: Sequence[str], headers: Sequence[str]) -> CompanyRecord:
        return self._decode(fields, headers)

    def get_metadata(self) -> dict[str, Any]:
        return {
            **super().get_metadata(),
            "description": "Companies House Basic Company Data",
        }
