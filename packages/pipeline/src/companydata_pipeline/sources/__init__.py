"""
companydata_pipeline.sources — streaming record sources over zip archives.

  CodePointSource      — OS CodePoint Open (postcode -> easting/northing)
  CompaniesHouseSource — Companies House Basic Company Data
"""

from companydata_pipeline.sources.base import (
    ArchiveSource,
    ParseResult,
    open_archive,
    stream_csv_records,
)
from companydata_pipeline.sources.code_point import CodePointSource
from companydata_pipeline.sources.companies_house import CompaniesHouseSource

__all__ = [
    "ArchiveSource",
    "ParseResult",
    "open_archive",
    "stream_csv_records",
    "CodePointSource",
    "CompaniesHouseSource",
]
