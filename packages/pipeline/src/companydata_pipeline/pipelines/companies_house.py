"""
pipelines/companies_house.py — Companies House Basic Company Data import.

Full reload of the company_data table from a Basic Company Data zip:
  archive (local path or URL) -> CompaniesHouseSource -> BatchLoader -> company_data

The import writes a staged copy of the store (see companydata_shared.db.staged_store),
so the API keeps serving the previous data until the import succeeds.

The one-file product is ~5M rows; at the default batch size of 5000 that
is about a thousand transactions.

Usage:
    from companydata_pipeline.pipelines.companies_house import run
    result = run("https://download.companieshouse.gov.uk/BasicCompanyDataAsOneFile-2025-06-01.zip")
"""

from __future__ import annotations

from pathlib import Path

from companydata_shared.config import settings
from companydata_shared.db import staged_store

from companydata_pipeline.loaders.duckdb_loader import (
    COMPANY_DATA_INSERT,
    BatchLoader,
    LoadResult,
)
from companydata_pipeline.sources.companies_house import CompaniesHouseSource
from companydata_pipeline.utils.large_file import transient_download
from companydata_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="companies_house")


def run(
    uri: str,
    *,
    database_path: str | Path | None = None,
    batch_size: int | None = None,
    strict_integers: bool | None = None,
) -> LoadResult:
    """
    Import a Basic Company Data archive into the company_data table.

    Args:
        uri:             Local path or http(s) URL of the zip archive.
        database_path:   Store to write to (default: settings.database_path).
        batch_size:      Records per transaction (default: settings.companies_house_batch_size).
        strict_integers: Fail on unparsable integer columns instead of using 0.

    Returns:
        LoadResult for the company_data table.
    """
    batch_size = settings.companies_house_batch_size if batch_size is None else batch_size
    source = CompaniesHouseSource(strict_integers=strict_integers)
    log.info("companies_house_pipeline_start", uri=uri, batch_size=batch_size, **source.get_metadata())

    with transient_download(uri) as archive_path:
        with staged_store(database_path) as conn:
            loader = BatchLoader(
                conn,
                COMPANY_DATA_INSERT,
                batch_size,
                on_progress=lambda n: log.debug("records_inserted", records=n),
            )
            result = loader.load(source.records(archive_path))

    log.info(
        "companies_house_pipeline_complete",
        records_loaded=result.records_loaded,
        batches=result.batches_committed,
        duration_ms=result.duration_ms,
    )
    return result
