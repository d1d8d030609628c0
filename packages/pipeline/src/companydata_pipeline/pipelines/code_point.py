"""
pipelines/code_point.py — OS CodePoint Open postcode lookup import.

Full reload of the code_point table from a CodePoint Open zip:
  archive (local path or URL) -> CodePointSource -> BatchLoader -> code_point

The import writes a staged copy of the store, which replaces the live file
only once every batch has committed; a failed import leaves it untouched.

Usage:
    from companydata_pipeline.pipelines.code_point import run
    result = run("https://.../codepo_gb.zip")
    result = run("./data/codepo_gb.zip", batch_size=1)
"""

from __future__ import annotations

from pathlib import Path

from companydata_shared.config import settings
from companydata_shared.db import staged_store

from companydata_pipeline.loaders.duckdb_loader import (
    CODE_POINT_INSERT,
    BatchLoader,
    LoadResult,
)
from companydata_pipeline.sources.code_point import CodePointSource
from companydata_pipeline.utils.large_file import transient_download
from companydata_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="code_point")


def run(
    uri: str,
    *,
    database_path: str | Path | None = None,
    batch_size: int | None = None,
    strict_integers: bool | None = None,
    member_prefix: str | None = None,
) -> LoadResult:
    """
    Import a CodePoint Open archive into the code_point table.

    Args:
        uri:             Local path or http(s) URL of the zip archive.
        database_path:   Store to write to (default: settings.database_path).
        batch_size:      Records per transaction (default: settings.code_point_batch_size).
        strict_integers: Fail on unparsable eastings/northings instead of using 0.
        member_prefix:   Archive directory holding the data CSVs.

    Returns:
        LoadResult for the code_point table.
    """
    batch_size = settings.code_point_batch_size if batch_size is None else batch_size
    source = CodePointSource(member_prefix=member_prefix, strict_integers=strict_integers)
    log.info("code_point_pipeline_start", uri=uri, batch_size=batch_size, **source.get_metadata())

    with transient_download(uri) as archive_path:
        with staged_store(database_path) as conn:
            loader = BatchLoader(conn, CODE_POINT_INSERT, batch_size)
            result = loader.load(source.records(archive_path))

    log.info(
        "code_point_pipeline_complete",
        records_loaded=result.records_loaded,
        files=len(result.members),
        duration_ms=result.duration_ms,
    )
    return result
