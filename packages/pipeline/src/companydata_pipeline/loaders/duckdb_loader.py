"""
loaders/duckdb_loader.py — Batched, transactional upsert loader for DuckDB.

Both import pipelines funnel their record streams through BatchLoader:
  - Consumes ParseResults in order, failing fast on the first decode error
    (the pending batch is discarded, nothing of it is committed)
  - Buffers up to ``batch_size`` records, then writes them in one
    transaction: BEGIN, one set-based INSERT OR REPLACE ... SELECT over the
    batch registered as a polars DataFrame, COMMIT
  - Rolls the whole batch back if the insert or the commit fails
  - Flushes the trailing partial batch at end of stream
  - Returns a LoadResult with record and batch counts

A batch holds at most one row per natural key; when a key repeats, the
record read last replaces the earlier ones before the insert. Re-importing
an archive is idempotent per natural key: INSERT OR REPLACE keeps the last
value written for each key.

Usage:
    from companydata_pipeline.loaders.duckdb_loader import BatchLoader, COMPANY_DATA_INSERT

    loader = BatchLoader(conn, COMPANY_DATA_INSERT, batch_size=5000)
    result = loader.load(CompaniesHouseSource().records(zip_path))
    print(result.records_loaded, result.batches_committed)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Generic, TypeVar

import duckdb
import polars as pl
import structlog

from companydata_shared.constants import CODE_POINT_TABLE, COMPANY_DATA_TABLE
from companydata_shared.db import (
    CODE_POINT_COLUMN_TYPES,
    COMPANY_COLUMN_TYPES,
    upsert_from_sql,
)
from companydata_shared.errors import LineDecodeError, StoreError
from companydata_shared.models import CompanyRecord, PostcodeCoordinate

from companydata_pipeline.sources.base import ParseResult

log = structlog.get_logger(__name__)

R = TypeVar("R")

BATCH_SIZE = 5000

# Name the pending batch is registered under while it is inserted
BATCH_RELATION = "_batch_rows"

_POLARS_TYPES: dict[str, pl.DataType] = {
    "VARCHAR": pl.String,
    "INTEGER": pl.Int32,
    "DATE": pl.Date,
}


def polars_schema(column_types: Mapping[str, str]) -> dict[str, pl.DataType]:
    """Polars schema matching a table's DuckDB column types."""
    return {column: _POLARS_TYPES[sql_type] for column, sql_type in column_types.items()}


@dataclass(frozen=True)
class InsertStatement(Generic[R]):
    """A target table and how to turn a record into one of its rows."""

    table: str
    schema: dict[str, pl.DataType]
    to_params: Callable[[R], Sequence[Any]]
    natural_key: Callable[[R], Any]

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self.schema)

    @property
    def sql(self) -> str:
        return upsert_from_sql(self.table, self.columns, BATCH_RELATION)

    def frame(self, records: Iterable[R]) -> pl.DataFrame:
        return pl.DataFrame(
            [self.to_params(record) for record in records],
            schema=self.schema,
            orient="row",
        )


CODE_POINT_INSERT: InsertStatement[PostcodeCoordinate] = InsertStatement(
    table=CODE_POINT_TABLE,
    schema=polars_schema(CODE_POINT_COLUMN_TYPES),
    to_params=PostcodeCoordinate.to_insert_params,
    natural_key=attrgetter("post_code"),
)

COMPANY_DATA_INSERT: InsertStatement[CompanyRecord] = InsertStatement(
    table=COMPANY_DATA_TABLE,
    schema=polars_schema(COMPANY_COLUMN_TYPES),
    to_params=CompanyRecord.to_insert_params,
    natural_key=attrgetter("company_number"),
)


def last_per_key(records: Iterable[R], natural_key: Callable[[R], Any]) -> list[R]:
    """Keep the last record for each key, ordered by where that record was read."""
    latest: dict[Any, R] = {}
    for record in records:
        key = natural_key(record)
        latest.pop(key, None)
        latest[key] = record
    return list(latest.values())




@dataclass
class LoadResult:
    """Summary of one load() call."""

    table: str
    records_loaded: int = 0
    batches_committed: int = 0
    last_line_number: int = 0
    members: list[str] = field(default_factory=list)
    duration_ms: int = 0


class BatchLoader(Generic[R]):
    """
    Writes a stream of decoded records to one table in atomic batches.

    Args:
        conn:        Read-write DuckDB connection. Must not be inside a transaction.
        statement:   The table to upsert into and how to build its rows.
        batch_size:  Records per transaction (1 = one transaction per record).
        on_progress: Called with the cumulative committed count after each batch.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        statement: InsertStatement[R],
        batch_size: int = BATCH_SIZE,
        *,
        on_progress: Callable[[int], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._conn = conn
        self._statement = statement
        self._batch_size = batch_size
        self._on_progress = on_progress
        self._log = log.bind(table=statement.table, batch_size=batch_size)

    # ------------------------------------------------------------------
    # Core load loop
    # ------------------------------------------------------------------

    def load(self, source: Iterable[ParseResult[R]]) -> LoadResult:
        """
        Consume *source* to exhaustion, committing every full batch.

        Returns:
            LoadResult with the number of records committed.

        Raises:
            LineDecodeError: a result carried an error; names member and line.
            StoreError:      a batch failed to write and was rolled back.
            StreamIOError:   raised by the source while reading.
        """
        result = LoadResult(table=self._statement.table)
        t0 = time.monotonic()
        self._log.info("load_start")

        batch: list[R] = []
        results = iter(source)
        try:
            for parsed in results:
                if parsed.error is not None:
                    batch.clear()
                    self._log.error(
                        "load_aborted",
                        member=parsed.member,
                        line=parsed.line_number,
                        error=str(parsed.error),
                        records_loaded=result.records_loaded,
                    )
                    raise LineDecodeError(
                        parsed.member, parsed.line_number, parsed.error
                    ) from parsed.error

                if parsed.member not in result.members:
                    result.members.append(parsed.member)
                result.last_line_number = parsed.line_number
                batch.append(parsed.value)  # type: ignore[arg-type]

                if len(batch) >= self._batch_size:
                    self._flush(batch, result)
                    batch.clear()

            if batch:
                self._flush(batch, result)
                batch.clear()
        finally:
            close = getattr(results, "close", None)
            if close is not None:
                close()

        result.duration_ms = int((time.monotonic() - t0) * 1000)
        self._log.info(
            "load_complete",
            records_loaded=result.records_loaded,
            batches_committed=result.batches_committed,
            members=result.members,
            duration_ms=result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Transaction handling
    # ------------------------------------------------------------------

    def _flush(self, batch: list[R], result: LoadResult) -> None:
        """Write *batch* in a single transaction or not at all."""
        stmt = self._statement
        rows = stmt.frame(last_per_key(batch, stmt.natural_key))
        try:
            self._conn.begin()
            self._conn.register(BATCH_RELATION, rows)
            try:
                self._conn.execute(stmt.sql)
            finally:
                self._conn.unregister(BATCH_RELATION)
            self._conn.commit()
        except duckdb.Error as exc:
            self._rollback()
            first_key = stmt.natural_key(batch[0])
            last_key = stmt.natural_key(batch[-1])
            member = result.members[-1] if result.members else "<unknown member>"
            self._log.error(
                "batch_failed",
                batch=result.batches_committed + 1,
                first_key=first_key,
                last_key=last_key,
                line=result.last_line_number,
                error=str(exc),
            )
            raise StoreError(
                f"failed to write {stmt.table} batch of {len(batch)} records "
                f"(keys {first_key!r}..{last_key!r}, {member} up to line {result.last_line_number}): {exc}"
            ) from exc

        result.records_loaded += len(batch)
        result.batches_committed += 1
        self._log.info(
            "batch_committed",
            batch=result.batches_committed,
            records_loaded=result.records_loaded,
            rows_written=rows.height,
            line=result.last_line_number,
        )
        if self._on_progress is not None:
            self._on_progress(result.records_loaded)

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except duckdb.Error as exc:
            # Nothing to roll back when BEGIN itself failed
            self._log.warning("rollback_failed", error=str(exc))
