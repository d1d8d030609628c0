"""
db.py — DuckDB store access and schema bootstrap.

The API holds the database file open read-only for the life of the process.
DuckDB admits one read-write process per file and refuses to open a file a
reader still holds, so imports never write the live file. staged_store()
copies it to a staging file, the import writes and checkpoints the copy,
and the copy is renamed over the live file only when the import succeeds.
Readers keep serving the previous file until they reopen the path; the
search repository does so when the file's identity changes.

Importers serialize on a lock file beside the database, waiting at most
``settings.db_busy_timeout_ms`` before failing with StoreError.

Usage:
    from companydata_shared.db import staged_store, store_connection

    with staged_store() as conn:                      # pipeline writes
        ...
    with store_connection(read_only=True) as conn:    # API / CLI reads
        ...
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import duckdb
import structlog
from filelock import FileLock, Timeout
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_delay,
    wait_exponential,
)

from companydata_shared.config import settings
from companydata_shared.errors import StoreError
from companydata_shared.models import CODE_POINT_COLUMNS, COMPANY_COLUMNS

logger = structlog.get_logger(__name__)

MEMORY_DATABASE = ":memory:"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_DATE_COLUMNS = frozenset(c for c in COMPANY_COLUMNS if c.endswith("_date"))
_INT_COLUMNS = frozenset(
    c for c in COMPANY_COLUMNS
    if c.startswith(("accounts_account_ref_", "mortgages_num_", "limited_partnerships_num_"))
)


def _company_column_type(name: str) -> str:
    if name in _DATE_COLUMNS:
        return "DATE"
    if name in _INT_COLUMNS:
        return "INTEGER"
    return "VARCHAR"


CODE_POINT_COLUMN_TYPES: dict[str, str] = dict(
    zip(CODE_POINT_COLUMNS, ("VARCHAR", "INTEGER", "INTEGER"))
)
COMPANY_COLUMN_TYPES: dict[str, str] = {c: _company_column_type(c) for c in COMPANY_COLUMNS}

# No secondary indexes: DuckDB cannot upsert rows whose indexed columns change.
SCHEMA_SQL = (
    "CREATE TABLE IF NOT EXISTS code_point (\n"
    "    post_code VARCHAR PRIMARY KEY,\n"
    "    easting INTEGER NOT NULL,\n"
    "    northing INTEGER NOT NULL\n"
    ");\n"
    "CREATE TABLE IF NOT EXISTS company_data (\n"
    + ",\n".join(
        f"    {col} {col_type}" + (" PRIMARY KEY" if col == "company_number" else "")
        for col, col_type in COMPANY_COLUMN_TYPES.items()
    )
    + "\n);\n"
)


def upsert_from_sql(table: str, columns: tuple[str, ...], relation: str) -> str:
    """INSERT OR REPLACE every row of *relation* into *table*, matching columns by name."""
    column_list = ", ".join(columns)
    return f"INSERT OR REPLACE INTO {table} ({column_list}) SELECT {column_list} FROM {relation}"


def ensure_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the code_point and company_data tables if they are missing."""
    try:
        conn.execute(SCHEMA_SQL)
    except duckdb.Error as exc:
        raise StoreError(f"failed to create schema: {exc}") from exc
    logger.debug("schema_ready")


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


def connect(
    database_path: str | Path | None = None,
    *,
    read_only: bool = False,
    busy_timeout_ms: int | None = None,
) -> duckdb.DuckDBPyConnection:
    """
    Open a DuckDB connection to the companydata store.

    Args:
        database_path:   File path, or ":memory:". Defaults to settings.database_path.
        read_only:       Open without taking the write lock (API processes).
        busy_timeout_ms: Upper bound on waiting for a conflicting lock.

    Returns:
        duckdb.DuckDBPyConnection

    Raises:
        StoreError: the file could not be opened within the timeout.
    """
    path = str(database_path or settings.database_path)
    timeout_ms = settings.db_busy_timeout_ms if busy_timeout_ms is None else busy_timeout_ms

    if path != MEMORY_DATABASE:
        if not read_only:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        elif not Path(path).exists():
            raise StoreError(f"database {path} does not exist; run an import first")

    try:
        for attempt in Retrying(
            stop=stop_after_delay(timeout_ms / 1000),
            wait=wait_exponential(multiplier=0.05, max=1.0),
            retry=retry_if_exception_type(duckdb.IOException),
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "database_locked_retry",
                        path=path,
                        attempt=attempt.retry_state.attempt_number,
                    )
                conn = duckdb.connect(path, read_only=read_only)
    except RetryError as exc:
        last = exc.last_attempt.exception()
        raise StoreError(
            f"failed to open database {path} within {timeout_ms}ms: {last}"
        ) from last
    except duckdb.Error as exc:
        raise StoreError(f"failed to open database {path}: {exc}") from exc

    logger.info("duckdb_connected", path=path, read_only=read_only)
    return conn


@contextmanager
def store_connection(
    database_path: str | Path | None = None,
    *,
    read_only: bool = False,
    busy_timeout_ms: int | None = None,
) -> Iterator[duckdb.DuckDBPyConnection]:
    """Open a connection, bootstrap the schema when writable, and close on exit."""
    conn = connect(database_path, read_only=read_only, busy_timeout_ms=busy_timeout_ms)
    try:
        if not read_only:
            ensure_schema(conn)
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Staged writes
# ---------------------------------------------------------------------------


def staging_path(database_path: str | Path) -> Path:
    """The file an import writes before it replaces *database_path*."""
    path = Path(database_path)
    return path.with_name(path.name + ".importing")


def _discard(path: Path) -> None:
    for leftover in (path, path.with_name(path.name + ".wal")):
        leftover.unlink(missing_ok=True)


@contextmanager
def staged_store(
    database_path: str | Path | None = None,
    *,
    busy_timeout_ms: int | None = None,
) -> Iterator[duckdb.DuckDBPyConnection]:
    """
    Yield a writable connection whose changes replace the store atomically.

    The live file is copied to a staging file and the connection writes the
    copy. A clean exit closes (and so checkpoints) the copy and renames it
    over the live file; an exception discards it and leaves the live file
    untouched. An in-memory database is written directly.

    Raises:
        StoreError: another import held the lock past the timeout, or the
            store could not be copied, opened or replaced.
    """
    path = str(database_path or settings.database_path)
    if path == MEMORY_DATABASE:
        with store_connection(path, busy_timeout_ms=busy_timeout_ms) as conn:
            yield conn
        return

    live = Path(path)
    staging = staging_path(live)
    timeout_ms = settings.db_busy_timeout_ms if busy_timeout_ms is None else busy_timeout_ms
    live.parent.mkdir(parents=True, exist_ok=True)

    lock = FileLock(f"{live}.lock", timeout=timeout_ms / 1000)
    try:
        lock.acquire()
    except Timeout as exc:
        raise StoreError(
            f"another import holds {live}; gave up after {timeout_ms}ms"
        ) from exc

    try:
        _discard(staging)
        try:
            if live.exists():
                shutil.copyfile(live, staging)
        except OSError as exc:
            raise StoreError(f"failed to stage {live}: {exc}") from exc
        logger.info("store_staged", path=str(live), staging=str(staging))

        try:
            with store_connection(staging, busy_timeout_ms=timeout_ms) as conn:
                yield conn
        except BaseException:
            _discard(staging)
            logger.warning("store_discarded", path=str(live), staging=str(staging))
            raise

        try:
            os.replace(staging, live)
        except OSError as exc:
            _discard(staging)
            raise StoreError(f"failed to replace {live}: {exc}") from exc
        logger.info("store_published", path=str(live))
    finally:
        lock.release()
