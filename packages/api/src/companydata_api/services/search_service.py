"""
Bounding-box search over the companies joined to their postcode grid reference.

SearchRepository holds one store connection, prepares the range-join query
once on each thread's cursor and caches the data-freshness timestamp.
StoreSearchRepository wraps it for a store file that imports replace
(see companydata_shared.db.staged_store), reopening the file when it
changes. find() streams rows one at a time to a callback; collect_list()
and group_by_postcode() build the two response shapes on top of it.
"""

from __future__ import annotations

import math
import os
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Protocol

import duckdb
import structlog
from pydantic import ValidationError

from companydata_shared.config import settings
from companydata_shared.db import connect
from companydata_shared.errors import QueryExecutionError, StoreError
from companydata_shared.models import (
    COMPANY_COLUMNS,
    BoundingBox,
    CompanyDataWithLocation,
)

logger = structlog.get_logger(__name__)

# Parameters bind positionally: min_easting, max_easting, min_northing, max_northing
SEARCH_SQL = (
    "SELECT "
    + ", ".join(f"cd.{col}" for col in COMPANY_COLUMNS)
    + ", cp.easting, cp.northing\n"
    "FROM code_point AS cp\n"
    "JOIN company_data AS cd ON cd.reg_address_post_code = cp.post_code\n"
    "WHERE cp.easting BETWEEN CAST(? AS DOUBLE) AND CAST(? AS DOUBLE)\n"
    "  AND cp.northing BETWEEN CAST(? AS DOUBLE) AND CAST(? AS DOUBLE)"
)

LAST_UPDATED_SQL = "SELECT MAX(incorporation_date) FROM company_data"

# Name of the prepared search on every cursor
SEARCH_STATEMENT = "company_search"

# An inverted box: plans and binds the query without touching any rows
_PREPARE_PARAMS = (1.0, 0.0, 1.0, 0.0)

RowCallback = Callable[[CompanyDataWithLocation], None]


class CompanySearch(Protocol):
    """What the routes need from a repository."""

    def find(self, bbox: BoundingBox, row_callback: RowCallback) -> int: ...

    def last_updated(self) -> datetime | None: ...

    def ping(self) -> bool: ...


def _execute_sql(params: tuple[float, ...]) -> str:
    values = [float(v) for v in params]
    if not all(math.isfinite(v) for v in values):
        raise QueryExecutionError(f"bounding box values must be finite, got {params}")
    return f"EXECUTE {SEARCH_STATEMENT}({', '.join(repr(v) for v in values)})"


class SearchRepository:
    """
    Read side of the store.

    Every thread gets its own cursor (DuckDB's per-thread connection) with
    the search prepared on it the first time that thread queries; later
    calls on the thread only EXECUTE it. Concurrent requests never share a
    cursor or a result set.

    Args:
        conn:             Open DuckDB connection (read-only in the API).
        search_sql:       Range-join query taking the four bbox bounds.
        last_updated_sql: Scalar query for the freshness timestamp.
        fetch_size:       Rows pulled from the cursor per fetch.

    Raises:
        StoreError: the query cannot be prepared against this store.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        *,
        search_sql: str = SEARCH_SQL,
        last_updated_sql: str = LAST_UPDATED_SQL,
        fetch_size: int | None = None,
    ) -> None:
        self._conn = conn
        self._cursor_lock = threading.Lock()
        self._local = threading.local()
        self._cursors: list[duckdb.DuckDBPyConnection] = []
        self._search_sql = search_sql
        self._fetch_size = fetch_size or settings.search_fetch_size
        self._check_prepares()
        self._last_updated = self._query_last_updated(last_updated_sql)
        logger.info("search_repository_ready", last_updated=self._last_updated)

    # ------------------------------------------------------------------
    # Cursors
    # ------------------------------------------------------------------

    def _new_cursor(self) -> duckdb.DuckDBPyConnection:
        with self._cursor_lock:
            return self._conn.cursor()

    def _prepare_on(self, cursor: duckdb.DuckDBPyConnection) -> None:
        cursor.execute(f"PREPARE {SEARCH_STATEMENT} AS {self._search_sql}")

    def _check_prepares(self) -> None:
        cursor = self._new_cursor()
        try:
            self._prepare_on(cursor)
            cursor.execute(_execute_sql(_PREPARE_PARAMS)).fetchall()
        except duckdb.Error as exc:
            raise StoreError(f"error preparing search statement: {exc}") from exc
        finally:
            cursor.close()

    def _thread_cursor(self) -> duckdb.DuckDBPyConnection:
        cursor = getattr(self._local, "cursor", None)
        if cursor is not None:
            return cursor
        cursor = self._new_cursor()
        try:
            self._prepare_on(cursor)
        except duckdb.Error:
            cursor.close()
            raise
        with self._cursor_lock:
            self._cursors.append(cursor)
        self._local.cursor = cursor
        logger.debug("search_cursor_prepared", thread=threading.get_ident())
        return cursor

    @property
    def prepared_cursors(self) -> int:
        """Number of thread cursors holding the prepared search."""
        with self._cursor_lock:
            return len(self._cursors)

    def close(self) -> None:
        """Close the thread cursors. The connection belongs to the caller."""
        with self._cursor_lock:
            cursors, self._cursors = self._cursors, []
        for cursor in cursors:
            try:
                cursor.close()
            except duckdb.Error as exc:
                logger.warning("cursor_close_failed", error=str(exc))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _query_last_updated(self, sql: str) -> datetime | None:
        cursor = self._new_cursor()
        try:
            row = cursor.execute(sql).fetchone()
        except duckdb.Error as exc:
            raise StoreError(f"failed to determine last update: {exc}") from exc
        finally:
            cursor.close()

        if row is None or row[0] is None:
            # Table is empty or every incorporation_date is NULL
            return None
        value = row[0]
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def last_updated(self) -> datetime | None:
        """Latest incorporation date in the store, computed at construction."""
        return self._last_updated

    def find(self, bbox: BoundingBox, row_callback: RowCallback) -> int:
        """
        Stream every company located inside *bbox* to *row_callback*.

        Companies whose postcode has no grid reference are never returned.

        Returns:
            Number of rows delivered.

        Raises:
            QueryExecutionError: the store failed, or a row could not be read.
                Rows already delivered before the failure must be discarded
                by the caller.
        """
        delivered = 0
        sql = _execute_sql(bbox.query_params())
        try:
            cursor = self._thread_cursor()
            cursor.execute(sql)
            while True:
                rows = cursor.fetchmany(self._fetch_size)
                if not rows:
                    break
                for row in rows:
                    row_callback(CompanyDataWithLocation.from_search_row(row))
                    delivered += 1
        except duckdb.Error as exc:
            logger.error("search_failed", bbox=bbox.query_params(), delivered=delivered, error=str(exc))
            raise QueryExecutionError(f"error querying database: {exc}") from exc
        except ValidationError as exc:
            logger.error("search_row_invalid", bbox=bbox.query_params(), delivered=delivered, error=str(exc))
            raise QueryExecutionError(f"error scanning row {delivered + 1}: {exc}") from exc
        return delivered

    def ping(self) -> bool:
        try:
            return self._thread_cursor().execute("SELECT 1").fetchone() == (1,)
        except duckdb.Error:
            return False


class StoreSearchRepository:
    """
    SearchRepository over the store file, following imports that replace it.

    Each call compares the file's identity (inode, mtime, size) with the one
    it opened. When an import has renamed a new file into place, the next
    call waits for in-flight queries to finish, closes the old connection
    and opens the new file read-only. DuckDB shares one database instance
    per path within a process, so the old connection has to be gone before
    the path is opened again.

    Raises:
        StoreError: the store cannot be opened or prepared at construction.
    """

    def __init__(self, database_path: str | Path | None = None, *, fetch_size: int | None = None) -> None:
        self._path = Path(database_path or settings.database_path)
        self._fetch_size = fetch_size
        self._cond = threading.Condition()
        self._active = 0
        self._reloading = False
        self._closed = False
        self._conn: duckdb.DuckDBPyConnection | None = None
        self._repo: SearchRepository | None = None
        self._identity: tuple[int, int, int] | None = None
        self._open()

    def _file_identity(self) -> tuple[int, int, int]:
        st = os.stat(self._path)
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _open(self) -> None:
        identity = self._file_identity() if self._path.exists() else None
        conn = connect(self._path, read_only=True)
        try:
            repo = SearchRepository(conn, fetch_size=self._fetch_size)
        except StoreError:
            conn.close()
            raise
        self._conn, self._repo, self._identity = conn, repo, identity
        logger.info("store_opened", path=str(self._path), identity=identity)

    def _close_current(self) -> None:
        if self._repo is not None:
            self._repo.close()
        if self._conn is not None:
            self._conn.close()
        self._conn, self._repo = None, None

    def _reload_if_replaced(self) -> None:
        if self._closed:
            return
        try:
            identity = self._file_identity()
        except OSError:
            # Mid-rename or removed: keep serving what is open
            return
        if identity == self._identity and self._repo is not None:
            return

        with self._cond:
            if self._reloading:
                return
            self._reloading = True
            self._cond.wait_for(lambda: self._active == 0)
        try:
            if identity != self._identity or self._repo is None:
                logger.info("store_replaced", path=str(self._path), identity=identity)
                self._close_current()
                self._open()
        except StoreError as exc:
            logger.error("store_reopen_failed", path=str(self._path), error=str(exc))
        finally:
            with self._cond:
                self._reloading = False
                self._cond.notify_all()

    @contextmanager
    def _current(self) -> Iterator[SearchRepository]:
        self._reload_if_replaced()
        with self._cond:
            self._cond.wait_for(lambda: not self._reloading)
            repo = self._repo
            if repo is None:
                raise QueryExecutionError(f"store {self._path} is not open")
            self._active += 1
        try:
            yield repo
        finally:
            with self._cond:
                self._active -= 1
                self._cond.notify_all()

    def find(self, bbox: BoundingBox, row_callback: RowCallback) -> int:
        with self._current() as repo:
            return repo.find(bbox, row_callback)

    def last_updated(self) -> datetime | None:
        with self._current() as repo:
            return repo.last_updated()

    def ping(self) -> bool:
        try:
            with self._current() as repo:
                return repo.ping()
        except QueryExecutionError:
            return False

    def close(self) -> None:
        with self._cond:
            self._reloading = True
            self._cond.wait_for(lambda: self._active == 0)
            self._close_current()
            self._closed = True
            self._reloading = False
            self._cond.notify_all()
        logger.info("store_closed", path=str(self._path))


# ---------------------------------------------------------------------------
# Result shapes
# ---------------------------------------------------------------------------


def collect_list(repo: CompanySearch, bbox: BoundingBox) -> list[CompanyDataWithLocation]:
    """All matches in query order."""
    results: list[CompanyDataWithLocation] = []
    repo.find(bbox, results.append)
    return results


def group_by_postcode(
    repo: CompanySearch, bbox: BoundingBox
) -> dict[str, list[CompanyDataWithLocation]]:
    """All matches keyed by registered postcode."""
    results: dict[str, list[CompanyDataWithLocation]] = {}

    def add(company: CompanyDataWithLocation) -> None:
        results.setdefault(company.reg_address_post_code, []).append(company)

    repo.find(bbox, add)
    return results
