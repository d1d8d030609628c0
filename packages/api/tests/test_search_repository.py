"""Tests for SearchRepository against an in-memory store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from companydata_shared.db import staged_store, store_connection
from companydata_shared.errors import QueryExecutionError, StoreError
from companydata_shared.models import BoundingBox, CompanyDataWithLocation

from companydata_api.services.search_service import (
    SearchRepository,
    StoreSearchRepository,
    collect_list,
    group_by_postcode,
)

BOX = BoundingBox.from_ltrb(500000, 150000, 500100, 150100)


def test_find_streams_matches(repository):
    seen: list[CompanyDataWithLocation] = []

    count = repository.find(BOX, seen.append)

    assert count == 3
    assert len(seen) == 3
    assert {c.company_number for c in seen} == {"00000001", "00000002", "00000004"}
    assert all(BOX.contains(c.easting, c.northing) for c in seen)


def test_result_carries_record_and_location(repository):
    (company,) = [
        c for c in collect_list(repository, BOX) if c.company_number == "00000001"
    ]
    assert company.company_name == "INSIDE LTD"
    assert company.reg_address_post_code == "SW1A 1AA"
    assert (company.easting, company.northing) == (500050, 150050)
    assert company.mortgages_num_charges == 0
    assert company.mortgages_num_outstanding is None
    assert company.reg_address_care_of == ""


def test_company_without_postcode_location_never_returned(repository):
    everywhere = BoundingBox.from_ltrb(0, 0, 700000, 1300000)
    numbers = {c.company_number for c in collect_list(repository, everywhere)}
    assert "00000005" not in numbers
    assert numbers == {"00000001", "00000002", "00000003", "00000004"}


def test_empty_box(repository):
    far_away = BoundingBox.from_ltrb(100000, 100000, 100010, 100010)
    assert repository.find(far_away, lambda c: None) == 0
    assert collect_list(repository, far_away) == []


def test_group_by_postcode(repository):
    grouped = group_by_postcode(repository, BOX)

    assert set(grouped) == {"SW1A 1AA", "SW1A 3AA"}
    assert {c.company_number for c in grouped["SW1A 1AA"]} == {"00000001", "00000002"}
    assert [c.company_number for c in grouped["SW1A 3AA"]] == ["00000004"]


def test_last_updated_is_latest_incorporation(repository):
    assert repository.last_updated() == datetime(2021, 3, 1, tzinfo=timezone.utc)


def test_last_updated_absent_for_empty_store(conn):
    assert SearchRepository(conn).last_updated() is None


def test_queries_are_independent(repository):
    first = collect_list(repository, BOX)
    second = collect_list(repository, BOX)
    assert {c.company_number for c in first} == {c.company_number for c in second}


def test_unpreparable_query(conn):
    with pytest.raises(StoreError):
        SearchRepository(conn, search_sql="SELECT * FROM no_such_table WHERE ? < ? AND ? < ?")


def test_store_failure_raises_query_error(populated_conn):
    repo = SearchRepository(populated_conn)
    populated_conn.close()

    with pytest.raises(QueryExecutionError):
        repo.find(BOX, lambda c: None)


def test_ping(repository, populated_conn):
    assert repository.ping() is True


def test_fractional_bounds_are_not_rounded(repository):
    # SW1A 1AA sits at 500050; a box starting at 500050.4 must exclude it
    box = BoundingBox.from_ltrb(500050.4, 150000, 500100, 150100)
    assert {c.company_number for c in collect_list(repository, box)} == {"00000004"}


# ---------------------------------------------------------------------------
# Prepared search per thread
# ---------------------------------------------------------------------------


def test_thread_reuses_its_prepared_cursor(repository):
    assert repository.prepared_cursors == 0

    repository.find(BOX, lambda c: None)
    repository.find(BOX, lambda c: None)
    assert repository.ping()

    assert repository.prepared_cursors == 1


def test_concurrent_searches_prepare_once_per_thread(repository):
    threads: set[int] = set()

    def search(_):
        threads.add(threading.get_ident())
        return repository.find(BOX, lambda c: None)

    with ThreadPoolExecutor(max_workers=4) as pool:
        counts = list(pool.map(search, range(40)))

    assert counts == [3] * 40
    assert repository.prepared_cursors == len(threads)
    assert 1 <= len(threads) <= 4


def test_closed_repository_fails_queries(repository):
    repository.find(BOX, lambda c: None)
    repository.close()

    assert repository.prepared_cursors == 0
    with pytest.raises(QueryExecutionError):
        repository.find(BOX, lambda c: None)
    assert repository.ping() is False


# ---------------------------------------------------------------------------
# Store file replaced by an import
# ---------------------------------------------------------------------------


@pytest.fixture()
def store_file(tmp_path, seed):
    db_path = tmp_path / "companies_data.duckdb"
    with store_connection(db_path) as conn:
        seed(conn)
    return db_path


def test_store_repository_serves_file(store_file):
    repo = StoreSearchRepository(store_file, fetch_size=2)
    try:
        assert repo.find(BOX, lambda c: None) == 3
        assert repo.last_updated() == datetime(2021, 3, 1, tzinfo=timezone.utc)
        assert repo.ping()
    finally:
        repo.close()


def test_import_runs_while_repository_holds_store(store_file):
    repo = StoreSearchRepository(store_file)
    try:
        assert len(collect_list(repo, BOX)) == 3

        with staged_store(store_file, busy_timeout_ms=500) as conn:
            conn.execute(
                "INSERT INTO company_data (company_number, company_name, reg_address_post_code, incorporation_date) "
                "VALUES ('00000006', 'NEWCOMER LTD', 'SW1A 1AA', DATE '2024-07-01')"
            )
            # Nothing published until the import finishes
            assert len(collect_list(repo, BOX)) == 3

        numbers = {c.company_number for c in collect_list(repo, BOX)}
        assert numbers == {"00000001", "00000002", "00000004", "00000006"}
        assert repo.last_updated() == datetime(2024, 7, 1, tzinfo=timezone.utc)
    finally:
        repo.close()


def test_failed_import_keeps_serving_previous_store(store_file):
    repo = StoreSearchRepository(store_file)
    try:
        with pytest.raises(RuntimeError):
            with staged_store(store_file) as conn:
                conn.execute("DELETE FROM company_data")
                raise RuntimeError("import aborted")

        assert len(collect_list(repo, BOX)) == 3
    finally:
        repo.close()


def test_store_repository_missing_file(tmp_path):
    with pytest.raises(StoreError):
        StoreSearchRepository(tmp_path / "absent.duckdb")


def test_closed_store_repository(store_file):
    repo = StoreSearchRepository(store_file)
    repo.close()

    assert repo.ping() is False
    with pytest.raises(QueryExecutionError):
        repo.find(BOX, lambda c: None)
