"""Shared test fixtures for companydata-api."""

from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from companydata_shared.db import MEMORY_DATABASE, connect, ensure_schema
from companydata_shared.models import (
    CODE_POINT_COLUMNS,
    COMPANY_COLUMNS,
    CompanyRecord,
    PostcodeCoordinate,
)

from companydata_api.app import create_app
from companydata_api.services.search_service import SearchRepository

POSTCODES = [
    PostcodeCoordinate(post_code="SW1A 1AA", easting=500050, northing=150050),
    PostcodeCoordinate(post_code="SW1A 2AA", easting=500200, northing=150050),
    PostcodeCoordinate(post_code="SW1A 3AA", easting=500100, northing=150100),
]

COMPANIES = [
    CompanyRecord(
        company_name="INSIDE LTD",
        company_number="00000001",
        reg_address_post_code="SW1A 1AA",
        incorporation_date=date(2019, 2, 14),
        mortgages_num_charges=0,
    ),
    CompanyRecord(
        company_name="INSIDE TOO LTD",
        company_number="00000002",
        reg_address_post_code="SW1A 1AA",
        incorporation_date=date(2021, 3, 1),
    ),
    CompanyRecord(
        company_name="OUTSIDE LTD",
        company_number="00000003",
        reg_address_post_code="SW1A 2AA",
        incorporation_date=date(2020, 1, 1),
    ),
    CompanyRecord(
        company_name="ON THE EDGE LTD",
        company_number="00000004",
        reg_address_post_code="SW1A 3AA",
    ),
    CompanyRecord(
        company_name="NOWHERE LTD",
        company_number="00000005",
        reg_address_post_code="ZZ99 9ZZ",
        incorporation_date=date(2018, 5, 5),
    ),
]



def _insert_sql(table, columns):
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


@pytest.fixture()
def conn():
    """In-memory store with the schema only."""
    connection = connect(MEMORY_DATABASE)
    ensure_schema(connection)
    yield connection
    connection.close()


@pytest.fixture()
def seed():
    """Insert POSTCODES and COMPANIES through a connection."""

    def _seed(connection):
        insert_code_point = _insert_sql("code_point", CODE_POINT_COLUMNS)
        insert_company = _insert_sql("company_data", COMPANY_COLUMNS)
        connection.executemany(insert_code_point, [p.to_insert_params() for p in POSTCODES])
        connection.executemany(insert_company, [c.to_insert_params() for c in COMPANIES])

    return _seed


@pytest.fixture()
def populated_conn(conn, seed):
    """Store holding POSTCODES and COMPANIES."""
    seed(conn)
    return conn


@pytest.fixture()
def repository(populated_conn):
    return SearchRepository(populated_conn, fetch_size=2)


@pytest.fixture()
def app(repository):
    """Test app serving the populated in-memory store."""
    return create_app(repository=repository)


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)
