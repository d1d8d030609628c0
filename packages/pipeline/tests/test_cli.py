"""
tests/test_cli.py — Tests for the companydata command line.
"""

from __future__ import annotations

import httpx
import pytest
from click.testing import CliRunner

from companydata_pipeline import cli
from companydata_pipeline.pipelines import code_point, companies_house  # noqa: F401


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    """Keep structlog pointed at the real streams, not CliRunner's."""
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "companies_data.duckdb")


def test_import_code_point(runner, make_zip, code_point_row, db_path):
    archive = make_zip({"Data/CSV/ab.csv": [code_point_row("AB101AA", 394251, 806376)]})

    result = runner.invoke(cli.main, ["import", "code-point", str(archive), "--db", db_path])

    assert result.exit_code == 0, result.output
    assert "code_point: 1 records in 1 batches from 1 file(s)" in result.output


def test_import_companies_house_then_status(
    runner, make_zip, code_point_row, company_header, company_row, db_path
):
    points = make_zip({"Data/CSV/ab.csv": [code_point_row("AB101AA", 394251, 806376)]})
    companies = make_zip({
        "companies.csv": [
            company_header,
            company_row("00000001", post_code="AB10 1AA", incorporation_date="14/02/2019"),
            company_row("00000002", post_code="ZZ99 9ZZ", incorporation_date="01/03/2021"),
        ],
    })

    assert runner.invoke(cli.main, ["import", "code-point", str(points), "--db", db_path]).exit_code == 0
    result = runner.invoke(
        cli.main, ["import", "companies-house", str(companies), "--db", db_path, "--batch-size", "1"]
    )
    assert result.exit_code == 0, result.output
    assert "company_data: 2 records in 2 batches" in result.output

    status = runner.invoke(cli.main, ["status", "--db", db_path])
    assert status.exit_code == 0, status.output
    assert "1 postcodes" in status.output
    assert "2 companies (1 with a location)" in status.output
    assert "2021-03-01" in status.output


def test_import_failure_exits_nonzero(runner, make_zip, code_point_row, db_path):
    archive = make_zip({"Data/CSV/ab.csv": [code_point_row("AB101AA", "x", 806376)]})

    result = runner.invoke(cli.main, ["import", "code-point", str(archive), "--db", db_path])

    assert result.exit_code == 1


def test_download_failure_exits_nonzero(runner, db_path, mock_http):
    url = "https://download.example.org/codepo_gb.zip"
    mock_http.get(url).mock(return_value=httpx.Response(404))

    result = runner.invoke(cli.main, ["import", "code-point", url, "--db", db_path])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_lenient_flag(runner, make_zip, code_point_row, db_path):
    archive = make_zip({"Data/CSV/ab.csv": [code_point_row("AB101AA", "x", 806376)]})

    result = runner.invoke(cli.main, ["import", "code-point", str(archive), "--db", db_path, "--lenient"])

    assert result.exit_code == 0, result.output


def test_batch_size_must_be_positive(runner, make_zip, code_point_row, db_path):
    archive = make_zip({"Data/CSV/ab.csv": [code_point_row("AB101AA", 1, 2)]})
    result = runner.invoke(cli.main, ["import", "code-point", str(archive), "--db", db_path, "--batch-size", "0"])
    assert result.exit_code == 2


def test_status_without_store(runner, tmp_path):
    result = runner.invoke(cli.main, ["status", "--db", str(tmp_path / "missing.duckdb")])
    assert result.exit_code == 1
