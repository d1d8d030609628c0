"""
cli.py — Click CLI entrypoint for companydata.

Usage:
    companydata import code-point ./data/codepo_gb.zip
    companydata import companies-house https://download.companieshouse.gov.uk/BasicCompanyDataAsOneFile-2025-06-01.zip
    companydata status
    companydata serve --port 8080

Imports are fail-fast: any decode or store error ends the run with exit
status 1 after logging which member and line caused it.
"""

from __future__ import annotations

from collections.abc import Callable

import click
import structlog

from companydata_shared.config import settings
from companydata_shared.errors import CompanyDataError

from companydata_pipeline.loaders.duckdb_loader import LoadResult
from companydata_pipeline.utils.logging import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level",
)
@click.option(
    "--log-format",
    default=settings.log_format,
    type=click.Choice(["console", "json"]),
    help="Log output format",
)
def main(log_level: str, log_format: str) -> None:
    """companydata import and search tools."""
    configure_logging(log_level, log_format)


# ---------------------------------------------------------------------------
# import
# ---------------------------------------------------------------------------


@main.group("import")
def import_group() -> None:
    """Load a dataset archive into the store (full reload, upsert by key)."""


def _import_options(fn: Callable) -> Callable:
    fn = click.option(
        "--lenient",
        is_flag=True,
        default=not settings.strict_integers,
        help="Decode unparsable integer columns as 0 instead of failing.",
    )(fn)
    fn = click.option(
        "--batch-size",
        type=click.IntRange(min=1),
        default=None,
        help="Records per transaction.",
    )(fn)
    fn = click.option(
        "--db",
        "database_path",
        default=None,
        help="Database file (default: DATABASE_PATH setting).",
    )(fn)
    return click.argument("uri")(fn)


def _report(name: str, run: Callable[[], LoadResult]) -> None:
    try:
        result = run()
    except CompanyDataError as exc:
        log.error("import_failed", dataset=name, error_code=exc.error_code, error=str(exc))
        raise SystemExit(1) from exc

    click.echo(
        f"{name}: {result.records_loaded:,} records in {result.batches_committed} "
        f"batches from {len(result.members)} file(s) ({result.duration_ms / 1000:.1f}s)"
    )


@import_group.command("code-point")
@_import_options
def import_code_point(
    uri: str, database_path: str | None, batch_size: int | None, lenient: bool
) -> None:
    """Import an OS CodePoint Open zip (path or URL)."""
    from companydata_pipeline.pipelines import code_point

    _report(
        "code_point",
        lambda: code_point.run(
            uri,
            database_path=database_path,
            batch_size=batch_size,
            strict_integers=not lenient,
        ),
    )


@import_group.command("companies-house")
@_import_options
def import_companies_house(
    uri: str, database_path: str | None, batch_size: int | None, lenient: bool
) -> None:
    """Import a Companies House Basic Company Data zip (path or URL)."""
    from companydata_pipeline.pipelines import companies_house

    _report(
        "company_data",
        lambda: companies_house.run(
            uri,
            database_path=database_path,
            batch_size=batch_size,
            strict_integers=not lenient,
        ),
    )


# ---------------------------------------------------------------------------
# status / serve
# ---------------------------------------------------------------------------


@main.command()
@click.option("--db", "database_path", default=None, help="Database file.")
def status(database_path: str | None) -> None:
    """Show row counts and data freshness of the store."""
    from companydata_shared.db import store_connection

    try:
        with store_connection(database_path, read_only=True) as conn:
            (code_points,) = conn.execute("SELECT COUNT(*) FROM code_point").fetchone()
            companies, latest = conn.execute(
                "SELECT COUNT(*), MAX(incorporation_date) FROM company_data"
            ).fetchone()
            (located,) = conn.execute(
                "SELECT COUNT(*) FROM company_data cd "
                "JOIN code_point cp ON cp.post_code = cd.reg_address_post_code"
            ).fetchone()
    except Exception as exc:
        click.echo(f"  Error reading store: {exc}", err=True)
        raise SystemExit(1) from exc

    click.echo("Store status:")
    click.echo(f"  code_point      {code_points:>12,} postcodes")
    click.echo(f"  company_data    {companies:>12,} companies ({located:,} with a location)")
    click.echo(f"  last updated    {latest.isoformat() if latest else 'never'}")


@main.command()
@click.option("--host", default=settings.api_host, show_default=True)
@click.option("--port", default=settings.api_port, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the search API server."""
    import uvicorn

    log.info("api_server_start", host=host, port=port)
    uvicorn.run("companydata_api.app:app", host=host, port=port, reload=reload, log_config=None)


if __name__ == "__main__":
    main()
