"""
companydata_pipeline — import workers for the companydata store.

Architecture:
  transforms/  — pure field decoders, positional field maps, postcode normalisation
  sources/     — streaming zip-archive record sources (CodePoint, Companies House)
  loaders/     — batched transactional DuckDB upserts
  pipelines/   — orchestrators that wire download -> source -> loader
  utils/       — structlog configuration, retry decorator, download helper

Quick start:
    from companydata_pipeline.pipelines import code_point, companies_house
    code_point.run("./data/codepo_gb.zip")
    companies_house.run("./data/BasicCompanyDataAsOneFile-2025-06-01.zip")

CLI:
    companydata import code-point ./data/codepo_gb.zip
    companydata import companies-house https://download.companieshouse.gov.uk/...
    companydata status
    companydata serve --port 8080
"""

__version__ = "0.1.0"
