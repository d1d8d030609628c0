"""companydata_api — read-only HTTP search over the company/postcode store."""

__version__ = "0.1.0"
