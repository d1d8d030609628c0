"""
companydata_shared — settings, store access, domain models and errors shared by
the companydata import pipeline and search API.

Usage:
    from companydata_shared.config import settings
    from companydata_shared.db import connect, ensure_schema
    from companydata_shared.models import CompanyRecord, PostcodeCoordinate
    from companydata_shared.errors import DecodeError, StoreError
"""

__version__ = "0.1.0"
