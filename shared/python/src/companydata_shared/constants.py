"""
constants.py — Dataset identifiers and attribution text.

Usage:
    from companydata_shared.constants import ATTRIBUTION, COMPANIES_HOUSE_WIDTH
"""

from __future__ import annotations

# Notices that must accompany any response built from the imported data
ATTRIBUTION: tuple[str, ...] = (
    "Contains public sector information licensed under the Open Government Licence v3.0.",
    "Company data supplied by Companies House (Basic Company Data).",
    "Contains OS data © Crown copyright and database right.",
)

# Number of positional columns in a Basic Company Data export row
COMPANIES_HOUSE_WIDTH = 55

CODE_POINT_TABLE = "code_point"
COMPANY_DATA_TABLE = "company_data"
