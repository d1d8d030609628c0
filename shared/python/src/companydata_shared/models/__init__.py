"""
companydata_shared.models — Pydantic models matching each database table.

These models are used by:
- packages/pipeline: typed records produced by the field decoders
- packages/api: rows streamed out of the search repository

Table models provide .to_insert_params() -> tuple in column order;
CompanyRecord.from_db_row(row: dict) maps NULL text columns back to "".
"""

from companydata_shared.models.companies import (
    COMPANY_COLUMNS,
    CompanyDataWithLocation,
    CompanyRecord,
)
from companydata_shared.models.geography import (
    CODE_POINT_COLUMNS,
    BoundingBox,
    PostcodeCoordinate,
)

__all__ = [
    "COMPANY_COLUMNS",
    "CODE_POINT_COLUMNS",
    "CompanyRecord",
    "CompanyDataWithLocation",
    "PostcodeCoordinate",
    "BoundingBox",
]
