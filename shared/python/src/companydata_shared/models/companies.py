"""
models/companies.py — Pydantic models for the company_data table and the
search join result.

Column order of COMPANY_COLUMNS is the insert order used by the pipeline
and the select order used by the search repository.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict

COMPANY_COLUMNS: tuple[str, ...] = (
    "company_name",
    "company_number",
    "reg_address_care_of",
    "reg_address_po_box",
    "reg_address_address_line_1",
    "reg_address_address_line_2",
    "reg_address_post_town",
    "reg_address_county",
    "reg_address_country",
    "reg_address_post_code",
    "company_category",
    "company_status",
    "country_of_origin",
    "dissolution_date",
    "incorporation_date",
    "accounts_account_ref_day",
    "accounts_account_ref_month",
    "accounts_next_due_date",
    "accounts_last_made_up_date",
    "accounts_account_category",
    "returns_next_due_date",
    "returns_last_made_up_date",
    "mortgages_num_charges",
    "mortgages_num_outstanding",
    "mortgages_num_part_satisfied",
    "mortgages_num_satisfied",
    "sic_code_1",
    "sic_code_2",
    "sic_code_3",
    "sic_code_4",
    "limited_partnerships_num_gen_partners",
    "limited_partnerships_num_lim_partners",
    "uri",
    "conf_stmt_next_due_date",
    "conf_stmt_last_made_up_date",
)


class CompanyRecord(BaseModel):
    """Matches the company_data table row. Natural key: company_number."""

    model_config = ConfigDict(frozen=True)

    company_name: str
    company_number: str
    reg_address_care_of: str = ""
    reg_address_po_box: str = ""
    reg_address_address_line_1: str = ""
    reg_address_address_line_2: str = ""
    reg_address_post_town: str = ""
    reg_address_county: str = ""
    reg_address_country: str = ""
    reg_address_post_code: str = ""
    company_category: str = ""
    company_status: str = ""
    country_of_origin: str = ""
    dissolution_date: date | None = None
    incorporation_date: date | None = None
    accounts_account_ref_day: int | None = None
    accounts_account_ref_month: int | None = None
    accounts_next_due_date: date | None = None
    accounts_last_made_up_date: date | None = None
    accounts_account_category: str = ""
    returns_next_due_date: date | None = None
    returns_last_made_up_date: date | None = None
    mortgages_num_charges: int | None = None
    mortgages_num_outstanding: int | None = None
    mortgages_num_part_satisfied: int | None = None
    mortgages_num_satisfied: int | None = None
    sic_code_1: str = ""
    sic_code_2: str = ""
    sic_code_3: str = ""
    sic_code_4: str = ""
    limited_partnerships_num_gen_partners: int | None = None
    limited_partnerships_num_lim_partners: int | None = None
    uri: str = ""
    conf_stmt_next_due_date: date | None = None
    conf_stmt_last_made_up_date: date | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "CompanyRecord":
        return cls(**{k: ("" if v is None and k in _TEXT_COLUMNS else v) for k, v in row.items()})

    def to_insert_params(self) -> tuple[Any, ...]:
        """Positional parameters in COMPANY_COLUMNS order."""
        return tuple(getattr(self, col) for col in COMPANY_COLUMNS)


class CompanyDataWithLocation(CompanyRecord):
    """A company joined on registered postcode with its grid reference."""

    easting: int
    northing: int

    @classmethod
    def from_search_row(cls, row: tuple[Any, ...]) -> "CompanyDataWithLocation":
        """Build from a search result tuple: COMPANY_COLUMNS then easting, northing."""
        values = dict(zip(COMPANY_COLUMNS, row))
        values["easting"], values["northing"] = row[len(COMPANY_COLUMNS):]
        return cls.from_db_row(values)


_TEXT_COLUMNS: frozenset[str] = frozenset(
    name
    for name, info in CompanyRecord.model_fields.items()
    if info.annotation is str
)
