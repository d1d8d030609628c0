"""
transforms/fields.py — Positional field maps for the two source layouts.

Each FieldSpec binds a logical field name to its column index in the raw
row and to the kind of value stored there. Layout drift in a source file
is a change to these tables only.

Companies House "Basic Company Data" (header row, 55 columns; columns
33–52 hold previous names and are not imported):

    0 CompanyName            1 CompanyNumber          2 RegAddress.CareOf
    3 RegAddress.POBox       4–5 RegAddress.AddressLine1/2
    6 RegAddress.PostTown    7 RegAddress.County      8 RegAddress.Country
    9 RegAddress.PostCode    10 CompanyCategory       11 CompanyStatus
    12 CountryOfOrigin       13 DissolutionDate       14 IncorporationDate
    15–16 Accounts.AccountRefDay/Month  17–18 Accounts.NextDueDate/LastMadeUpDate
    19 Accounts.AccountCategory         20–21 Returns.NextDueDate/LastMadeUpDate
    22–25 Mortgages.*        26–29 SICCode.SicText_1..4
    30–31 LimitedPartnerships.NumGenPartners/NumLimPartners
    32 URI                   53–54 ConfStmtNextDueDate/ConfStmtLastMadeUpDate

OS CodePoint Open (no header):

    0 Postcode  1 Positional_quality_indicator  2 Eastings  3 Northings  ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

FieldKind = Literal["text", "postcode", "date", "int"]


@dataclass(frozen=True)
class FieldSpec:
    name: str
    index: int
    kind: FieldKind = "text"


COMPANY_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("company_name", 0),
    FieldSpec("company_number", 1),
    FieldSpec("reg_address_care_of", 2),
    FieldSpec("reg_address_po_box", 3),
    FieldSpec("reg_address_address_line_1", 4),
    FieldSpec("reg_address_address_line_2", 5),
    FieldSpec("reg_address_post_town", 6),
    FieldSpec("reg_address_county", 7),
    FieldSpec("reg_address_country", 8),
    FieldSpec("reg_address_post_code", 9, "postcode"),
    FieldSpec("company_category", 10),
    FieldSpec("company_status", 11),
    FieldSpec("country_of_origin", 12),
    FieldSpec("dissolution_date", 13, "date"),
    FieldSpec("incorporation_date", 14, "date"),
    FieldSpec("accounts_account_ref_day", 15, "int"),
    FieldSpec("accounts_account_ref_month", 16, "int"),
    FieldSpec("accounts_next_due_date", 17, "date"),
    FieldSpec("accounts_last_made_up_date", 18, "date"),
    FieldSpec("accounts_account_category", 19),
    FieldSpec("returns_next_due_date", 20, "date"),
    FieldSpec("returns_last_made_up_date", 21, "date"),
    FieldSpec("mortgages_num_charges", 22, "int"),
    FieldSpec("mortgages_num_outstanding", 23, "int"),
    FieldSpec("mortgages_num_part_satisfied", 24, "int"),
    FieldSpec("mortgages_num_satisfied", 25, "int"),
    FieldSpec("sic_code_1", 26),
    FieldSpec("sic_code_2", 27),
    FieldSpec("sic_code_3", 28),
    FieldSpec("sic_code_4", 29),
    FieldSpec("limited_partnerships_num_gen_partners", 30, "int"),
    FieldSpec("limited_partnerships_num_lim_partners", 31, "int"),
    FieldSpec("uri", 32),
    FieldSpec("conf_stmt_next_due_date", 53, "date"),
    FieldSpec("conf_stmt_last_made_up_date", 54, "date"),
)

CODE_POINT_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("post_code", 0, "postcode"),
    FieldSpec("easting", 2, "int"),
    FieldSpec("northing", 3, "int"),
)


def required_width(fields: tuple[FieldSpec, ...]) -> int:
    """Minimum number of columns a row needs for every field to be present."""
    return max(spec.index for spec in fields) + 1

