"""
transforms/decode.py — Pure field decoders: raw CSV row -> typed record.

A decoder has the signature ``decode(fields, headers) -> Record`` and
raises a DecodeError subclass on failure. Decoders do no I/O and hold no
state, so they can be exercised one row at a time without a store.

Integer policy:
    strict_integers=True   unparsable integer -> InvalidIntegerError
    strict_integers=False  unparsable integer -> 0
    Either way an empty column decodes to None (absent), never 0.

Usage:
    from companydata_pipeline.transforms.decode import make_company_decoder

    decode = make_company_decoder(strict_integers=True)
    record = decode(row, headers)
"""

from __future__ import annotations

import functools
import re
from collections.abc import Callable, Sequence
from datetime import date, datetime
from typing import Any, TypeVar

from companydata_shared.constants import COMPANIES_HOUSE_WIDTH
from companydata_shared.errors import (
    InvalidDateError,
    InvalidIntegerError,
    ShortRecordError,
)
from companydata_shared.models import CompanyRecord, PostcodeCoordinate

from companydata_pipeline.transforms.fields import (
    CODE_POINT_FIELDS,
    COMPANY_FIELDS,
    FieldSpec,
    required_width,
)
from companydata_pipeline.transforms.normalize import normalize_postcode

R = TypeVar("R")

Decoder = Callable[[Sequence[str], Sequence[str]], R]

DATE_FORMAT = "%d/%m/%Y"
_DATE_SHAPE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_INT_RE = re.compile(r"^[+-]?\d+$")


# ---------------------------------------------------------------------------
# Scalar parsers
# ---------------------------------------------------------------------------


def parse_date(value: str, field: str) -> date | None:
    """Parse a DD/MM/YYYY column. Empty -> None."""
    value = value.strip()
    if not value:
        return None
    if not _DATE_SHAPE_RE.match(value):
        raise InvalidDateError(field, value)
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        # Right shape, impossible calendar date (31/02/2020)
        raise InvalidDateError(field, value) from None


def parse_int(value: str, field: str, *, strict: bool = True) -> int | None:
    """Parse a base-10 integer column. Empty -> None."""
    value = value.strip()
    if not value:
        return None
    # int() alone would accept "1_000" and non-ASCII digits
    if _INT_RE.match(value) and value.isascii():
        return int(value)
    if strict:
        raise InvalidIntegerError(field, value)
    return 0


def format_date(value: date | None) -> str:
    return value.strftime(DATE_FORMAT) if value is not None else ""


def format_int(value: int | None) -> str:
    return str(value) if value is not None else ""


# ---------------------------------------------------------------------------
# Field-map driven decoding
# ---------------------------------------------------------------------------


def _check_width(fields: Sequence[str], headers: Sequence[str], minimum: int) -> None:
    if len(fields) < len(headers):
        raise ShortRecordError(len(fields), len(headers))
    if len(fields) < minimum:
        raise ShortRecordError(len(fields), minimum)


def decode_fields(
    fields: Sequence[str],
    specs: tuple[FieldSpec, ...],
    *,
    strict_integers: bool = True,
) -> dict[str, Any]:
    """Convert the columns named in *specs* into a dict of typed values."""
    values: dict[str, Any] = {}
    for spec in specs:
        raw = fields[spec.index]
        if spec.kind == "date":
            values[spec.name] = parse_date(raw, spec.name)
        elif spec.kind == "int":
            values[spec.name] = parse_int(raw, spec.name, strict=strict_integers)
        elif spec.kind == "postcode":
            values[spec.name] = normalize_postcode(raw)
        else:
            values[spec.name] = raw
    return values


def decode_company(
    fields: Sequence[str],
    headers: Sequence[str],
    *,
    strict_integers: bool = True,
) -> CompanyRecord:
    _check_width(fields, headers, _COMPANY_WIDTH)
    return CompanyRecord(
        **decode_fields(fields, COMPANY_FIELDS, strict_integers=strict_integers)
    )


def decode_code_point(
    fields: Sequence[str],
    headers: Sequence[str],
    *,
    strict_integers: bool = True,
) -> PostcodeCoordinate:
    _check_width(fields, headers, _CODE_POINT_WIDTH)
    values = decode_fields(fields, CODE_POINT_FIELDS, strict_integers=strict_integers)
    # Grid references are mandatory in the lookup table
    for name in ("easting", "northing"):
        if values[name] is None:
            raise InvalidIntegerError(name, "")
    return PostcodeCoordinate(**values)


def make_company_decoder(*, strict_integers: bool = True) -> Decoder[CompanyRecord]:
    return functools.partial(decode_company, strict_integers=strict_integers)


def make_code_point_decoder(*, strict_integers: bool = True) -> Decoder[PostcodeCoordinate]:
    return functools.partial(decode_code_point, strict_integers=strict_integers)


_COMPANY_WIDTH = required_width(COMPANY_FIELDS)
_CODE_POINT_WIDTH = required_width(CODE_POINT_FIELDS)


# ---------------------------------------------------------------------------
# Inverse mapping (fixtures, exports)
# ---------------------------------------------------------------------------


def encode_fields(
    values: dict[str, Any],
    specs: tuple[FieldSpec, ...],
    width: int,
) -> list[str]:
    row = [""] * max(width, required_width(specs))
    for spec in specs:
        value = values[spec.name]
        if spec.kind == "date":
            row[spec.index] = format_date(value)
        elif spec.kind == "int":
            row[spec.index] = format_int(value)
        else:
            row[spec.index] = value
    return row


def encode_company(record: CompanyRecord, width: int = COMPANIES_HOUSE_WIDTH) -> list[str]:
    """Flatten a CompanyRecord back into a positional Companies House row."""
    return encode_fields(record.model_dump(), COMPANY_FIELDS, width)


def encode_code_point(point: PostcodeCoordinate, width: int = 10) -> list[str]:
    """Flatten a PostcodeCoordinate back into a positional CodePoint row."""
    return encode_fields(point.model_dump(), CODE_POINT_FIELDS, width)
