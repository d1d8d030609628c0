"""Parsing and validation of the ``bbox`` query parameter."""

from __future__ import annotations

import math

from companydata_shared.errors import ClientInputError
from companydata_shared.models import BoundingBox


def parse_bbox(raw: str, *, max_span: float) -> BoundingBox:
    """
    Parse "left,bottom,right,top" (grid metres) into a BoundingBox.

    Rejected with ClientInputError when there are not exactly four finite
    numbers, when right < left or top < bottom, or when either side is
    longer than *max_span* metres.
    """
    parts = raw.split(",")
    if len(parts) != 4:
        raise ClientInputError("bbox must have 4 comma-separated values")

    values: list[float] = []
    for part in parts:
        try:
            value = float(part.strip())
        except ValueError:
            raise ClientInputError(f"invalid bbox value '{part}': not a valid float") from None
        if not math.isfinite(value):
            raise ClientInputError(f"invalid bbox value '{part}': must be finite")
        values.append(value)

    left, bottom, right, top = values
    if right < left or top < bottom:
        raise ClientInputError("bbox must be ordered left,bottom,right,top")
    if right - left > max_span or top - bottom > max_span:
        raise ClientInputError(
            f"bbox must define a valid area (no more than {max_span / 1000:g} KM in either dimension)"
        )

    return BoundingBox.from_ltrb(left, bottom, right, top)
