"""
models/geography.py — Postcode grid references and bounding boxes.

Coordinates are British National Grid eastings/northings in metres.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

CODE_POINT_COLUMNS: tuple[str, ...] = ("post_code", "easting", "northing")


class PostcodeCoordinate(BaseModel):
    """Matches the code_point table row. Natural key: post_code."""

    model_config = ConfigDict(frozen=True)

    post_code: str
    easting: int
    northing: int

    def to_insert_params(self) -> tuple[Any, ...]:
        return (self.post_code, self.easting, self.northing)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned search rectangle in grid metres."""

    min_easting: float
    max_easting: float
    min_northing: float
    max_northing: float

    @classmethod
    def from_ltrb(
        cls, left: float, bottom: float, right: float, top: float
    ) -> "BoundingBox":
        return cls(
            min_easting=left,
            max_easting=right,
            min_northing=bottom,
            max_northing=top,
        )

    @property
    def width(self) -> float:
        return self.max_easting - self.min_easting

    @property
    def height(self) -> float:
        return self.max_northing - self.min_northing

    def query_params(self) -> tuple[float, float, float, float]:
        """Bounds in the positional order the search query binds them."""
        return (self.min_easting, self.max_easting, self.min_northing, self.max_northing)

    def contains(self, easting: float, northing: float) -> bool:
        return (
            self.min_easting <= easting <= self.max_easting
            and self.min_northing <= northing <= self.max_northing
        )
