"""
sources/code_point.py — Ordnance Survey CodePoint Open postcode lookup.

CodePoint Open is distributed as a zip with one headerless CSV per postcode
area under ``Data/CSV/`` (plus documentation and a header file under
``Doc/``). Each row:

    Postcode, Positional_quality_indicator, Eastings, Northings, ...

Only the postcode and the grid reference are kept.

Output record: PostcodeCoordinate(post_code, easting, northing)

Usage:
    source = CodePointSource()
    for result in source.records("codepo_gb.zip"):
        ...
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from companydata_shared.config import settings
from companydata_shared.models import PostcodeCoordinate

from companydata_pipeline.sources.base import ArchiveSource
from companydata_pipeline.transforms.decode import make_code_point_decoder


class CodePointSource(ArchiveSource[PostcodeCoordinate]):
    """Streams postcode grid references out of a CodePoint Open archive."""

    name = "CodePointOpen"
    has_header = False

    def __init__(
        self,
        *,
        member_prefix: str | None = None,
        strict_integers: bool | None = None,
    ) -> None:
        super().__init__(strict_integers=strict_integers)
        self.member_prefix = (
            settings.code_point_member_prefix if member_prefix is None else member_prefix
        )
        self._decode = make_code_point_decoder(strict_integers=self.strict_integers)

    def accepts(self, member_name: str) -> bool:
        return (
            member_name.startswith(self.member_prefix)
            and member_name.lower().endswith(".csv")
        )

    def decode(self, fields: Sequence[str], headers: Sequence[str]) -> PostcodeCoordinate:
        return self._decode(fields, headers)

    def get_metadata(self) -> dict[str, Any]:
        return {
            **super().get_metadata(),
            "member_prefix": self.member_prefix,
            "description": "OS CodePoint Open postcode grid references",
        }
