"""
sources/base.py — Streaming record sources over zip archives.

A source opens a zip archive, walks its members in archive order, keeps the
ones its predicate accepts, and yields one ParseResult per data line by
running each CSV row through a field decoder. Nothing is buffered beyond the
current row, so multi-gigabyte members stream in constant memory.

Concrete sources set:
  name        — used for logging
  has_header  — whether each member starts with a header row
  accepts()   — member selection
  decode()    — row -> typed record

Usage:
    source = CompaniesHouseSource()
    for result in source.records("BasicCompanyDataAsOneFile-2025-06-01.zip"):
        if not result.ok:
            raise result.error
        print(result.line_number, result.value)

The iterator is single-use; call records() again to re-read.
"""

from __future__ import annotations

import csv
import io
import zipfile
import zlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Generic, TypeVar

import structlog

from companydata_shared.config import settings
from companydata_shared.errors import (
    DecodeError,
    EmptyMemberError,
    MalformedLineError,
    StreamIOError,
)

log = structlog.get_logger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class ParseResult(Generic[R]):
    """One decoded data line, or the error that line produced."""

    value: R | None
    line_number: int
    error: Exception | None = None
    member: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def stream_csv_records(
    stream: IO[str],
    has_header: bool,
    decode: Callable[[Sequence[str], Sequence[str]], R],
    *,
    member: str = "",
) -> Iterator[ParseResult[R]]:
    """Yield one ParseResult per data row of a CSV text stream.

    Rows are read one at a time with ``csv.reader`` in strict mode. A row
    the reader rejects (a stray character after a closing quote) or the decoder
    rejects becomes an error result for that line only; reading carries on
    with the next line. Blank lines are skipped and not numbered.

    If *has_header* is set the first row is taken as the header and is not
    numbered; an empty stream then yields a single EmptyMemberError result.

    An opening quote that is never closed cannot be confined to one line:
    the reader takes every following line as part of the quoted field, so
    the rest of the member collapses into one MalformedLineError numbered
    at the line where the quote opened, and no later rows are yielded.
    """
    reader = csv.reader(stream, strict=True)
    headers: list[str] = []

    if has_header:
        try:
            headers = next(reader)
        except StopIteration:
            yield ParseResult(None, 0, EmptyMemberError(member), member)
            return
        except csv.Error as exc:
            yield ParseResult(None, 0, MalformedLineError(f"header row: {exc}"), member)
            return

    line_number = 0
    while True:
        try:
            fields = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            line_number += 1
            yield ParseResult(None, line_number, MalformedLineError(str(exc)), member)
            continue

        if not fields:
            continue

        line_number += 1
        try:
            value = decode(fields, headers)
        except (DecodeError, ValueError) as exc:
            yield ParseResult(None, line_number, exc, member)
            continue
        yield ParseResult(value, line_number, None, member)


def open_archive(
    archive_path: str | Path,
    member_predicate: Callable[[str], bool],
    has_header: bool,
    decode: Callable[[Sequence[str], Sequence[str]], R],
) -> Iterator[ParseResult[R]]:
    """
    Lazily yield ParseResults for every selected member of a zip archive.

    Args:
        archive_path:     Path to the .zip file.
        member_predicate: Called with each member name; False skips it.
        has_header:       Each member's first row is a header.
        decode:           ``decode(fields, headers) -> record``.

    Yields:
        ParseResult per data line, member by member in archive order.

    Raises:
        StreamIOError: the archive or a member cannot be opened or read.
    """
    archive = str(archive_path)
    try:
        zf = zipfile.ZipFile(archive)
    except (OSError, zipfile.BadZipFile) as exc:
        raise StreamIOError(
            f"failed to open zip file {archive}: {exc}", archive=archive
        ) from exc

    with zf:
        for info in zf.infolist():
            if info.is_dir() or not member_predicate(info.filename):
                log.debug("member_skipped", archive=archive, member=info.filename)
                continue
            yield from _read_member(zf, info, archive, has_header, decode)


def _read_member(
    zf: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    archive: str,
    has_header: bool,
    decode: Callable[[Sequence[str], Sequence[str]], R],
) -> Iterator[ParseResult[R]]:
    member = info.filename
    member_log = log.bind(archive=archive, member=member)
    member_log.info("member_start", compressed_bytes=info.compress_size, bytes=info.file_size)

    lines = 0
    try:
        with zf.open(info) as raw:
            text = io.TextIOWrapper(raw, encoding="utf-8-sig", errors="replace", newline="")
            for result in stream_csv_records(text, has_header, decode, member=member):
                lines = result.line_number
                yield result
    except (OSError, EOFError, zipfile.BadZipFile, zlib.error) as exc:
        raise StreamIOError(
            f"failed to read {member} in {archive} after line {lines}: {exc}",
            archive=archive,
            member=member,
        ) from exc

    member_log.info("member_complete", lines=lines)


class ArchiveSource(ABC, Generic[R]):
    """Abstract base for the zip-archive record sources."""

    # Override in subclass
    name: str = "unknown"
    has_header: bool = False

    def __init__(self, *, strict_integers: bool | None = None) -> None:
        self.strict_integers = (
            settings.strict_integers if strict_integers is None else strict_integers
        )
        self._log = log.bind(source_name=self.name)

    @abstractmethod
    def accepts(self, member_name: str) -> bool:
        """Return True for archive members holding data rows."""
        ...

    @abstractmethod
    def decode(self, fields: Sequence[str], headers: Sequence[str]) -> R:
        """Decode one raw row into a typed record."""
        ...

    def records(self, archive_path: str | Path) -> Iterator[ParseResult[R]]:
        """Stream ParseResults for every accepted member of *archive_path*."""
        self._log.info("source_open", archive=str(archive_path))
        return open_archive(archive_path, self.accepts, self.has_header, self.decode)

    def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "has_header": self.has_header,
            "strict_integers": self.strict_integers,
        }
