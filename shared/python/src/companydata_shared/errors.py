"""
errors.py — exception hierarchy for companydata.

Every error carries an ``error_code`` so the CLI and API can report failures
without inspecting message text.

  DecodeError          — a row or typed field could not be decoded
  StreamIOError        — an archive or one of its members could not be read
  StoreError           — prepare/execute/commit failed against the store
  ClientInputError     — a request parameter was rejected
  QueryExecutionError  — the store failed while answering a search
"""

from __future__ import annotations


class CompanyDataError(Exception):
    """Base class for companydata failures."""

    error_code = "COMPANYDATA_ERROR"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class DecodeError(CompanyDataError):
    """A raw row could not be turned into a typed record."""

    error_code = "DECODE_ERROR"


class ShortRecordError(DecodeError):
    error_code = "SHORT_RECORD"

    def __init__(self, actual: int, expected: int) -> None:
        super().__init__(
            f"record has fewer fields than expected: {actual} vs {expected}"
        )
        self.actual = actual
        self.expected = expected


class InvalidFieldError(DecodeError):
    """A typed column held a value of the wrong shape."""

    error_code = "INVALID_FIELD"
    kind = "value"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"invalid {field}: cannot parse {self.kind} {value!r}")
        self.field = field
        self.value = value


class InvalidDateError(InvalidFieldError):
    error_code = "INVALID_DATE"
    kind = "date (expected DD/MM/YYYY)"


class InvalidIntegerError(InvalidFieldError):
    error_code = "INVALID_INTEGER"
    kind = "integer"


class MalformedLineError(DecodeError):
    """The delimited-text reader rejected the line's syntax."""

    error_code = "MALFORMED_LINE"


class EmptyMemberError(DecodeError):
    """A member expected to start with a header row was empty."""

    error_code = "EMPTY_MEMBER"

    def __init__(self, member: str) -> None:
        super().__init__(f"{member}: no header row, member is empty")
        self.member = member


class LineDecodeError(DecodeError):
    """A decode error attributed to its archive member and data line."""

    error_code = "LINE_DECODE_ERROR"

    def __init__(self, member: str, line_number: int, cause: BaseException) -> None:
        super().__init__(f"{member}: error parsing line {line_number}: {cause}")
        self.member = member
        self.line_number = line_number
        self.cause = cause


# ---------------------------------------------------------------------------
# I/O and store
# ---------------------------------------------------------------------------


class StreamIOError(CompanyDataError):
    error_code = "STREAM_IO_ERROR"

    def __init__(self, message: str, *, archive: str, member: str | None = None) -> None:
        super().__init__(message)
        self.archive = archive
        self.member = member


class StoreError(CompanyDataError):
    error_code = "STORE_ERROR"


# ---------------------------------------------------------------------------
# Query side
# ---------------------------------------------------------------------------


class ClientInputError(CompanyDataError):
    error_code = "CLIENT_INPUT_ERROR"


class QueryExecutionError(CompanyDataError):
    error_code = "QUERY_EXECUTION_ERROR"
