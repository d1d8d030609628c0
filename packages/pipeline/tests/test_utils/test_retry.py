"""
tests/test_utils/test_retry.py — Tests for with_retry_sync.
"""

from __future__ import annotations

import httpx
import pytest

from companydata_pipeline.utils.retry import with_retry_sync


def test_retries_until_success():
    calls = []

    @with_retry_sync(max_attempts=3, base_delay=0, retry_on=httpx.TransportError)
    def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise httpx.ConnectError("connection reset")
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_reraises_after_last_attempt():
    calls = []

    @with_retry_sync(max_attempts=2, base_delay=0, retry_on=httpx.TransportError)
    def down() -> None:
        calls.append(1)
        raise httpx.ConnectError("connection refused")

    with pytest.raises(httpx.ConnectError):
        down()
    assert len(calls) == 2


def test_other_errors_not_retried():
    calls = []

    @with_retry_sync(max_attempts=3, base_delay=0, retry_on=httpx.TransportError)
    def broken() -> None:
        calls.append(1)
        raise ValueError("bad archive")

    with pytest.raises(ValueError):
        broken()
    assert len(calls) == 1


def test_preserves_function_name():
    @with_retry_sync()
    def fetch_archive() -> None:
        pass

    assert fetch_archive.__name__ == "fetch_archive"
