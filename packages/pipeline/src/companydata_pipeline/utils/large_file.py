"""
utils/large_file.py — Fetching large source archives to local disk.

Provides:
  - transient_download()  — a local path for a URI, downloaded to a temp file if remote
  - download_to()         — HTTP streaming download with a progress bar and retries
  - is_remote()           — whether a URI needs downloading
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog
from tqdm import tqdm

from companydata_shared.config import settings
from companydata_shared.errors import StreamIOError

from companydata_pipeline.utils.retry import with_retry_sync

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------


def is_remote(uri: str) -> bool:
    return urlparse(uri).scheme in ("http", "https")


@with_retry_sync(
    max_attempts=settings.download_max_attempts,
    base_delay=5.0,
    retry_on=httpx.TransportError,
)
def download_to(
    url: str,
    dest: Path,
    *,
    timeout: float | None = None,
    chunk_size: int = 256 * 1024,
) -> Path:
    """Stream *url* into *dest*, overwriting it. Returns *dest*."""
    with httpx.Client(timeout=timeout or settings.download_timeout_s, follow_redirects=True) as client:
        with client.stream("GET", url) as resp:
            resp.raise_for_status()

            content_length = resp.headers.get("content-length")
            total = int(content_length) if content_length else None
            log.info("download_start", url=url, dest=str(dest), bytes=total)

            with (
                tqdm(
                    total=total,
                    unit="B",
                    unit_scale=True,
                    unit_divisor=1024,
                    desc=dest.name,
                    disable=None,
                ) as pbar,
                open(dest, "wb") as f,
            ):
                for chunk in resp.iter_bytes(chunk_size=chunk_size):
                    f.write(chunk)
                    pbar.update(len(chunk))

    log.info("download_complete", url=url, bytes=dest.stat().st_size)
    return dest


@contextmanager
def transient_download(uri: str, **download_kwargs: Any) -> Iterator[Path]:
    """Yield a local path for *uri*, downloading it first if it is a URL.

    Local paths are passed straight through. Downloads go to a temporary
    file in ``settings.download_dir`` (or the system temp dir) that is
    removed when the block exits, whether or not it raised.

    Raises:
        StreamIOError: the download failed (HTTP error status, or transport
            errors that outlasted the retries).
    """
    if not is_remote(uri):
        yield Path(uri)
        return

    fd, tmp_name = tempfile.mkstemp(prefix="download-", suffix=".zip", dir=settings.download_dir)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        try:
            download_to(uri, tmp_path, **download_kwargs)
        except httpx.HTTPError as exc:
            log.error("download_failed", url=uri, error=str(exc))
            raise StreamIOError(f"failed to download {uri}: {exc}", archive=uri) from exc
        yield tmp_path
    finally:
        log.info("temporary_file_removed", path=str(tmp_path))
        tmp_path.unlink(missing_ok=True)
