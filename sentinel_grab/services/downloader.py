"""Band downloads with bounded retries and atomic file materialization.

Files are streamed to a sibling ``.part`` file and renamed over the final
path only once complete, so a crash or retry never leaves a partial file at
the destination. A destination that already has content is treated as done.
"""

import asyncio
import os
from pathlib import Path
from typing import Awaitable, Callable, Iterable

import httpx
import structlog

from sentinel_grab.services.catalog.base import CatalogClient, CatalogItem

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_S = 120.0
CHUNK_SIZE = 1024 * 1024

Sleeper = Callable[[float], Awaitable[None]]


class EmptyDownloadError(Exception):
    """The download completed but produced a zero-length file."""

    pass


def backoff_delay(attempt: int, base_delay_s: float = DEFAULT_BASE_DELAY_S) -> float:
    """Delay after a failed attempt (1-indexed): base, 2x base, 4x base, ..."""
    return base_delay_s * (2 ** (attempt - 1))


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _has_content(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


async def _fetch_once(http: httpx.AsyncClient, url: str, dest: Path, temp: Path) -> int:
    async with http.stream("GET", url) as response:
        response.raise_for_status()
        _remove(temp)
        with open(temp, "wb") as fh:
            async for chunk in response.aiter_bytes(CHUNK_SIZE):
                fh.write(chunk)

    os.replace(temp, dest)
    size = dest.stat().st_size
    if size <= 0:
        _remove(dest)
        raise EmptyDownloadError(f"Downloaded file {dest.name} was empty")
    return size


async def download_with_retry(
    http: httpx.AsyncClient,
    url: str,
    dest: Path,
    label: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_s: float = DEFAULT_BASE_DELAY_S,
    sleep: Sleeper = asyncio.sleep,
) -> Path:
    """Download url to dest, retrying with exponential backoff.

    Args:
        http: Shared HTTP client
        url: Signed download URL
        dest: Final file path
        label: Name used in log events (usually the band key)
        max_attempts: Total attempts before giving up
        base_delay_s: Wait after the first failure; doubles each time
        sleep: Awaitable sleep, injectable for tests

    Returns:
        dest, guaranteed to exist with size > 0

    Raises:
        The last attempt's error once attempts are exhausted
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    dest = Path(dest)
    log = logger.bind(label=label, dest=str(dest))

    if _has_content(dest):
        log.info("download_skipped_existing")
        return dest
    _remove(dest)

    temp = dest.with_name(dest.name + ".part")

    for attempt in range(1, max_attempts + 1):
        try:
            log.info("download_attempt", attempt=attempt, max_attempts=max_attempts)
            size = await _fetch_once(http, url, dest, temp)
            log.info("download_saved", size_mb=round(size / 1024 / 1024, 1))
            return dest

        except Exception as e:
            _remove(temp)
            _remove(dest)

            if attempt >= max_attempts:
                log.error("download_exhausted", attempts=max_attempts, error=str(e))
                raise

            delay = backoff_delay(attempt, base_delay_s)
            log.warning(
                "download_retry_scheduled",
                attempt=attempt,
                error=str(e),
                delay_s=delay,
            )
            await sleep(delay)

    return dest


class BandDownloader:
    """Signs and downloads the band assets of a catalog item."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        catalog: CatalogClient,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_s: float = DEFAULT_BASE_DELAY_S,
        sleep: Sleeper = asyncio.sleep,
    ):
        self._http = http
        self._catalog = catalog
        self._max_attempts = max_attempts
        self._base_delay_s = base_delay_s
        self._sleep = sleep

    async def download_bands(
        self,
        item: CatalogItem,
        band_keys: Iterable[str],
        output_dir: Path,
    ) -> list[Path]:
        """Download each band as ``<band>.tif`` into output_dir.

        Bands missing from the item are logged and skipped.
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        for band_key in sorted(band_keys):
            href = item.asset_href(band_key)
            if href is None:
                logger.warning("band_asset_missing", band=band_key, item_id=item.id)
                continue

            signed = await self._catalog.sign_href(href)
            path = await download_with_retry(
                self._http,
                signed,
                output_dir / f"{band_key}.tif",
                label=band_key,
                max_attempts=self._max_attempts,
                base_delay_s=self._base_delay_s,
                sleep=self._sleep,
            )
            written.append(path)
        return written
