#!/usr/bin/env python
"""
CLI for the SentinelGrab worker.

Usage:
    sentinel-grab poll
    sentinel-grab direct [--bbox MIN_LON MIN_LAT MAX_LON MAX_LAT] [--year YEAR] [--month MONTH] [--cloud-cover-max N]

Examples:
    # Claim and process exactly one queued job
    sentinel-grab poll

    # Download the clearest scene of May 2025 over a bbox
    sentinel-grab direct --bbox -103.8 50.5 -102.9 51.0 --year 2025 --month 5
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

import httpx
import structlog

from sentinel_grab.config import ConfigurationError, Settings, get_settings
from sentinel_grab.jobs.models import Bbox, Job
from sentinel_grab.jobs.types import JobStatus

logger = structlog.get_logger(__name__)


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """The one HTTP client shared by the catalog and the downloader."""
    return httpx.AsyncClient(
        timeout=settings.http_timeout_s,
        follow_redirects=True,
    )


def build_catalog(http: httpx.AsyncClient, settings: Settings):
    from sentinel_grab.services.catalog.planetary import PlanetaryComputerCatalog

    return PlanetaryComputerCatalog(
        http,
        search_url=settings.stac_search_url,
        items_url=settings.stac_items_url,
        sign_url=settings.sas_sign_url,
        collection=settings.stac_collection,
    )


def build_downloader(http: httpx.AsyncClient, catalog, settings: Settings):
    from sentinel_grab.services.downloader import BandDownloader

    return BandDownloader(
        http,
        catalog,
        max_attempts=settings.download_max_attempts,
        base_delay_s=settings.download_base_delay_s,
    )


async def cmd_poll(args: argparse.Namespace, settings: Settings) -> int:
    """Claim and process one queued job."""
    from sentinel_grab.db import create_pool
    from sentinel_grab.jobs.pipeline import JobPipeline
    from sentinel_grab.jobs.worker import WorkerRunner
    from sentinel_grab.repositories.jobs import JobRepository
    from sentinel_grab.services.renderer import ScriptRunner

    pool = await create_pool(settings)
    try:
        repo = JobRepository(pool)
        await repo.verify_schema()

        async with build_http_client(settings) as http:
            catalog = build_catalog(http, settings)
            pipeline = JobPipeline(
                repo=repo,
                catalog=catalog,
                downloader=build_downloader(http, catalog, settings),
                runner=ScriptRunner(settings.script_command),
                settings=settings,
            )
            worker = WorkerRunner(repo, pipeline)
            outcome = await worker.run_once()
    finally:
        await pool.close()

    if outcome is None:
        return 0

    logger.info(
        "poll_finished",
        job_id=outcome.job_id,
        status=outcome.status.value,
        total=outcome.total,
        succeeded=outcome.succeeded,
        failed=outcome.failed,
        error=outcome.error,
        products=outcome.products,
    )
    return 0 if outcome.status == JobStatus.SUCCEEDED else 1


async def cmd_direct(args: argparse.Namespace, settings: Settings) -> int:
    """Download the clearest RGB scene of a month over a bbox."""
    from sentinel_grab.jobs.direct import run_direct
    from sentinel_grab.services.resolve import resolve_bbox

    if args.bbox:
        bbox = Bbox(*args.bbox)
    else:
        bbox = resolve_bbox(Job(job_id=0, status=JobStatus.QUEUED, bbox=settings.cli_bbox))
    year = args.year or settings.cli_year
    month = args.month or settings.cli_month
    cloud = args.cloud_cover_max if args.cloud_cover_max is not None else settings.cli_cloud_cover_max

    async with build_http_client(settings) as http:
        catalog = build_catalog(http, settings)
        item = await run_direct(
            catalog,
            build_downloader(http, catalog, settings),
            bbox=bbox,
            year=year,
            month=month,
            cloud_cover_max=cloud,
            data_root=Path(args.data_root or settings.data_root),
            limit=settings.search_limit,
        )
    return 0 if item is not None else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentinel-grab",
        description="Sentinel-2 download and tiling worker",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("poll", help="Claim and process exactly one queued job")

    direct = subparsers.add_parser("direct", help="One-shot download without the queue")
    direct.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        metavar=("MIN_LON", "MIN_LAT", "MAX_LON", "MAX_LAT"),
        help="Area of interest (default: CLI_BBOX)",
    )
    direct.add_argument("--year", type=int)
    direct.add_argument("--month", type=int, choices=range(1, 13), metavar="MONTH")
    direct.add_argument("--cloud-cover-max", type=int)
    direct.add_argument("--data-root", help="Output root (default: DATA_ROOT)")

    return parser


COMMANDS = {
    "poll": cmd_poll,
    "direct": cmd_direct,
}


def main(argv: Optional[list[str]] = None) -> int:
    from sentinel_grab.logging_config import configure_logging, init_sentry

    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    init_sentry(settings)

    try:
        return asyncio.run(COMMANDS[args.command](args, settings))
    except ConfigurationError as e:
        logger.error("configuration_error", error=str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
