"""Direct mode - download one month's clearest RGB scene without the queue."""

import calendar
import json
from datetime import date
from pathlib import Path
from typing import Optional

import structlog

from sentinel_grab.jobs.models import Bbox
from sentinel_grab.services.catalog.base import CatalogClient, CatalogItem
from sentinel_grab.services.downloader import BandDownloader

logger = structlog.get_logger(__name__)

DIRECT_BANDS = ("B02", "B03", "B04")


def pick_clearest(items: list[CatalogItem]) -> Optional[CatalogItem]:
    """Lowest reported cloud cover; items without a value are ignored."""
    rated = [i for i in items if i.cloud_cover is not None]
    if not rated:
        return None
    return min(rated, key=lambda i: i.cloud_cover)


async def run_direct(
    catalog: CatalogClient,
    downloader: BandDownloader,
    bbox: Bbox,
    year: int,
    month: int,
    cloud_cover_max: int,
    data_root: Path,
    limit: int = 100,
) -> Optional[CatalogItem]:
    """Download the RGB bands of the clearest scene of a month.

    Files land in ``<data_root>/<YYYY-MM>/``. Returns the chosen item, or
    None if the catalog had nothing usable.
    """
    month_start = date(year, month, 1)
    month_end = month_start.replace(day=calendar.monthrange(year, month)[1])

    items = await catalog.search(bbox, month_start, month_end, cloud_cover_max, limit)
    if not items:
        logger.warning("direct_no_scenes", year=year, month=month)
        return None

    best = pick_clearest(items)
    if best is None:
        logger.warning("direct_no_cloud_cover", year=year, month=month, items=len(items))
        return None

    logger.info("direct_scene_selected", scene_id=best.id, cloud_cover=best.cloud_cover)

    out_dir = Path(data_root) / f"{year:04d}-{month:02d}"
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "item.json").write_text(json.dumps(best.raw), encoding="utf-8")

    await downloader.download_bands(best, DIRECT_BANDS, out_dir)
    logger.info("direct_done", out_dir=str(out_dir))
    return best
