"""Per-job processing pipeline.

Claimed -> Resolving -> Fetching -> Rendering -> Aggregating -> Succeeded/Failed

Render failures are recorded per product and never stop sibling products.
Failures in every other stage propagate to the worker, which marks the job
failed.
"""

import json
import re
from pathlib import Path
from typing import Optional

import structlog

from sentinel_grab.config import ConfigurationError, Settings
from sentinel_grab.jobs.models import (
    AvailableLayer,
    Bbox,
    DateRange,
    Job,
    JobOutcome,
    JobProduct,
    ProductStatusCounts,
)
from sentinel_grab.jobs.types import JobStatus, ProductFamily, ProductStatus
from sentinel_grab.repositories.jobs import JobRepository
from sentinel_grab.services.bands import (
    SCENE_CLASSIFICATION_BAND,
    compute_required_bands,
    product_family,
)
from sentinel_grab.services.catalog.base import (
    CatalogClient,
    CatalogItem,
    NoScenesFoundError,
    SceneNotFoundError,
)
from sentinel_grab.services.catalog.selection import is_mosaic, select_scenes
from sentinel_grab.services.downloader import BandDownloader
from sentinel_grab.services.renderer import ScriptRunner, truncate_output
from sentinel_grab.services.resolve import resolve_bbox, resolve_date_range

logger = structlog.get_logger(__name__)

SINGLE_SCENE_DIR = "single"
ITEM_DOCUMENT = "item.json"

_INVALID_PATH_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_scene_id(scene_id: str) -> str:
    """Replace characters that are invalid in file names with '_'."""
    return _INVALID_PATH_CHARS.sub("_", scene_id)


def decide_job_status(counts: ProductStatusCounts) -> JobStatus:
    """Succeeded only when every product succeeded and none failed."""
    if counts.total == 0:
        return JobStatus.FAILED
    if counts.succeeded == counts.total and counts.failed == 0:
        return JobStatus.SUCCEEDED
    return JobStatus.FAILED


def build_render_parameters(
    job: Job,
    product: JobProduct,
    date_range: DateRange,
    input_dir: Path,
    output_root: str,
    settings: Settings,
) -> dict[str, str]:
    """Flat parameter map handed to the tiling script."""
    params = {
        "JobId": str(job.job_id),
        "ProductCode": product.product_code.upper(),
        "DateKey": date_range.date_key,
        "InputDir": str(input_dir),
        "OutputRootPath": output_root,
        "ProductSubPath": product.sub_path,
        "ZoomMin": str(job.zoom_min if job.zoom_min is not None else settings.default_zoom_min),
        "ZoomMax": str(job.zoom_max if job.zoom_max is not None else settings.default_zoom_max),
        "ToolRoot": settings.tool_root or "",
        "Processes": str(settings.default_processes),
    }
    if product_family(product.product_code) == ProductFamily.RGB:
        params["ScaleMaxRGB"] = str(settings.default_scale_max_rgb)
    else:
        params["IndexMin"] = str(settings.default_ndvi_min)
        params["IndexMax"] = str(settings.default_ndvi_max)
    return params


class JobPipeline:
    """Resolves, downloads and renders one claimed job."""

    def __init__(
        self,
        repo: JobRepository,
        catalog: CatalogClient,
        downloader: BandDownloader,
        runner: ScriptRunner,
        settings: Settings,
    ):
        self._repo = repo
        self._catalog = catalog
        self._downloader = downloader
        self._runner = runner
        self._settings = settings

    async def run(self, job: Job) -> JobOutcome:
        """Process a claimed job through to its terminal status."""
        log = logger.bind(job_id=job.job_id)

        # Resolving
        date_range = resolve_date_range(job)
        bbox = resolve_bbox(job)
        output_root = self._output_root(job)

        products = await self._repo.get_pending_products(job.job_id)
        if not products:
            products = [await self._repo.insert_default_product(job.job_id)]
        self._check_render_config(products)

        bands = compute_required_bands(p.product_code for p in products)
        bands.add(SCENE_CLASSIFICATION_BAND)
        log.info(
            "job_resolved",
            date_key=date_range.date_key,
            date_from=date_range.date_from.isoformat(),
            date_to=date_range.date_to.isoformat(),
            bbox=bbox.to_list(),
            bands=sorted(bands),
            products=[p.product_code for p in products],
        )

        # Fetching
        scenes, mosaic = await self._select_scenes(job, bbox, date_range)
        work_dir = Path(self._settings.work_root) / str(job.job_id)
        input_dir = await self._fetch_scenes(scenes, bands, work_dir, mosaic)

        # Rendering
        for product in products:
            await self._render_product(job, product, date_range, bbox, input_dir, output_root)

        # Aggregating
        counts = await self._repo.get_product_status_counts(job.job_id)
        status = decide_job_status(counts)
        if status == JobStatus.SUCCEEDED:
            await self._repo.mark_job_succeeded(job.job_id)
        else:
            await self._repo.mark_job_failed(job.job_id)

        log.info(
            "job_finished",
            status=status.value,
            total=counts.total,
            succeeded=counts.succeeded,
            failed=counts.failed,
        )
        return JobOutcome(
            job_id=job.job_id,
            status=status,
            total=counts.total,
            succeeded=counts.succeeded,
            failed=counts.failed,
            products=[p.product_code for p in products],
        )

    def _output_root(self, job: Job) -> str:
        output_root = job.output_root_path or self._settings.output_root_path
        if not output_root:
            raise ConfigurationError(
                f"Job {job.job_id} has no output root and OUTPUT_ROOT_PATH is not set"
            )
        return output_root

    def _script_for(self, family: ProductFamily) -> Optional[str]:
        if family == ProductFamily.RGB:
            return self._settings.rgb_script_path
        return self._settings.index_script_path

    def _check_render_config(self, products: list[JobProduct]) -> None:
        if not self._settings.tool_root:
            raise ConfigurationError("TOOL_ROOT is not configured")
        for family in {product_family(p.product_code) for p in products}:
            if not self._script_for(family):
                raise ConfigurationError(
                    f"No render script configured for {family.value} products"
                )

    async def _select_scenes(
        self, job: Job, bbox: Bbox, date_range: DateRange
    ) -> tuple[list[CatalogItem], bool]:
        """Pick scenes; an explicit scene id bypasses search and forces single mode."""
        if job.scene_id:
            item = await self._catalog.get_by_id(job.scene_id)
            if item is None:
                raise SceneNotFoundError(job.scene_id)
            logger.info("scene_selected", job_id=job.job_id, scene_id=item.id, explicit=True)
            return [item], False

        cloud_cover_max = (
            job.cloud_cover_max
            if job.cloud_cover_max is not None
            else self._settings.default_cloud_cover_max
        )
        items = await self._catalog.search(
            bbox,
            date_range.date_from,
            date_range.date_to,
            cloud_cover_max,
            self._settings.search_limit,
        )
        if not items:
            raise NoScenesFoundError(bbox, date_range.date_from, date_range.date_to, cloud_cover_max)

        mosaic = is_mosaic(job.prefer_mosaic, job.max_scenes)
        selected = select_scenes(items, job.prefer_mosaic, job.max_scenes)
        logger.info(
            "scenes_selected",
            job_id=job.job_id,
            candidates=len(items),
            mosaic=mosaic,
            scenes=[(s.id, s.cloud_cover) for s in selected],
        )
        return selected, mosaic

    async def _fetch_scenes(
        self,
        scenes: list[CatalogItem],
        bands: set[str],
        work_dir: Path,
        mosaic: bool,
    ) -> Path:
        """Download every band of every scene. Returns the render input dir."""
        for scene in scenes:
            scene_dir = work_dir / (sanitize_scene_id(scene.id) if mosaic else SINGLE_SCENE_DIR)
            scene_dir.mkdir(parents=True, exist_ok=True)
            (scene_dir / ITEM_DOCUMENT).write_text(json.dumps(scene.raw), encoding="utf-8")
            await self._downloader.download_bands(scene, bands, scene_dir)

        if mosaic:
            return work_dir
        return work_dir / SINGLE_SCENE_DIR

    async def _render_product(
        self,
        job: Job,
        product: JobProduct,
        date_range: DateRange,
        bbox: Bbox,
        input_dir: Path,
        output_root: str,
    ) -> None:
        """Render one product. Failures are recorded on the product only."""
        log = logger.bind(
            job_id=job.job_id,
            job_product_id=product.job_product_id,
            product_code=product.product_code,
        )
        limit = self._settings.log_output_limit

        await self._repo.update_product_status(product.job_product_id, ProductStatus.RUNNING)

        try:
            script = self._script_for(product_family(product.product_code))
            params = build_render_parameters(
                job, product, date_range, input_dir, output_root, self._settings
            )
            result = await self._runner.run(script, params)
        except Exception as e:
            log.error("product_render_error", error=str(e))
            await self._repo.update_product_status(
                product.job_product_id,
                ProductStatus.FAILED,
                last_error=truncate_output(str(e), limit),
            )
            return

        if not result.succeeded:
            log.error(
                "product_render_failed",
                exit_code=result.exit_code,
                duration_s=round(result.duration_s, 1),
            )
            error = f"Script exited with code {result.exit_code}"
            if result.stderr.strip():
                error = f"{error}: {truncate_output(result.stderr.strip(), limit)}"
            await self._repo.update_product_status(
                product.job_product_id,
                ProductStatus.FAILED,
                last_error=error,
                last_log=truncate_output(result.stdout, limit),
            )
            return

        await self._repo.update_product_status(
            product.job_product_id,
            ProductStatus.SUCCEEDED,
            last_log=truncate_output(result.stdout, limit),
        )
        output_dir = Path(output_root) / product.sub_path / date_range.date_key
        await self._repo.upsert_layer(
            AvailableLayer(
                job_id=job.job_id,
                job_product_id=product.job_product_id,
                product_code=product.product_code.upper(),
                date_key=date_range.date_key,
                date_from=date_range.date_from,
                date_to=date_range.date_to,
                bbox_min_lon=bbox.min_lon,
                bbox_min_lat=bbox.min_lat,
                bbox_max_lon=bbox.max_lon,
                bbox_max_lat=bbox.max_lat,
                output_root_path=output_root,
                product_sub_path=product.sub_path,
                output_dir=str(output_dir),
            )
        )
        log.info("product_render_succeeded", duration_s=round(result.duration_s, 1))
