"""Repository for download job queue operations."""

from typing import Optional

import structlog

from sentinel_grab.jobs.models import (
    AvailableLayer,
    Job,
    JobProduct,
    ProductStatusCounts,
)
from sentinel_grab.jobs.types import JobStatus, ProductStatus

logger = structlog.get_logger(__name__)

# Schema version this repository is written against (migrations/001_*.sql)
SUPPORTED_SCHEMA_VERSION = 1

_PRODUCT_COLUMNS = (
    "job_product_id, job_id, product_code, output_sub_path, status, last_error, last_log"
)


class SchemaVersionError(Exception):
    """The database schema does not match the supported version."""

    def __init__(self, found: Optional[int], expected: int = SUPPORTED_SCHEMA_VERSION):
        self.found = found
        self.expected = expected
        super().__init__(
            f"Unsupported schema version {found} (expected {expected}). "
            "Apply migrations with scripts/apply_schema.py"
        )


class JobRepository:
    """Repository for job queue operations.

    claim_next_job is the only operation that resolves contention between
    workers. Everything else touches rows owned by the claiming worker.
    """

    def __init__(self, pool):
        self._pool = pool

    async def verify_schema(self) -> int:
        """Check the store declares the supported schema version."""
        query = "SELECT max(version) FROM sentinel_grab_schema_migrations"
        async with self._pool.acquire() as conn:
            version = await conn.fetchval(query)
        if version != SUPPORTED_SCHEMA_VERSION:
            raise SchemaVersionError(version)
        return version

    async def claim_next_job(self) -> Optional[Job]:
        """Claim the next queued or failed job using FOR UPDATE SKIP LOCKED.

        Highest priority first, then oldest. Returns None if no jobs available.
        """
        query = """
            WITH cte AS (
                SELECT job_id FROM sentinel_grab_jobs
                WHERE status IN ('Queued', 'Failed')
                ORDER BY priority DESC NULLS LAST, created_at ASC
                FOR UPDATE SKIP LOCKED
                LIMIT 1
            )
            UPDATE sentinel_grab_jobs j SET
                status = 'Running',
                started_at = now(),
                modified_at = now()
            FROM cte
            WHERE j.job_id = cte.job_id
            RETURNING j.*
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query)

        if row:
            logger.info(
                "job_claimed",
                job_id=row["job_id"],
                priority=row["priority"],
            )
            return self._row_to_job(row)
        return None

    async def get_pending_products(self, job_id: int) -> list[JobProduct]:
        """List queued or failed products of a job."""
        query = f"""
            SELECT {_PRODUCT_COLUMNS}
            FROM sentinel_grab_job_products
            WHERE job_id = $1 AND status IN ('Queued', 'Failed')
            ORDER BY job_product_id
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, job_id)
        return [self._row_to_product(row) for row in rows]

    async def insert_default_product(self, job_id: int) -> JobProduct:
        """Insert a queued RGB product for a job that has none pending."""
        query = f"""
            INSERT INTO sentinel_grab_job_products (job_id, product_code, output_sub_path, status)
            VALUES ($1, 'RGB', 'rgb', 'Queued')
            RETURNING {_PRODUCT_COLUMNS}
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, job_id)
        if not row:
            raise RuntimeError(f"Failed to insert default product for job {job_id}")
        logger.info(
            "default_product_inserted",
            job_id=job_id,
            job_product_id=row["job_product_id"],
        )
        return self._row_to_product(row)

    async def update_product_status(
        self,
        job_product_id: int,
        status: ProductStatus,
        last_error: Optional[str] = None,
        last_log: Optional[str] = None,
    ) -> None:
        """Overwrite a product's status and diagnostics.

        No previous-status check, so a partially written attempt can be
        recovered by the next one.
        """
        query = """
            UPDATE sentinel_grab_job_products SET
                status = $2,
                last_error = $3,
                last_log = $4,
                modified_at = now()
            WHERE job_product_id = $1
        """
        async with self._pool.acquire() as conn:
            await conn.execute(query, job_product_id, status.value, last_error, last_log)

    async def upsert_layer(self, layer: AvailableLayer) -> None:
        """Insert or replace the published layer of a product."""
        query = """
            INSERT INTO sentinel_grab_available_layers (
                job_id, job_product_id, product_code, date_key, date_from, date_to,
                bbox_min_lon, bbox_min_lat, bbox_max_lon, bbox_max_lat,
                output_root_path, product_sub_path, output_dir
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
            ON CONFLICT (job_product_id) DO UPDATE SET
                job_id = EXCLUDED.job_id,
                product_code = EXCLUDED.product_code,
                date_key = EXCLUDED.date_key,
                date_from = EXCLUDED.date_from,
                date_to = EXCLUDED.date_to,
                bbox_min_lon = EXCLUDED.bbox_min_lon,
                bbox_min_lat = EXCLUDED.bbox_min_lat,
                bbox_max_lon = EXCLUDED.bbox_max_lon,
                bbox_max_lat = EXCLUDED.bbox_max_lat,
                output_root_path = EXCLUDED.output_root_path,
                product_sub_path = EXCLUDED.product_sub_path,
                output_dir = EXCLUDED.output_dir,
                modified_at = now()
        """
        async with self._pool.acquire() as conn:
            await conn.execute(
                query,
                layer.job_id,
                layer.job_product_id,
                layer.product_code,
                layer.date_key,
                layer.date_from,
                layer.date_to,
                layer.bbox_min_lon,
                layer.bbox_min_lat,
                layer.bbox_max_lon,
                layer.bbox_max_lat,
                layer.output_root_path,
                layer.product_sub_path,
                layer.output_dir,
            )
        logger.info(
            "layer_registered",
            job_id=layer.job_id,
            job_product_id=layer.job_product_id,
            output_dir=layer.output_dir,
        )

    async def get_product_status_counts(self, job_id: int) -> ProductStatusCounts:
        """Count all, succeeded and failed products of a job."""
        query = """
            SELECT
                COUNT(*) AS total,
                COUNT(*) FILTER (WHERE status = 'Succeeded') AS succeeded,
                COUNT(*) FILTER (WHERE status = 'Failed') AS failed
            FROM sentinel_grab_job_products
            WHERE job_id = $1
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, job_id)
        if not row:
            return ProductStatusCounts(total=0, succeeded=0, failed=0)
        return ProductStatusCounts(
            total=row["total"] or 0,
            succeeded=row["succeeded"] or 0,
            failed=row["failed"] or 0,
        )

    async def mark_job_succeeded(self, job_id: int) -> None:
        await self._set_terminal_status(job_id, JobStatus.SUCCEEDED)

    async def mark_job_failed(self, job_id: int) -> None:
        await self._set_terminal_status(job_id, JobStatus.FAILED)

    async def _set_terminal_status(self, job_id: int, status: JobStatus) -> None:
        query = """
            UPDATE sentinel_grab_jobs SET
                status = $2,
                finished_at = now(),
                modified_at = now()
            WHERE job_id = $1
        """
        async with self._pool.acquire() as conn:
            await conn.execute(query, job_id, status.value)
        logger.info("job_status_written", job_id=job_id, status=status.value)

    def _row_to_job(self, row) -> Job:
        """Convert a database row to a Job model."""
        return Job(
            job_id=row["job_id"],
            status=JobStatus(row["status"]),
            priority=row["priority"],
            created_at=row["created_at"],
            date_from=row["date_from"],
            date_to=row["date_to"],
            date_key=row["date_key"],
            bbox_min_lon=row["bbox_min_lon"],
            bbox_min_lat=row["bbox_min_lat"],
            bbox_max_lon=row["bbox_max_lon"],
            bbox_max_lat=row["bbox_max_lat"],
            bbox=row["bbox"],
            cloud_cover_max=row["cloud_cover_max"],
            prefer_mosaic=bool(row["prefer_mosaic"]),
            max_scenes=row["max_scenes"],
            scene_id=row["scene_id"],
            zoom_min=row["zoom_min"],
            zoom_max=row["zoom_max"],
            output_root_path=row["output_root_path"],
            started_at=row["started_at"],
            finished_at=row["finished_at"],
            modified_at=row["modified_at"],
        )

    def _row_to_product(self, row) -> JobProduct:
        """Convert a database row to a JobProduct model."""
        return JobProduct(
            job_product_id=row["job_product_id"],
            job_id=row["job_id"],
            product_code=row["product_code"],
            output_sub_path=row["output_sub_path"],
            status=ProductStatus(row["status"]),
            last_error=row["last_error"],
            last_log=row["last_log"],
        )
