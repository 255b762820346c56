"""Job system data models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sentinel_grab.jobs.types import JobStatus, ProductStatus


@dataclass(frozen=True)
class Bbox:
    """Geographic bounding box in WGS84 degrees."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def to_list(self) -> list[float]:
        return [self.min_lon, self.min_lat, self.max_lon, self.max_lat]


@dataclass(frozen=True)
class DateRange:
    """Closed date interval plus the key used to label outputs."""

    date_from: date
    date_to: date
    date_key: str


@dataclass
class Job:
    """A download job in the queue."""

    job_id: int
    status: JobStatus

    priority: Optional[int] = None
    created_at: Optional[datetime] = None

    # Date window: explicit range or a date key
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    date_key: Optional[str] = None

    # Area: explicit fields or a delimited string
    bbox_min_lon: Optional[float] = None
    bbox_min_lat: Optional[float] = None
    bbox_max_lon: Optional[float] = None
    bbox_max_lat: Optional[float] = None
    bbox: Optional[str] = None

    # Scene selection
    cloud_cover_max: Optional[int] = None
    prefer_mosaic: bool = False
    max_scenes: Optional[int] = None
    scene_id: Optional[str] = None

    # Rendering
    zoom_min: Optional[int] = None
    zoom_max: Optional[int] = None
    output_root_path: Optional[str] = None

    # Lifecycle timestamps
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None


@dataclass
class JobProduct:
    """One rendered product (RGB, NDVI, ...) of a job."""

    job_product_id: int
    job_id: int
    product_code: str
    status: ProductStatus
    output_sub_path: Optional[str] = None
    last_error: Optional[str] = None
    last_log: Optional[str] = None

    @property
    def sub_path(self) -> str:
        """Output subdirectory, defaulting to the lower-cased product code."""
        return self.output_sub_path or self.product_code.lower()


@dataclass
class AvailableLayer:
    """Published location of a successfully rendered product."""

    job_id: int
    job_product_id: int
    product_code: str
    date_key: str
    output_root_path: str
    product_sub_path: str
    output_dir: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    bbox_min_lon: Optional[float] = None
    bbox_min_lat: Optional[float] = None
    bbox_max_lon: Optional[float] = None
    bbox_max_lat: Optional[float] = None


@dataclass(frozen=True)
class ProductStatusCounts:
    """Aggregate product counts for a job."""

    total: int
    succeeded: int
    failed: int


@dataclass
class JobOutcome:
    """Terminal result of processing one claimed job."""

    job_id: int
    status: JobStatus
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    error: Optional[str] = None
    products: list[str] = field(default_factory=list)
