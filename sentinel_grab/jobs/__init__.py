"""Job system package."""

from sentinel_grab.jobs.types import JobStatus, ProductFamily, ProductStatus
from sentinel_grab.jobs.models import (
    AvailableLayer,
    Bbox,
    DateRange,
    Job,
    JobOutcome,
    JobProduct,
    ProductStatusCounts,
)

__all__ = [
    "JobStatus",
    "ProductFamily",
    "ProductStatus",
    "AvailableLayer",
    "Bbox",
    "DateRange",
    "Job",
    "JobOutcome",
    "JobProduct",
    "ProductStatusCounts",
]
