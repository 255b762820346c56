"""Job system type definitions."""

from enum import Enum


class JobStatus(str, Enum):
    """Job lifecycle statuses."""

    QUEUED = "Queued"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class ProductStatus(str, Enum):
    """Per-product statuses."""

    QUEUED = "Queued"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_pending(self) -> bool:
        """Queued and failed products are rendered on the next attempt."""
        return self in (ProductStatus.QUEUED, ProductStatus.FAILED)


class ProductFamily(str, Enum):
    """Render script families."""

    RGB = "rgb"
    INDEX = "index"
