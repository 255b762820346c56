"""Base interface for imagery catalogs."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Protocol

from sentinel_grab.jobs.models import Bbox


class CatalogError(Exception):
    """Raised when the catalog returns an unusable response."""

    pass


class NoScenesFoundError(CatalogError):
    """Search returned no candidate scenes."""

    def __init__(self, bbox: Bbox, date_from: date, date_to: date, cloud_cover_max: int):
        self.bbox = bbox
        self.date_from = date_from
        self.date_to = date_to
        self.cloud_cover_max = cloud_cover_max
        super().__init__(
            f"No scenes found for bbox {bbox.to_list()} between "
            f"{date_from.isoformat()} and {date_to.isoformat()} "
            f"with cloud cover <= {cloud_cover_max}"
        )


class SceneNotFoundError(CatalogError):
    """An explicitly requested scene id does not exist."""

    def __init__(self, scene_id: str):
        self.scene_id = scene_id
        super().__init__(f"Scene '{scene_id}' not found in catalog")


@dataclass
class CatalogItem:
    """One scene returned by the catalog."""

    id: str
    cloud_cover: Optional[float]
    assets: dict[str, str] = field(default_factory=dict)  # band key -> raw href
    raw: dict[str, Any] = field(default_factory=dict)  # source STAC feature

    def asset_href(self, band_key: str) -> Optional[str]:
        """Look up a band href, ignoring key case."""
        href = self.assets.get(band_key)
        if href is not None:
            return href
        wanted = band_key.lower()
        for key, value in self.assets.items():
            if key.lower() == wanted:
                return value
        return None


class CatalogClient(Protocol):
    """Protocol for scene catalogs."""

    async def search(
        self,
        bbox: Bbox,
        date_from: date,
        date_to: date,
        cloud_cover_max: int,
        limit: int,
    ) -> list[CatalogItem]:
        """Find items intersecting bbox and dates with cloud cover <= ceiling."""
        ...

    async def get_by_id(self, item_id: str) -> Optional[CatalogItem]:
        """Fetch a single item, or None if it does not exist."""
        ...

    async def sign_href(self, href: str) -> str:
        """Exchange a raw asset href for a time-limited download URL."""
        ...
