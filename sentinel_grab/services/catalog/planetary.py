"""Planetary Computer STAC catalog adapter."""

from datetime import date
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from sentinel_grab.jobs.models import Bbox
from sentinel_grab.services.catalog.base import CatalogError, CatalogItem

logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_URL = "https://planetarycomputer.microsoft.com/api/stac/v1/search"
DEFAULT_ITEMS_URL = (
    "https://planetarycomputer.microsoft.com/api/stac/v1/collections/sentinel-2-l2a/items"
)
DEFAULT_SIGN_URL = "https://planetarycomputer.microsoft.com/api/sas/v1/sign"
DEFAULT_COLLECTION = "sentinel-2-l2a"

CLOUD_COVER_PROPERTY = "eo:cloud_cover"


def parse_feature(feature: dict[str, Any]) -> CatalogItem:
    """Convert a STAC feature into a CatalogItem.

    Cloud cover is kept only when numeric; assets without a non-blank href
    are dropped.
    """
    item_id = feature.get("id") or "(no id)"

    cloud: Optional[float] = None
    props = feature.get("properties") or {}
    value = props.get(CLOUD_COVER_PROPERTY)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        cloud = float(value)

    assets: dict[str, str] = {}
    for key, asset in (feature.get("assets") or {}).items():
        if not isinstance(asset, dict):
            continue
        href = asset.get("href")
        if isinstance(href, str) and href.strip():
            assets[key] = href

    return CatalogItem(id=item_id, cloud_cover=cloud, assets=assets, raw=feature)


class PlanetaryComputerCatalog:
    """STAC search and SAS signing against Planetary Computer.

    The HTTP client is owned by the caller; timeouts and redirect policy are
    configured there.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        search_url: str = DEFAULT_SEARCH_URL,
        items_url: str = DEFAULT_ITEMS_URL,
        sign_url: str = DEFAULT_SIGN_URL,
        collection: str = DEFAULT_COLLECTION,
    ):
        self._http = http
        self._search_url = search_url
        self._items_url = items_url.rstrip("/")
        self._sign_url = sign_url
        self._collection = collection

    async def search(
        self,
        bbox: Bbox,
        date_from: date,
        date_to: date,
        cloud_cover_max: int,
        limit: int,
    ) -> list[CatalogItem]:
        """Search the collection for items over bbox within the date range.

        Raises:
            httpx.HTTPStatusError: On non-success responses
            CatalogError: If the response has no features list
        """
        payload = {
            "collections": [self._collection],
            "bbox": bbox.to_list(),
            "datetime": f"{date_from.isoformat()}/{date_to.isoformat()}",
            "limit": limit,
            "query": {CLOUD_COVER_PROPERTY: {"lte": cloud_cover_max}},
        }
        response = await self._http.post(self._search_url, json=payload)
        response.raise_for_status()

        features = response.json().get("features")
        if not isinstance(features, list):
            raise CatalogError("Search response did not include a 'features' list")

        items = [parse_feature(f) for f in features]
        logger.info(
            "catalog_search_completed",
            collection=self._collection,
            bbox=bbox.to_list(),
            datetime=payload["datetime"],
            cloud_cover_max=cloud_cover_max,
            items=len(items),
        )
        return items

    async def get_by_id(self, item_id: str) -> Optional[CatalogItem]:
        """Fetch one item by id. Returns None on 404."""
        url = f"{self._items_url}/{quote(item_id, safe='')}"
        response = await self._http.get(url)
        if response.status_code == 404:
            logger.warning("catalog_item_not_found", item_id=item_id)
            return None
        response.raise_for_status()
        return parse_feature(response.json())

    async def sign_href(self, href: str) -> str:
        """Sign a raw asset href.

        Raises:
            httpx.HTTPStatusError: On non-success responses
            CatalogError: If the signer response lacks 'href'
        """
        response = await self._http.get(self._sign_url, params={"href": href})
        response.raise_for_status()

        body = response.json()
        signed = body.get("href") if isinstance(body, dict) else None
        if not signed:
            raise CatalogError(
                f"Signer response did not include 'href'. Body: {response.text[:500]}"
            )
        return signed
