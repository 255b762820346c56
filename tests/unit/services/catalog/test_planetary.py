"""Tests for the Planetary Computer catalog adapter."""

import json
from datetime import date

import httpx
import pytest

from sentinel_grab.jobs.models import Bbox
from sentinel_grab.services.catalog.base import CatalogError
from sentinel_grab.services.catalog.planetary import (
    PlanetaryComputerCatalog,
    parse_feature,
)

SEARCH_URL = "https://stac.test/search"
ITEMS_URL = "https://stac.test/collections/sentinel-2-l2a/items"
SIGN_URL = "https://sas.test/sign"

FEATURE = {
    "id": "S2B_MSIL2A_20250512",
    "properties": {"eo:cloud_cover": 4.2},
    "assets": {
        "B02": {"href": "https://raw/B02.tif"},
        "B04": {"href": "https://raw/B04.tif"},
        "thumbnail": {"href": "  "},
        "broken": {"type": "image/tiff"},
    },
}


def make_catalog(handler) -> tuple[PlanetaryComputerCatalog, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    catalog = PlanetaryComputerCatalog(
        client, search_url=SEARCH_URL, items_url=ITEMS_URL, sign_url=SIGN_URL
    )
    return catalog, client


class TestParseFeature:
    def test_parses_id_cloud_and_assets(self):
        item = parse_feature(FEATURE)
        assert item.id == "S2B_MSIL2A_20250512"
        assert item.cloud_cover == 4.2
        assert item.assets == {"B02": "https://raw/B02.tif", "B04": "https://raw/B04.tif"}
        assert item.raw is FEATURE

    def test_non_numeric_cloud_cover_ignored(self):
        item = parse_feature({"id": "x", "properties": {"eo:cloud_cover": "low"}})
        assert item.cloud_cover is None
        assert item.assets == {}

    def test_asset_lookup_is_case_insensitive(self):
        item = parse_feature(FEATURE)
        assert item.asset_href("b02") == "https://raw/B02.tif"
        assert item.asset_href("B08") is None


class TestSearch:
    @pytest.mark.asyncio
    async def test_posts_query_and_parses_features(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["method"] = request.method
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"features": [FEATURE]})

        catalog, client = make_catalog(handler)
        async with client:
            items = await catalog.search(
                Bbox(-103.8, 50.5, -102.9, 51.0),
                date(2025, 5, 1),
                date(2025, 5, 31),
                cloud_cover_max=80,
                limit=100,
            )

        assert captured["method"] == "POST"
        assert captured["url"] == SEARCH_URL
        assert captured["body"] == {
            "collections": ["sentinel-2-l2a"],
            "bbox": [-103.8, 50.5, -102.9, 51.0],
            "datetime": "2025-05-01/2025-05-31",
            "limit": 100,
            "query": {"eo:cloud_cover": {"lte": 80}},
        }
        assert [i.id for i in items] == ["S2B_MSIL2A_20250512"]

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        catalog, client = make_catalog(lambda request: httpx.Response(502))
        async with client:
            with pytest.raises(httpx.HTTPStatusError):
                await catalog.search(Bbox(0, 0, 1, 1), date(2025, 1, 1), date(2025, 1, 2), 50, 10)

    @pytest.mark.asyncio
    async def test_missing_features_raises(self):
        catalog, client = make_catalog(lambda request: httpx.Response(200, json={"type": "x"}))
        async with client:
            with pytest.raises(CatalogError):
                await catalog.search(Bbox(0, 0, 1, 1), date(2025, 1, 1), date(2025, 1, 2), 50, 10)


class TestGetById:
    @pytest.mark.asyncio
    async def test_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == f"{ITEMS_URL}/S2B_MSIL2A_20250512"
            return httpx.Response(200, json=FEATURE)

        catalog, client = make_catalog(handler)
        async with client:
            item = await catalog.get_by_id("S2B_MSIL2A_20250512")
        assert item is not None
        assert item.cloud_cover == 4.2

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self):
        catalog, client = make_catalog(lambda request: httpx.Response(404))
        async with client:
            assert await catalog.get_by_id("missing") is None


class TestSignHref:
    @pytest.mark.asyncio
    async def test_returns_signed_href(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["href"] == "https://raw/B02.tif"
            return httpx.Response(200, json={"href": "https://raw/B02.tif?sv=token"})

        catalog, client = make_catalog(handler)
        async with client:
            signed = await catalog.sign_href("https://raw/B02.tif")
        assert signed == "https://raw/B02.tif?sv=token"

    @pytest.mark.asyncio
    async def test_missing_href_field_raises(self):
        catalog, client = make_catalog(
            lambda request: httpx.Response(200, json={"signedHref": "x"})
        )
        async with client:
            with pytest.raises(CatalogError, match="did not include 'href'"):
                await catalog.sign_href("https://raw/B02.tif")
