"""Tests for direct mode."""

import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from sentinel_grab.jobs.direct import DIRECT_BANDS, pick_clearest, run_direct
from sentinel_grab.jobs.models import Bbox
from sentinel_grab.services.catalog.base import CatalogItem

BBOX = Bbox(-103.8, 50.5, -102.9, 51.0)


def item(item_id, cloud):
    return CatalogItem(id=item_id, cloud_cover=cloud, raw={"id": item_id})


class TestPickClearest:
    def test_lowest_cloud_wins(self):
        assert pick_clearest([item("a", 12.0), item("b", 0.4), item("c", 55.0)]).id == "b"

    def test_items_without_cloud_cover_are_ignored(self):
        assert pick_clearest([item("a", None), item("b", 9.0)]).id == "b"

    def test_nothing_rated(self):
        assert pick_clearest([item("a", None)]) is None


class TestRunDirect:
    @pytest.mark.asyncio
    async def test_downloads_clearest_scene(self, tmp_path):
        catalog = MagicMock()
        catalog.search = AsyncMock(return_value=[item("cloudy", 60.0), item("clear", 2.0)])
        downloader = MagicMock()
        downloader.download_bands = AsyncMock(return_value=[])

        chosen = await run_direct(
            catalog,
            downloader,
            bbox=BBOX,
            year=2024,
            month=2,
            cloud_cover_max=80,
            data_root=tmp_path,
        )

        assert chosen.id == "clear"
        catalog.search.assert_awaited_once_with(
            BBOX, date(2024, 2, 1), date(2024, 2, 29), 80, 100
        )
        out_dir = tmp_path / "2024-02"
        assert json.loads((out_dir / "item.json").read_text()) == {"id": "clear"}
        downloader.download_bands.assert_awaited_once_with(chosen, DIRECT_BANDS, out_dir)

    @pytest.mark.asyncio
    async def test_no_results(self, tmp_path):
        catalog = MagicMock()
        catalog.search = AsyncMock(return_value=[])
        downloader = MagicMock()
        downloader.download_bands = AsyncMock()

        chosen = await run_direct(catalog, downloader, BBOX, 2025, 5, 80, tmp_path)

        assert chosen is None
        downloader.download_bands.assert_not_called()
        assert not (tmp_path / "2025-05").exists()
