"""Tests for scene selection."""

from sentinel_grab.services.catalog.base import CatalogItem
from sentinel_grab.services.catalog.selection import is_mosaic, select_scenes


def item(item_id: str, cloud):
    return CatalogItem(id=item_id, cloud_cover=cloud)


ITEMS = [
    item("cloudy", 60.0),
    item("unknown", None),
    item("clear", 2.5),
    item("hazy", 20.0),
]


class TestIsMosaic:
    def test_requires_preference_and_multiple_scenes(self):
        assert is_mosaic(True, 3)
        assert not is_mosaic(True, 1)
        assert not is_mosaic(True, None)
        assert not is_mosaic(False, 5)


class TestSelectScenes:
    def test_single_lowest_cloud(self):
        assert [i.id for i in select_scenes(ITEMS, False, None)] == ["clear"]

    def test_single_when_mosaic_not_preferred(self):
        assert [i.id for i in select_scenes(ITEMS, False, 4)] == ["clear"]

    def test_mosaic_takes_up_to_max(self):
        assert [i.id for i in select_scenes(ITEMS, True, 3)] == ["clear", "hazy", "cloudy"]

    def test_unknown_cloud_cover_sorts_last(self):
        assert [i.id for i in select_scenes(ITEMS, True, 10)][-1] == "unknown"

    def test_only_unknown_cloud_cover(self):
        items = [item("a", None), item("b", None)]
        assert [i.id for i in select_scenes(items, False, None)] == ["a"]

    def test_empty(self):
        assert select_scenes([], True, 3) == []
