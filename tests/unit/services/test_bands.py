"""Tests for band requirements."""

from sentinel_grab.jobs.types import ProductFamily
from sentinel_grab.services.bands import (
    SCENE_CLASSIFICATION_BAND,
    compute_required_bands,
    product_family,
)


class TestComputeRequiredBands:
    def test_rgb(self):
        assert compute_required_bands(["RGB"]) == {"B02", "B03", "B04"}

    def test_rgb_and_ndvi_deduplicates(self):
        bands = compute_required_bands(["RGB", "NDVI"])
        assert bands == {"B02", "B03", "B04", "B08"}
        assert bands | {SCENE_CLASSIFICATION_BAND} == {"B02", "B03", "B04", "B08", "SCL"}

    def test_index_products(self):
        assert compute_required_bands(["NDMI"]) == {"B08", "B11"}
        assert compute_required_bands(["NDRE"]) == {"B8A", "B05"}

    def test_case_insensitive(self):
        assert compute_required_bands(["ndvi", "Rgb"]) == compute_required_bands(["NDVI", "RGB"])

    def test_unknown_codes_contribute_nothing(self):
        assert compute_required_bands(["EVI", "RGB"]) == {"B02", "B03", "B04"}
        assert compute_required_bands([]) == set()

    def test_order_independent(self):
        assert compute_required_bands(["NDVI", "RGB"]) == compute_required_bands(["RGB", "NDVI"])


class TestProductFamily:
    def test_rgb_family(self):
        assert product_family("rgb") == ProductFamily.RGB

    def test_index_family(self):
        for code in ("NDVI", "NDMI", "NDRE"):
            assert product_family(code) == ProductFamily.INDEX
