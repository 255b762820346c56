"""Band requirements for rendered products."""

from typing import Iterable

from sentinel_grab.jobs.types import ProductFamily

# Scene classification layer, always downloaded for cloud masking
SCENE_CLASSIFICATION_BAND = "SCL"

PRODUCT_BANDS: dict[str, frozenset[str]] = {
    "RGB": frozenset({"B02", "B03", "B04"}),
    "NDVI": frozenset({"B08", "B04"}),
    "NDMI": frozenset({"B08", "B11"}),
    "NDRE": frozenset({"B8A", "B05"}),
}


def compute_required_bands(product_codes: Iterable[str]) -> set[str]:
    """Union of source bands needed by the given product codes.

    Matching is case-insensitive; unknown codes contribute no bands.
    """
    bands: set[str] = set()
    for code in product_codes:
        bands |= PRODUCT_BANDS.get(code.strip().upper(), frozenset())
    return bands


def product_family(product_code: str) -> ProductFamily:
    """RGB renders with the composite script, everything else as an index."""
    if product_code.strip().upper() == "RGB":
        return ProductFamily.RGB
    return ProductFamily.INDEX
