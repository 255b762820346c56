"""Scene selection policy."""

import math
from typing import Optional

from sentinel_grab.services.catalog.base import CatalogItem


def is_mosaic(prefer_mosaic: bool, max_scenes: Optional[int]) -> bool:
    """Mosaic mode needs both the preference and room for more than one scene."""
    return prefer_mosaic and (max_scenes or 1) > 1


def select_scenes(
    items: list[CatalogItem],
    prefer_mosaic: bool,
    max_scenes: Optional[int],
) -> list[CatalogItem]:
    """Pick the clearest scenes.

    Items are ordered by ascending cloud cover with unreported values last
    (stable for ties). One item is taken unless mosaic mode applies, in
    which case up to max_scenes are taken.
    """
    ranked = sorted(
        items,
        key=lambda i: i.cloud_cover if i.cloud_cover is not None else math.inf,
    )
    take = max_scenes if is_mosaic(prefer_mosaic, max_scenes) else 1
    return ranked[:take]
