"""Imagery catalog collaborators."""

from sentinel_grab.services.catalog.base import (
    CatalogClient,
    CatalogError,
    CatalogItem,
    NoScenesFoundError,
    SceneNotFoundError,
)
from sentinel_grab.services.catalog.planetary import PlanetaryComputerCatalog
from sentinel_grab.services.catalog.selection import is_mosaic, select_scenes

__all__ = [
    "CatalogClient",
    "CatalogError",
    "CatalogItem",
    "NoScenesFoundError",
    "SceneNotFoundError",
    "PlanetaryComputerCatalog",
    "is_mosaic",
    "select_scenes",
]
