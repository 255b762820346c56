"""SentinelGrab - Sentinel-2 download and tiling job processor.

Claims queued download jobs from PostgreSQL, fetches matching imagery from the
Planetary Computer STAC catalog and drives external tiling scripts.
"""

__version__ = "0.1.0"
