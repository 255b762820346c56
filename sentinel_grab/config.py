"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required settings or job inputs cannot be resolved.

    Fatal for the job being processed; never retried.
    """

    pass


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(
        default=False, description="Render logs as JSON instead of console output"
    )

    # Database
    database_url: Optional[str] = Field(
        default=None, description="PostgreSQL connection URL for the job queue"
    )
    db_pool_min_size: int = Field(default=1, description="Minimum connection pool size")
    db_pool_max_size: int = Field(default=5, description="Maximum connection pool size")

    # Filesystem
    work_root: str = Field(
        default="./work", description="Root for per-job download directories"
    )
    output_root_path: Optional[str] = Field(
        default=None,
        description="Default tile output root (jobs may override it)",
    )
    data_root: str = Field(
        default="./data", description="Download root for direct mode"
    )

    # Render scripts
    tool_root: Optional[str] = Field(
        default=None, description="OSGeo/GDAL installation root passed to scripts"
    )
    rgb_script_path: Optional[str] = Field(
        default=None, description="Tiling script for the RGB product family"
    )
    index_script_path: Optional[str] = Field(
        default=None, description="Tiling script for index products (NDVI, NDMI, NDRE)"
    )
    script_command: list[str] = Field(
        default=["pwsh", "-NoProfile", "-ExecutionPolicy", "Bypass", "-File"],
        description="Interpreter prefix used to launch render scripts",
    )
    default_scale_max_rgb: int = Field(
        default=4000, description="Reflectance mapped to full brightness for RGB"
    )
    default_ndvi_min: float = Field(default=-0.2, description="Index colour ramp minimum")
    default_ndvi_max: float = Field(default=0.9, description="Index colour ramp maximum")
    default_processes: int = Field(
        default=1, description="Parallel processes handed to the tiling script"
    )
    default_zoom_min: int = Field(default=8, description="Zoom min when the job has none")
    default_zoom_max: int = Field(default=14, description="Zoom max when the job has none")
    log_output_limit: int = Field(
        default=4000, description="Characters of script output persisted per product"
    )

    # Catalog
    stac_search_url: str = Field(
        default="https://planetarycomputer.microsoft.com/api/stac/v1/search",
        description="STAC item search endpoint",
    )
    stac_items_url: str = Field(
        default=(
            "https://planetarycomputer.microsoft.com/api/stac/v1"
            "/collections/sentinel-2-l2a/items"
        ),
        description="STAC items endpoint used for lookups by id",
    )
    sas_sign_url: str = Field(
        default="https://planetarycomputer.microsoft.com/api/sas/v1/sign",
        description="Asset href signing endpoint",
    )
    stac_collection: str = Field(default="sentinel-2-l2a", description="STAC collection")
    search_limit: int = Field(default=100, description="Max items per catalog search")
    default_cloud_cover_max: int = Field(
        default=80, description="Cloud cover ceiling when the job has none"
    )

    # HTTP / downloads
    http_timeout_s: float = Field(
        default=600.0, description="Client-level timeout for all HTTP calls"
    )
    download_max_attempts: int = Field(default=3, description="Attempts per band file")
    download_base_delay_s: float = Field(
        default=120.0, description="First retry delay; doubles per attempt"
    )

    # Sentry Observability
    sentry_dsn: Optional[str] = Field(
        default=None, description="Sentry DSN for error tracking"
    )
    sentry_environment: str = Field(
        default="development", description="Sentry environment tag"
    )

    # Direct mode defaults
    cli_bbox: str = Field(
        default="-103.86731513843112,50.5123611,-102.9133333,50.99259736981789",
        description="Bbox used by direct mode when --bbox is omitted",
    )
    cli_year: int = Field(default=2025, description="Direct mode year")
    cli_month: int = Field(default=5, ge=1, le=12, description="Direct mode month")
    cli_cloud_cover_max: int = Field(default=80, description="Direct mode cloud ceiling")

    def require_database_url(self) -> str:
        """Return the database URL or raise ConfigurationError."""
        if not self.database_url:
            raise ConfigurationError("DATABASE_URL is not configured")
        return self.database_url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
