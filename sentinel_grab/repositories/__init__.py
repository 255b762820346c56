"""Database repositories."""

from sentinel_grab.repositories.jobs import (
    SUPPORTED_SCHEMA_VERSION,
    JobRepository,
    SchemaVersionError,
)

__all__ = ["SUPPORTED_SCHEMA_VERSION", "JobRepository", "SchemaVersionError"]
