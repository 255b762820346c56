"""Shared fixtures for the test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from sentinel_grab.config import Settings


@pytest.fixture
def mock_conn():
    """asyncpg connection mock with async query methods."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="UPDATE 1")
    return conn


@pytest.fixture
def mock_pool(mock_conn):
    """Pool mock whose acquire() yields mock_conn."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = mock_conn
    return pool


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        work_root=str(tmp_path / "work"),
        output_root_path=str(tmp_path / "tiles"),
        data_root=str(tmp_path / "data"),
        tool_root="/opt/osgeo",
        rgb_script_path="/scripts/render_rgb.ps1",
        index_script_path="/scripts/render_index.ps1",
    )
