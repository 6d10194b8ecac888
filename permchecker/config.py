"""Configuration settings for the permchecker API.

All settings are loaded from environment variables (or a ``.env`` file) using
pydantic-settings. The ``get_settings()`` function returns a cached singleton
instance.

Environment variables are case-insensitive and extra variables are silently
ignored.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        api_host: Bind address for the API server.
        api_port: Bind port for the API server.
        api_debug: Enable FastAPI debug mode.
        api_log_level: Logging level (debug, info, warning, error, critical).
        registry_backend: Package registry to query, ``adb`` or ``snapshot``.
        snapshot_path: JSON snapshot served by the ``snapshot`` backend.
        adb_path: Path to the adb binary.
        adb_serial: Device serial to target; empty uses the only attached device.
        adb_timeout_seconds: Timeout for a single adb shell command.
        adb_user_id: Android user whose runtime grants are reported.
        permission_cache_ttl_seconds: How long the device permission table is reused.
        scan_workers: Size of the worker pool running registry scans.
        top_risk_count: Default number of apps in the risk ranking.
        include_system_apps: Default for the ``include_system_apps`` filter.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False
    api_log_level: str = "info"

    # Registry
    registry_backend: str = Field("adb", pattern="^(adb|snapshot)$")
    snapshot_path: Path = Path("snapshot.json")

    # ADB
    adb_path: str = "adb"
    adb_serial: str = ""
    adb_timeout_seconds: int = 30
    adb_user_id: int = 0
    permission_cache_ttl_seconds: int = 300

    # Analysis
    scan_workers: int = Field(2, ge=1)
    top_risk_count: int = Field(5, ge=0)
    include_system_apps: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()
