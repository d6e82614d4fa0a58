"""Application configuration settings.

This module defines the ``Settings`` class using ``pydantic-settings`` to
load configuration from environment variables (and an optional ``.env``
file). It centralises all runtime configuration for the dashboard, such as
the upstream planning endpoint, refresh intervals and the location of the
spatial registry produced by the map editor.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration values loaded from environment variables.

    Environment variable names map to fields by alias. Every value has a
    default so the service starts without any configuration against the
    public planning endpoint.
    """

    # Upstream planning API
    upstream_base_url: str = Field(
        default="https://lille-epiroom.epitest.eu/api/v1/planning",
        alias="PLANNING_API_URL",
        description="Planning endpoint queried with startDate/endDate parameters.",
    )
    upstream_timeout_seconds: float = Field(
        default=15.0,
        alias="PLANNING_TIMEOUT_SECONDS",
        description="Timeout applied to every upstream request.",
    )

    # Dashboard behaviour
    full_refresh_seconds: int = Field(
        default=120,
        alias="FULL_REFRESH_SECONDS",
        description="Interval (in seconds) between full re-fetches of the reservation feed.",
    )
    status_refresh_seconds: int = Field(
        default=30,
        alias="STATUS_REFRESH_SECONDS",
        description=(
            "Interval (in seconds) between in-place status recomputations. "
            "No network traffic happens on this timer."
        ),
    )
    background_refresh: bool = Field(
        default=True,
        alias="BACKGROUND_REFRESH",
        description="Run the refresh timers while the application is up.",
    )
    timezone: str = Field(
        default="Europe/Paris",
        alias="DASHBOARD_TIMEZONE",
        description="Timezone used to decide which calendar day is 'today'.",
    )

    # Maps
    spatial_registry_path: Optional[str] = Field(
        default=None,
        alias="SPATIAL_REGISTRY_PATH",
        description="JSON file exported by the map editor. Built-in regions are used when unset.",
    )
    floor_plan_dir: Optional[str] = Field(
        default=None,
        alias="FLOOR_PLAN_DIR",
        description="Directory holding Z<floor>-Floor.svg background images.",
    )
    enable_map_editor: bool = Field(
        default=False,
        alias="ENABLE_MAP_EDITOR",
        description="Expose the /dev/map-editor authoring tool.",
    )

    # UI / HTTP
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    enable_cors: bool = Field(default=False, alias="ENABLE_CORS")
    site_title: str = Field(default="EpiRoom", alias="SITE_TITLE")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


# Instantiate settings at module import time. This allows other modules to
# import ``settings`` directly without repeatedly reading environment variables.
settings = Settings()
