"""Configuration helpers for MongoDB clients created by flow_mongodb.

Values are read from ``FLOW_MONGODB_*`` environment variables (or a ``.env``
file). Hosts can create a new ``ConnectorSettings`` instance and pass it to
``client_factory`` or the components to override the defaults.
"""
from __future__ import annotations

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConnectorSettings(BaseSettings):
    """Driver-level defaults shared by every connection configuration."""

    model_config = SettingsConfigDict(env_prefix="FLOW_MONGODB_", env_file=".env", extra="ignore")

    default_host: str = "localhost"
    default_port: int = 27017
    server_selection_timeout_ms: int = 5000
    connect_timeout_ms: int = 10000
    app_name: str = "flow-mongodb"
    ping_on_connect: bool = False


def _default_settings() -> "ConnectorSettings":
    return ConnectorSettings()


settings: ConnectorSettings = _default_settings()
logger.debug(
    "ConnectorSettings initialized with default_host={host} default_port={port} app_name={app}",
    host=settings.default_host,
    port=settings.default_port,
    app=settings.app_name,
)
