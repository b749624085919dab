"""Connection configuration and the keys used to share clients between components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .settings import ConnectorSettings, settings


@dataclass(frozen=True)
class ConnectionKey:
    """Structural identity of a connection configuration.

    Two configurations producing interchangeable clients compare equal, so
    they end up sharing one ``MongoClient`` in the ``ClientRegistry``.
    """

    host: str
    port: int
    database: str
    username: Optional[str]
    password: Optional[str] = field(repr=False)
    uri: Optional[str] = field(default=None, repr=False)
    options: Tuple[Tuple[str, Any], ...] = ()

    def __str__(self) -> str:
        if self.uri:
            return f"<uri>/{self.database}"
        user = f"{self.username}@" if self.username else ""
        return f"mongodb://{user}{self.host}:{self.port}/{self.database}"


class ConnectionConfiguration(BaseModel):
    """Connection parameters of a MongoDB component.

    ``uri`` replaces host, port and credentials when set; ``database`` is
    always required because the components work on a single database.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default_factory=lambda: settings.default_host)
    port: int = Field(default_factory=lambda: settings.default_port, gt=0, lt=65536)
    database: str = Field(min_length=1)
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    auth_source: Optional[str] = None
    replica_set: Optional[str] = None
    tls: bool = False
    max_pool_size: Optional[int] = Field(default=None, ge=0)
    min_pool_size: Optional[int] = Field(default=None, ge=0)
    max_idle_time_ms: Optional[int] = Field(default=None, ge=0)
    connect_timeout_ms: Optional[int] = Field(default=None, ge=0)
    server_selection_timeout_ms: Optional[int] = Field(default=None, ge=0)
    uri: Optional[str] = None

    def connection_key(self) -> ConnectionKey:
        options = (
            ("auth_source", self.auth_source),
            ("connect_timeout_ms", self.connect_timeout_ms),
            ("max_idle_time_ms", self.max_idle_time_ms),
            ("max_pool_size", self.max_pool_size),
            ("min_pool_size", self.min_pool_size),
            ("replica_set", self.replica_set),
            ("server_selection_timeout_ms", self.server_selection_timeout_ms),
            ("tls", self.tls),
        )
        return ConnectionKey(
            host=self.host,
            port=self.port,
            database=self.database,
            username=self.username,
            password=self.password.get_secret_value() if self.password else None,
            uri=self.uri,
            options=options,
        )

    def client_options(self, connector_settings: Optional[ConnectorSettings] = None) -> Dict[str, Any]:
        """Keyword arguments for ``pymongo.MongoClient``."""

        active = connector_settings or settings
        options: Dict[str, Any] = {
            "appname": active.app_name,
            "serverSelectionTimeoutMS": _first_set(self.server_selection_timeout_ms, active.server_selection_timeout_ms),
            "connectTimeoutMS": _first_set(self.connect_timeout_ms, active.connect_timeout_ms),
        }
        if self.uri:
            options["host"] = self.uri
        else:
            options["host"] = self.host
            options["port"] = self.port
            if self.username:
                options["username"] = self.username
                options["password"] = self.password.get_secret_value() if self.password else None

        optional = {
            "authSource": self.auth_source,
            "replicaSet": self.replica_set,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "maxIdleTimeMS": self.max_idle_time_ms,
        }
        options.update({name: value for name, value in optional.items() if value is not None})
        if self.tls:
            options["tls"] = True
        return options


def _first_set(value: Optional[int], default: int) -> int:
    return default if value is None else value


def client_factory(
    config: ConnectionConfiguration,
    connector_settings: Optional[ConnectorSettings] = None,
) -> Callable[[], MongoClient]:
    """Return a zero-argument factory building a client for ``config``."""

    active = connector_settings or settings

    def create() -> MongoClient:
        client: MongoClient = MongoClient(**config.client_options(active))
        if active.ping_on_connect:
            try:
                client.admin.command("ping")
            except PyMongoError:
                client.close()
                raise
        logger.info("Created MongoClient for {key}", key=config.connection_key())
        return client

    return create
