import pytest
from pydantic import ValidationError
from pymongo.errors import ServerSelectionTimeoutError

from flow_mongodb import ClientRegistry, ConnectionConfiguration, ConnectorSettings, MongoConnectionError, client_factory


def _config(**overrides):
    values = dict(host="mongo", port=27018, database="shop", username="app", password="s3cr3t")
    values.update(overrides)
    return ConnectionConfiguration(**values)


class RecordingMongoClient:
    instances = []
    fail_ping = False

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        self.admin = self
        RecordingMongoClient.instances.append(self)

    def command(self, name):
        if RecordingMongoClient.fail_ping:
            raise ServerSelectionTimeoutError("no servers found")
        return {"ok": 1}

    def close(self):
        self.closed = True


@pytest.fixture()
def mongo_client(monkeypatch):
    RecordingMongoClient.instances = []
    RecordingMongoClient.fail_ping = False
    monkeypatch.setattr("flow_mongodb.connection.MongoClient", RecordingMongoClient)
    return RecordingMongoClient


def test_independent_identical_configurations_have_equal_keys():
    assert _config().connection_key() == _config().connection_key()
    assert hash(_config().connection_key()) == hash(_config().connection_key())


@pytest.mark.parametrize(
    "overrides",
    [
        {"host": "other"},
        {"port": 27019},
        {"database": "billing"},
        {"username": "admin"},
        {"password": "different"},
        {"tls": True},
        {"max_pool_size": 10},
        {"replica_set": "rs0"},
    ],
)
def test_any_configuration_difference_changes_the_key(overrides):
    assert _config(**overrides).connection_key() != _config().connection_key()


def test_key_never_shows_the_password():
    key = _config().connection_key()

    assert "s3cr3t" not in repr(key)
    assert "s3cr3t" not in str(key)
    assert str(key) == "mongodb://app@mongo:27018/shop"


def test_database_is_required():
    with pytest.raises(ValidationError):
        ConnectionConfiguration(host="mongo", database="")


def test_client_options_from_host_and_credentials():
    settings = ConnectorSettings(app_name="flows", server_selection_timeout_ms=1500, connect_timeout_ms=2500)

    options = _config(auth_source="admin", max_pool_size=20, tls=True).client_options(settings)

    assert options == {
        "appname": "flows",
        "serverSelectionTimeoutMS": 1500,
        "connectTimeoutMS": 2500,
        "host": "mongo",
        "port": 27018,
        "username": "app",
        "password": "s3cr3t",
        "authSource": "admin",
        "maxPoolSize": 20,
        "tls": True,
    }


def test_uri_replaces_host_and_credentials():
    options = _config(uri="mongodb://user:pw@db1,db2/?replicaSet=rs0", server_selection_timeout_ms=100).client_options()

    assert options["host"] == "mongodb://user:pw@db1,db2/?replicaSet=rs0"
    assert "port" not in options
    assert "username" not in options
    assert options["serverSelectionTimeoutMS"] == 100


def test_client_factory_builds_client_from_configuration(mongo_client):
    client = client_factory(_config(), ConnectorSettings())()

    assert client is mongo_client.instances[0]
    assert client.kwargs["host"] == "mongo"
    assert client.kwargs["port"] == 27018


def test_failed_ping_closes_client_and_surfaces_as_connection_error(mongo_client):
    mongo_client.fail_ping = True
    registry = ClientRegistry()
    config = _config()

    with pytest.raises(MongoConnectionError, match="no servers found"):
        registry.acquire(config.connection_key(), client_factory(config, ConnectorSettings(ping_on_connect=True)))

    assert mongo_client.instances[0].closed
    assert len(registry) == 0
