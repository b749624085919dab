from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from pymongo.results import DeleteResult, InsertManyResult, InsertOneResult, UpdateResult

from flow_mongodb import ClientRegistry, ConnectionConfiguration

COLLECTION_NAME = "test-collection"
DATABASE_NAME = "test"


def _compare(value: Any, operator: str, expected: Any) -> bool:
    if operator == "$ne":
        return value != expected
    if operator == "$in":
        return value in expected
    if value is None:
        return False
    if operator == "$gt":
        return value > expected
    if operator == "$gte":
        return value >= expected
    if operator == "$lt":
        return value < expected
    if operator == "$lte":
        return value <= expected
    raise AssertionError(f"operator {operator} not supported by the fake collection")


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for field, condition in query.items():
        value = document.get(field)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(value, op, expected) for op, expected in condition.items()):
                return False
        elif value != condition:
            return False
    return True


class FakeCollection:
    """In-memory stand-in for ``pymongo.collection.Collection``.

    Returns real ``pymongo.results`` objects and records every driver call.
    """

    def __init__(self, name: str = COLLECTION_NAME, database: str = DATABASE_NAME) -> None:
        self.name = name
        self.full_name = f"{database}.{name}"
        self.documents: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.acknowledged = True
        self.error: Optional[Exception] = None

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    def _store(self, document: Dict[str, Any]) -> Any:
        document.setdefault("_id", ObjectId())
        self.documents.append(dict(document))
        return document["_id"]

    def _matching(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [d for d in self.documents if matches(d, query)]

    def insert_one(self, document):
        self._record("insert_one")
        return InsertOneResult(self._store(document), self.acknowledged)

    def insert_many(self, documents):
        self._record("insert_many")
        return InsertManyResult([self._store(d) for d in documents], self.acknowledged)

    def find(self, filter=None, projection=None, limit=0):
        self._record("find")
        found = [dict(d) for d in self._matching(filter or {})]
        if limit:
            found = found[:limit]
        if projection:
            found = [{k: v for k, v in d.items() if k == "_id" or projection.get(k)} for d in found]
        return iter(found)

    def count_documents(self, filter):
        self._record("count_documents")
        return len(self._matching(filter))

    def delete_one(self, filter):
        self._record("delete_one")
        found = self._matching(filter)[:1]
        for d in found:
            self.documents.remove(d)
        return DeleteResult({"n": len(found)}, self.acknowledged)

    def delete_many(self, filter):
        self._record("delete_many")
        found = self._matching(filter)
        for d in found:
            self.documents.remove(d)
        return DeleteResult({"n": len(found)}, self.acknowledged)

    def _apply_update(self, found, update, upsert, filter):
        modified = 0
        for d in found:
            before = dict(d)
            d.update(update.get("$set", {}))
            modified += before != d
        if not found and upsert:
            document = dict(filter)
            document.update(update.get("$set", {}))
            return UpdateResult({"n": 1, "nModified": 0, "upserted": self._store(document)}, self.acknowledged)
        return UpdateResult({"n": len(found), "nModified": modified}, self.acknowledged)

    def update_one(self, filter, update, upsert=False):
        self._record("update_one")
        return self._apply_update(self._matching(filter)[:1], update, upsert, filter)

    def update_many(self, filter, update, upsert=False):
        self._record("update_many")
        return self._apply_update(self._matching(filter), update, upsert, filter)

    def replace_one(self, filter, replacement, upsert=False):
        self._record("replace_one")
        found = self._matching(filter)[:1]
        for d in found:
            identifier = d["_id"]
            d.clear()
            d.update(replacement)
            d["_id"] = identifier
        return UpdateResult({"n": len(found), "nModified": len(found)}, self.acknowledged)


class FakeServer:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.clients: List["FakeClient"] = []

    def collection(self, database: str, name: str) -> FakeCollection:
        key = f"{database}.{name}"
        if key not in self.collections:
            self.collections[key] = FakeCollection(name, database)
        return self.collections[key]


class _FakeDatabase:
    def __init__(self, server: FakeServer, name: str) -> None:
        self.server = server
        self.name = name

    def __getitem__(self, name: str) -> FakeCollection:
        return self.server.collection(self.name, name)


class FakeClient:
    def __init__(self, server: FakeServer) -> None:
        self.server = server
        self.close_calls = 0

    def __getitem__(self, name: str) -> _FakeDatabase:
        return _FakeDatabase(self.server, name)

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture()
def server(monkeypatch):
    server = FakeServer()

    def factory(config, connector_settings=None):
        def create():
            client = FakeClient(server)
            server.clients.append(client)
            return client

        return create

    monkeypatch.setattr("flow_mongodb.components.client_factory", factory)
    return server


@pytest.fixture()
def registry():
    return ClientRegistry()


@pytest.fixture()
def connection():
    return ConnectionConfiguration(host="localhost", port=27017, database=DATABASE_NAME)


@pytest.fixture()
def collection(server):
    return server.collection(DATABASE_NAME, COLLECTION_NAME)


@pytest.fixture()
def make_component(server, registry, connection):
    created = []

    def build(component_cls, **kwargs):
        kwargs.setdefault("connection", connection)
        kwargs.setdefault("collection", COLLECTION_NAME)
        kwargs.setdefault("registry", registry)
        component = component_cls(**kwargs)
        created.append(component)
        return component

    yield build
    for component in created:
        component.dispose()
