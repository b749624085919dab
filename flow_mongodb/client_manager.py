"""Reference-counted sharing of MongoDB clients between components.

Components built from equal connection configurations share one
``MongoClient``. The registry is an explicit object handed to every
component; ``acquire`` and ``release`` are its only mutation points.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from loguru import logger
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from .connection import ConnectionKey
from .errors import MongoConnectionError


@dataclass(frozen=True)
class ClientHandle:
    """A live, possibly shared, client for one connection key."""

    key: ConnectionKey
    client: MongoClient

    def database(self) -> Database:
        return self.client[self.key.database]

    def collection(self, name: str) -> Collection:
        return self.database()[name]


class _Entry:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.client: Optional[MongoClient] = None
        self.references = 0
        # Threads holding or waiting for ``lock``; only changed under the registry lock.
        self.users = 0


class ClientRegistry:
    """Process-wide map from ``ConnectionKey`` to a shared client.

    The registry lock only guards the entry map. Construction and teardown of
    a client happen under the entry's own lock, so a slow factory for one key
    never blocks acquires of another key.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[ConnectionKey, _Entry] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def acquire(self, key: ConnectionKey, factory: Callable[[], MongoClient]) -> ClientHandle:
        entry = self._enter(key)
        try:
            with entry.lock:
                if entry.client is None:
                    entry.client = self._create(key, factory)
                entry.references += 1
                logger.debug(
                    "registry: acquired {key} (references={references})",
                    key=key,
                    references=entry.references,
                )
                return ClientHandle(key=key, client=entry.client)
        finally:
            self._leave(key, entry)

    def release(self, key: ConnectionKey) -> None:
        """Drop one reference; the client is closed when the last one goes.

        Releasing an unknown key does nothing. A client failing to close is
        logged and forgotten so other releases are not affected.
        """

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("registry: release of unknown key {key} ignored", key=key)
                return
            entry.users += 1

        try:
            with entry.lock:
                if entry.references == 0:
                    return
                entry.references -= 1
                logger.debug(
                    "registry: released {key} (references={references})",
                    key=key,
                    references=entry.references,
                )
                if entry.references == 0:
                    client, entry.client = entry.client, None
                    self._close(key, client)
        finally:
            self._leave(key, entry)

    def reference_count(self, key: ConnectionKey) -> int:
        with self._lock:
            entry = self._entries.get(key)
            return entry.references if entry is not None else 0

    def keys(self) -> List[ConnectionKey]:
        with self._lock:
            return list(self._entries)

    def close_all(self) -> None:
        """Close every client regardless of outstanding references."""

        for key in self.keys():
            with self._lock:
                entry = self._entries.get(key)
                if entry is None:
                    continue
                entry.users += 1
            try:
                with entry.lock:
                    client, entry.client = entry.client, None
                    entry.references = 0
                    if client is not None:
                        self._close(key, client)
            finally:
                self._leave(key, entry)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self, key: ConnectionKey) -> _Entry:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _leave(self, key: ConnectionKey, entry: _Entry) -> None:
        with self._lock:
            entry.users -= 1
            # Nobody else can touch ``references`` while users is zero.
            if entry.users == 0 and entry.references == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    @staticmethod
    def _create(key: ConnectionKey, factory: Callable[[], MongoClient]) -> MongoClient:
        try:
            return factory()
        except MongoConnectionError:
            raise
        except Exception as exc:
            logger.warning("registry: could not create client for {key}: {error}", key=key, error=exc)
            raise MongoConnectionError(key, str(exc)) from exc

    @staticmethod
    def _close(key: ConnectionKey, client: MongoClient) -> None:
        try:
            client.close()
        except Exception as exc:
            logger.warning("registry: closing client for {key} failed: {error}", key=key, error=exc)
        else:
            logger.info("registry: closed client for {key}", key=key)
