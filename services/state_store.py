"""
Keyed state storage for endpoint registrations and processed-event markers.

Two backends share one small interface (get / put / delete / list with an
optional per-key expiry):
  - InMemoryStore: process-local, used for development and tests
  - MongoStore: MongoDB collection with a TTL index, configure via MONGODB_URI

Services never touch a backend directly. They receive a StatePartition, an
explicitly opened handle that namespaces keys under a partition name and
serializes every storage operation behind a single re-entrant lock.
"""
import json
import logging
import re
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from threading import Lock, RLock
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from services.exceptions import StateNotOpenError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Interface implemented by the storage backends"""

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def list(self, prefix: str = '', limit: Optional[int] = None) -> Dict[str, Any]:
        """Return live entries whose key starts with prefix, ordered by key."""
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Dictionary-backed store. Values are kept JSON-encoded so readers always get copies."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = Lock()

    def _is_live(self, entry: Tuple[str, Optional[float]]) -> bool:
        expires_at = entry[1]
        return expires_at is None or expires_at > self._clock()

    def _purge_expired(self) -> None:
        expired = [key for key, entry in self._data.items() if not self._is_live(entry)]
        for key in expired:
            del self._data[key]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if not self._is_live(entry):
                del self._data[key]
                return None
            return json.loads(entry[0])

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        expires_at = self._clock() + ttl.total_seconds() if ttl is not None else None
        with self._lock:
            self._data[key] = (json.dumps(value), expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list(self, prefix: str = '', limit: Optional[int] = None) -> Dict[str, Any]:
        with self._lock:
            self._purge_expired()
            keys = sorted(k for k in self._data if k.startswith(prefix))
            if limit is not None:
                keys = keys[:limit]
            return {key: json.loads(self._data[key][0]) for key in keys}

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._data)


class MongoStore(KeyValueStore):
    """
    MongoDB-backed store. One document per key:
        {_id: key, value: <json value>, expires_at: datetime | None}
    A TTL index on expires_at lets MongoDB reap expired markers; reads also
    ignore documents past their deadline since the TTL monitor runs lazily.
    """

    def __init__(self, uri: str, database: str, collection: str):
        if not uri:
            raise ValueError("MONGODB_URI not configured")
        self.uri = uri
        self.database = database
        self.collection_name = collection
        self._client = None
        self._collection = None

    @property
    def collection(self):
        if self._collection is None:
            raise StateNotOpenError("MongoStore is not open")
        return self._collection

    def open(self) -> None:
        from pymongo import MongoClient

        self._client = MongoClient(self.uri, tz_aware=True)
        db = self._client[self.database] if self.database else self._client.get_default_database()
        self._collection = db[self.collection_name]
        self._collection.create_index('expires_at', expireAfterSeconds=0)
        logger.info(f"Connected to MongoDB state collection {self.collection_name}")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
        self._collection = None

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def _live_filter(self) -> Dict[str, Any]:
        return {'$or': [{'expires_at': None}, {'expires_at': {'$gt': self._now()}}]}

    def get(self, key: str) -> Optional[Any]:
        doc = self.collection.find_one({'_id': key, **self._live_filter()})
        return doc['value'] if doc else None

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        expires_at = self._now() + ttl if ttl is not None else None
        self.collection.replace_one(
            {'_id': key},
            {'_id': key, 'value': value, 'expires_at': expires_at},
            upsert=True,
        )

    def delete(self, key: str) -> None:
        self.collection.delete_one({'_id': key})

    def list(self, prefix: str = '', limit: Optional[int] = None) -> Dict[str, Any]:
        query = {'_id': {'$regex': '^' + re.escape(prefix)}, **self._live_filter()}
        cursor = self.collection.find(query).sort('_id', 1)
        if limit is not None:
            cursor = cursor.limit(limit)
        return {doc['_id']: doc['value'] for doc in cursor}


class StatePartition:
    """
    Named, explicitly opened handle over a KeyValueStore.

    All reads and writes for one partition go through a single re-entrant
    lock, so read-modify-write sequences wrapped in exclusive() never
    interleave with another writer on the same partition.
    """

    def __init__(self, name: str, store: KeyValueStore):
        self.name = name
        self.store = store
        self._lock = RLock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "StatePartition":
        with self._lock:
            if not self._open:
                self.store.open()
                self._open = True
                logger.info(f"State partition '{self.name}' opened")
        return self

    def close(self) -> None:
        with self._lock:
            if self._open:
                self.store.close()
                self._open = False
                logger.info(f"State partition '{self.name}' closed")

    def __enter__(self) -> "StatePartition":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def exclusive(self) -> Iterator["StatePartition"]:
        with self._lock:
            if not self._open:
                raise StateNotOpenError(f"State partition '{self.name}' is not open")
            yield self

    def _key(self, key: str) -> str:
        return f"{self.name}/{key}"

    def get(self, key: str) -> Optional[Any]:
        with self.exclusive():
            return self.store.get(self._key(key))

    def put(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        with self.exclusive():
            self.store.put(self._key(key), value, ttl=ttl)

    def delete(self, key: str) -> None:
        with self.exclusive():
            self.store.delete(self._key(key))

    def list(self, prefix: str = '', limit: Optional[int] = None) -> Dict[str, Any]:
        with self.exclusive():
            entries = self.store.list(self._key(prefix), limit=limit)
        offset = len(self.name) + 1
        return {key[offset:]: value for key, value in entries.items()}


def create_store(config: Mapping[str, Any]) -> KeyValueStore:
    """Build the storage backend selected by STORAGE_BACKEND"""
    backend = config.get('STORAGE_BACKEND', 'memory')
    if backend == 'memory':
        return InMemoryStore()
    if backend == 'mongodb':
        return MongoStore(
            uri=config.get('MONGODB_URI', ''),
            database=config.get('MONGODB_DATABASE', ''),
            collection=config.get('MONGODB_COLLECTION', 'notification_state'),
        )
    raise ValueError(f"Unsupported storage backend: {backend}")


def open_state(config: Mapping[str, Any]) -> StatePartition:
    """Create and open the state partition described by the configuration"""
    partition = StatePartition(config.get('STATE_PARTITION', 'default'), create_store(config))
    return partition.open()
