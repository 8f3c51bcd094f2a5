# engine/dispatch/status.py

"""
Per-job status store.

One JSON object per job id. Holds the job's lifecycle status, the last
reported progress numbers, the Progress checkpoint under ``"progress"``
and whatever keys steps write through their status accessor.
"""

import json
import threading
from enum import Enum
from typing import Any, Dict, Optional

import redis

from config.settings import settings
from engine.log import get_logger

logger = get_logger("status")


class JobStatus(str, Enum):
    """
    Lifecycle of one queued mission job.
    """

    QUEUED = "queued"
    WORKING = "working"
    COMPLETED = "completed"
    FAILED = "failed"


class StatusStore:
    """
    Interface: the queue's persisted per-job key/value state.
    """

    def read(self, job_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    def merge(self, job_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def clear(self, job_id: str) -> None:
        raise NotImplementedError

    def get(self, job_id: str, key: str, default: Any = None) -> Any:
        return self.read(job_id).get(key, default)


class MemoryStatusStore(StatusStore):
    """
    Process-local store for eager mode and tests.
    Values are JSON round-tripped so they look exactly like Redis reads.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def read(self, job_id: str) -> Dict[str, Any]:
        with self._lock:
            raw = self._data.get(job_id)
        return _decode(job_id, raw)

    def merge(self, job_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            current = _decode(job_id, self._data.get(job_id))
            current.update(values)
            self._data[job_id] = json.dumps(current)
        return current

    def clear(self, job_id: str) -> None:
        with self._lock:
            self._data.pop(job_id, None)


class RedisStatusStore(StatusStore):
    """
    Redis-backed store. Each merge is one optimistic WATCH/MULTI transaction,
    so concurrent writers never drop each other's keys.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        key_prefix: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.client = client or redis.Redis.from_url(settings.REDIS_URL)
        self.key_prefix = key_prefix or settings.STATUS_KEY_PREFIX
        self.ttl_seconds = settings.STATUS_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    def key(self, job_id: str) -> str:
        return f"{self.key_prefix}:{job_id}"

    def read(self, job_id: str) -> Dict[str, Any]:
        return _decode(job_id, self.client.get(self.key(job_id)))

    def merge(self, job_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        key = self.key(job_id)

        def _apply(pipe) -> None:
            current = _decode(job_id, pipe.get(key))
            current.update(values)
            pipe.multi()
            if self.ttl_seconds:
                pipe.set(key, json.dumps(current), ex=self.ttl_seconds)
            else:
                pipe.set(key, json.dumps(current))
            merged.clear()
            merged.update(current)

        merged: Dict[str, Any] = {}
        self.client.transaction(_apply, key)
        return merged

    def clear(self, job_id: str) -> None:
        self.client.delete(self.key(job_id))


def _decode(job_id: str, raw) -> Dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        value = json.loads(raw)
    except ValueError:
        logger.error(f"Corrupt status blob for job {job_id}; treating as empty")
        return {}
    if not isinstance(value, dict):
        logger.error(f"Status blob for job {job_id} is not an object; treating as empty")
        return {}
    return value


_store: Optional[StatusStore] = None


def get_status_store() -> StatusStore:
    """
    Process-wide store selected by ``STATUS_BACKEND``.
    """
    global _store
    if _store is None:
        if settings.STATUS_BACKEND == "memory":
            _store = MemoryStatusStore()
        else:
            _store = RedisStatusStore()
    return _store


def set_status_store(store: Optional[StatusStore]) -> None:
    global _store
    _store = store
