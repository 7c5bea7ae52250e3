"""
Queue of blob URLs whose deletion failed and should be retried later.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Each entry is a JSON payload carrying the
URL and how many attempts have already been made.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupTask:
    url: str
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps({"url": self.url, "attempts": self.attempts})

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CleanupTask":
        payload = json.loads(raw)
        return cls(url=payload["url"], attempts=int(payload.get("attempts", 0)))


class BlobCleanupQueue(Protocol):
    """Minimal queue interface for handing orphaned blobs to the worker."""

    def enqueue(self, task: CleanupTask) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[CleanupTask]:
        ...


@dataclass
class InMemoryCleanupQueue:
    """Simple FIFO queue for testing/dev."""

    items: list[CleanupTask] = field(default_factory=list)

    def enqueue(self, task: CleanupTask) -> None:
        self.items.append(task)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[CleanupTask]:
        if not self.items:
            return None
        return self.items.pop(0)

    def reset(self) -> None:
        self.items.clear()


@dataclass
class RedisCleanupQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "church_cms:blob_cleanup"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, task: CleanupTask) -> None:
        try:
            self.client.rpush(self.queue_key, task.to_json())
        except redis_exceptions.RedisError as e:
            # Callers are on a best-effort path; the URL in the log is the
            # last trace of the blob.
            logger.error("Could not queue cleanup of %s: %s", task.url, e)

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[CleanupTask]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, raw = result
            else:
                raw = self.client.lpop(self.queue_key)
                if raw is None:
                    return None
        except redis_exceptions.ConnectionError:
            # Managed Redis drops idle connections. Reconnect and let the
            # worker loop poll again.
            self.client = redis.Redis.from_url(self.url)
            return None
        try:
            return CleanupTask.from_json(raw)
        except (ValueError, KeyError) as e:
            logger.error("Dropping malformed cleanup entry %r: %s", raw, e)
            return None
