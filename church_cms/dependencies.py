"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Depends

from church_cms.cleanup import BlobCleanupQueue, InMemoryCleanupQueue, RedisCleanupQueue
from church_cms.config import get_settings
from church_cms.db import InMemoryRecordStore, RecordStore, SqlRecordStore
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.storage import InMemoryObjectStore, ObjectStore, S3ObjectStore

logger = logging.getLogger(__name__)

_record_store: RecordStore | None = None
_object_store: ObjectStore | None = None
_cleanup_queue: BlobCleanupQueue | None = None
_cleanup_queue_resolved = False


def get_record_store() -> RecordStore:
    """
    Return a singleton record store so state persists across requests.
    """
    global _record_store
    if _record_store is not None:
        return _record_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _record_store = InMemoryRecordStore()
    else:
        _record_store = SqlRecordStore(settings.database_url)
    logger.info("Record store: %s", _record_store.__class__.__name__)
    return _record_store


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is not None:
        return _object_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.aws_s3_bucket:
        _object_store = InMemoryObjectStore(cdn_base_url=settings.cloudfront_url)
    else:
        _object_store = S3ObjectStore(
            bucket=settings.aws_s3_bucket,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            endpoint=settings.s3_endpoint_url,
            cdn_base_url=settings.cloudfront_url,
        )
    logger.info("Object store: %s", _object_store.__class__.__name__)
    return _object_store


def get_cleanup_queue() -> Optional[BlobCleanupQueue]:
    """
    Return a singleton queue for blob deletions the worker should retry.

    The in-memory queue is only used alongside the in-memory object store,
    since the worker runs in its own process. With S3 and no Redis there is
    no queue: failed deletes are logged as orphaned instead.
    """
    global _cleanup_queue, _cleanup_queue_resolved
    if _cleanup_queue_resolved:
        return _cleanup_queue

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.aws_s3_bucket:
        _cleanup_queue = InMemoryCleanupQueue()
    elif settings.redis_url:
        _cleanup_queue = RedisCleanupQueue(
            url=settings.redis_url,
            queue_key=settings.cleanup_queue_key,
        )
    else:
        logger.warning("REDIS_URL is not set; failed blob deletes will not be retried")
        _cleanup_queue = None
    _cleanup_queue_resolved = True
    return _cleanup_queue


def reset_backends() -> None:
    """Drop the singletons so the next request builds fresh ones (tests)."""
    global _record_store, _object_store, _cleanup_queue, _cleanup_queue_resolved
    _record_store = None
    _object_store = None
    _cleanup_queue = None
    _cleanup_queue_resolved = False


def media_manager(collection: str) -> Callable[..., MediaAttachedResourceManager]:
    """Build a dependency yielding the media manager for ``collection``."""

    def _dependency(
        db: RecordStore = Depends(get_record_store),
        storage: ObjectStore = Depends(get_object_store),
        queue: Optional[BlobCleanupQueue] = Depends(get_cleanup_queue),
    ) -> MediaAttachedResourceManager:
        return MediaAttachedResourceManager(db, storage, collection, cleanup_queue=queue)

    return _dependency
