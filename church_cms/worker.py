"""
Worker loop that retries blob deletions the API could not finish.

Requests delete blobs best-effort; when the object store fails, the URL is
queued here instead of failing the request. Each task is retried until it
succeeds or reaches the configured attempt limit.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from church_cms.cleanup import BlobCleanupQueue, CleanupTask
from church_cms.config import get_settings
from church_cms.dependencies import get_cleanup_queue, get_object_store
from church_cms.errors import InvalidReference, StorageDeleteError
from church_cms.storage import ObjectStore

logger = logging.getLogger(__name__)


def _require_queue() -> BlobCleanupQueue:
    queue = get_cleanup_queue()
    if queue is None:
        raise RuntimeError("REDIS_URL must be set to run the cleanup worker")
    return queue


def process_task(
    task: CleanupTask,
    storage: ObjectStore,
    queue: BlobCleanupQueue,
    max_attempts: int,
) -> bool:
    """
    Delete one blob. Returns True when the blob is gone (or can never be
    deleted), False when the task was put back on the queue.
    """
    try:
        storage.delete(task.url)
    except InvalidReference:
        logger.warning("Dropping cleanup of unrecognised URL %s", task.url)
        return True
    except StorageDeleteError as e:
        attempts = task.attempts + 1
        if attempts >= max_attempts:
            logger.error(
                "Giving up on deleting %s after %d attempts: %s", task.url, attempts, e.error
            )
            return True
        logger.warning("Delete of %s failed (attempt %d): %s", task.url, attempts, e.error)
        queue.enqueue(CleanupTask(url=task.url, attempts=attempts))
        return False
    logger.info("Cleaned up orphaned blob %s", task.url)
    return True


def process_next(
    *,
    storage: Optional[ObjectStore] = None,
    queue: Optional[BlobCleanupQueue] = None,
    block: bool = True,
    timeout: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> bool:
    """
    Fetch and process one task from the queue. Returns True if a task was taken.
    """
    storage = storage or get_object_store()
    queue = queue or _require_queue()
    if max_attempts is None:
        max_attempts = get_settings().cleanup_max_attempts

    task = queue.dequeue(block=block, timeout=timeout)
    if task is None:
        return False
    process_task(task, storage, queue, max_attempts)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Blocking loop intended to be run under systemd/supervisor.
    """
    storage = get_object_store()
    queue = _require_queue()
    max_attempts = get_settings().cleanup_max_attempts
    logger.info("Blob cleanup worker started (%s)", storage.__class__.__name__)
    while True:
        processed = process_next(
            storage=storage,
            queue=queue,
            block=True,
            timeout=int(poll_interval_seconds),
            max_attempts=max_attempts,
        )
        if not processed:
            time.sleep(poll_interval_seconds)


def main() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_loop()


if __name__ == "__main__":
    main()
