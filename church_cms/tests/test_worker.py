import unittest

from church_cms.cleanup import CleanupTask, InMemoryCleanupQueue
from church_cms.errors import StorageDeleteError
from church_cms.storage import InMemoryObjectStore
from church_cms.worker import process_next


class FlakyStore(InMemoryObjectStore):
    """Fails the first ``failures`` deletes, then behaves normally."""

    def __init__(self, failures: int):
        super().__init__(bucket="church")
        self.failures = failures

    def delete(self, url: str) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise StorageDeleteError(url, "slow down")
        super().delete(url)


class WorkerTests(unittest.TestCase):
    def test_no_tasks(self):
        processed = process_next(
            storage=InMemoryObjectStore(), queue=InMemoryCleanupQueue(), block=False, max_attempts=3
        )
        self.assertFalse(processed)

    def test_deletes_queued_blob(self):
        storage = InMemoryObjectStore(bucket="church")
        url = storage.upload(b"abc", "a.png", "articles")
        queue = InMemoryCleanupQueue()
        queue.enqueue(CleanupTask(url=url))

        self.assertTrue(process_next(storage=storage, queue=queue, block=False, max_attempts=3))
        self.assertEqual(storage.objects, {})
        self.assertEqual(queue.items, [])

    def test_failed_delete_is_retried(self):
        storage = FlakyStore(failures=1)
        url = storage.upload(b"abc", "a.png", "articles")
        queue = InMemoryCleanupQueue()
        queue.enqueue(CleanupTask(url=url))

        process_next(storage=storage, queue=queue, block=False, max_attempts=3)
        self.assertEqual(queue.items, [CleanupTask(url=url, attempts=1)])
        process_next(storage=storage, queue=queue, block=False, max_attempts=3)
        self.assertEqual(queue.items, [])
        self.assertEqual(storage.objects, {})

    def test_gives_up_after_max_attempts(self):
        storage = FlakyStore(failures=10)
        queue = InMemoryCleanupQueue()
        queue.enqueue(CleanupTask(url="https://church.s3.amazonaws.com/a/b.png"))

        runs = 0
        while process_next(storage=storage, queue=queue, block=False, max_attempts=3):
            runs += 1
        self.assertEqual(runs, 3)

    def test_unrecognised_url_is_dropped(self):
        queue = InMemoryCleanupQueue()
        queue.enqueue(CleanupTask(url="https://elsewhere.example.org/x.png"))
        process_next(storage=InMemoryObjectStore(), queue=queue, block=False, max_attempts=3)
        self.assertEqual(queue.items, [])


if __name__ == "__main__":
    unittest.main()
