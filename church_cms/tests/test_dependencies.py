import unittest
from unittest import mock

from church_cms import dependencies
from church_cms.cleanup import InMemoryCleanupQueue, RedisCleanupQueue
from church_cms.config import Settings
from church_cms.storage import InMemoryObjectStore
from church_cms.worker import process_next


def settings(**overrides) -> Settings:
    values = {
        "database_url": None,
        "aws_s3_bucket": None,
        "redis_url": None,
        "use_in_memory_backends": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class CleanupQueueSelectionTests(unittest.TestCase):
    def setUp(self):
        dependencies.reset_backends()

    def tearDown(self):
        dependencies.reset_backends()

    def queue_for(self, **overrides):
        with mock.patch.object(dependencies, "get_settings", return_value=settings(**overrides)):
            return dependencies.get_cleanup_queue()

    def test_in_memory_queue_with_in_memory_storage(self):
        self.assertIsInstance(self.queue_for(), InMemoryCleanupQueue)
        dependencies.reset_backends()
        queue = self.queue_for(aws_s3_bucket="real-bucket", use_in_memory_backends=True)
        self.assertIsInstance(queue, InMemoryCleanupQueue)

    def test_redis_queue_with_s3(self):
        queue = self.queue_for(aws_s3_bucket="real-bucket", redis_url="redis://localhost:6379/0")
        self.assertIsInstance(queue, RedisCleanupQueue)

    def test_no_queue_with_s3_and_no_redis(self):
        with self.assertLogs("church_cms.dependencies", level="WARNING"):
            self.assertIsNone(self.queue_for(aws_s3_bucket="real-bucket"))
        # Resolved once; later calls do not rebuild or warn again.
        self.assertIsNone(dependencies.get_cleanup_queue())

    def test_worker_refuses_to_run_without_queue(self):
        with mock.patch("church_cms.worker.get_cleanup_queue", return_value=None):
            with self.assertRaises(RuntimeError):
                process_next(storage=InMemoryObjectStore(), block=False, max_attempts=3)


if __name__ == "__main__":
    unittest.main()
