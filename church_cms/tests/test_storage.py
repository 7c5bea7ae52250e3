import unittest
from unittest import mock

from botocore.exceptions import EndpointConnectionError
from botocore.stub import ANY, Stubber

from church_cms.errors import (
    InvalidReference,
    StorageDeleteError,
    StorageReadError,
    StorageUploadError,
)
from church_cms.storage import (
    InMemoryObjectStore,
    S3ObjectStore,
    content_type_for,
    key_from_url,
    public_url,
)


class UrlTests(unittest.TestCase):
    def test_public_url_without_cdn(self):
        self.assertEqual(
            public_url("audio/x.mp3", "church"),
            "https://church.s3.amazonaws.com/audio/x.mp3",
        )

    def test_public_url_with_cdn(self):
        self.assertEqual(
            public_url("audio/x.mp3", "church", "https://cdn.example.org/"),
            "https://cdn.example.org/audio/x.mp3",
        )

    def test_key_from_url_shapes(self):
        self.assertEqual(
            key_from_url("https://cdn.example.org/memories/a.png", "church", "https://cdn.example.org"),
            "memories/a.png",
        )
        self.assertEqual(
            key_from_url("https://church.s3.amazonaws.com/memories/a.png", "church"),
            "memories/a.png",
        )
        self.assertEqual(key_from_url("s3://church/memories/a.png", "church"), "memories/a.png")
        self.assertIsNone(key_from_url("https://elsewhere.example.org/a.png", "church"))
        self.assertIsNone(key_from_url("", "church"))

    def test_content_type_table(self):
        self.assertEqual(content_type_for("Sermon.MP3"), "audio/mpeg")
        self.assertEqual(content_type_for("logo.svg"), "image/svg+xml")
        self.assertEqual(content_type_for("notes.txt"), "application/octet-stream")


class InMemoryObjectStoreTests(unittest.TestCase):
    def test_upload_read_delete(self):
        store = InMemoryObjectStore(bucket="church")
        url = store.upload(b"abc", "photo.png", "memories")
        self.assertTrue(url.startswith("https://church.s3.amazonaws.com/memories/"))
        self.assertTrue(url.endswith(".png"))
        self.assertEqual(store.get_bytes(url), b"abc")
        self.assertEqual(store.content_type(url), "image/png")

        store.delete(url)
        with self.assertRaises(FileNotFoundError):
            store.get_bytes(url)
        # Deleting again is a no-op, like S3.
        store.delete(url)

    def test_delete_unknown_url_shape(self):
        store = InMemoryObjectStore()
        with self.assertRaises(InvalidReference):
            store.delete("https://elsewhere.example.org/a.png")


class S3ObjectStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = S3ObjectStore(
            bucket="church",
            region="us-east-1",
            access_key_id="test",
            secret_access_key="test",
        )
        self.stubber = Stubber(self.store._client)
        self.stubber.activate()

    def tearDown(self):
        self.stubber.deactivate()

    def test_upload_puts_object_with_content_type(self):
        self.stubber.add_response(
            "put_object",
            {},
            {"Bucket": "church", "Key": ANY, "Body": b"ID3", "ContentType": "audio/mpeg"},
        )
        url = self.store.upload(b"ID3", "sermon.mp3", "audio")
        self.assertTrue(url.startswith("https://church.s3.amazonaws.com/audio/"))
        self.assertTrue(url.endswith(".mp3"))
        self.stubber.assert_no_pending_responses()

    def test_upload_failure(self):
        self.stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with self.assertRaises(StorageUploadError):
            self.store.upload(b"x", "a.png", "articles")

    def test_delete_uses_key_from_url(self):
        self.stubber.add_response(
            "delete_object", {}, {"Bucket": "church", "Key": "articles/a.png"}
        )
        self.store.delete("https://church.s3.amazonaws.com/articles/a.png")
        self.stubber.assert_no_pending_responses()

    def test_delete_failure_is_distinct_from_upload_failure(self):
        self.stubber.add_client_error("delete_object", service_error_code="InternalError", http_status_code=500)
        with self.assertRaises(StorageDeleteError) as ctx:
            self.store.delete("https://church.s3.amazonaws.com/articles/a.png")
        self.assertEqual(ctx.exception.url, "https://church.s3.amazonaws.com/articles/a.png")

    def test_get_bytes_missing_key(self):
        self.stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        with self.assertRaises(FileNotFoundError):
            self.store.get_bytes("https://church.s3.amazonaws.com/articles/gone.png")

    def test_get_bytes_failures_are_wrapped(self):
        url = "https://church.s3.amazonaws.com/articles/a.png"
        self.stubber.add_client_error("get_object", service_error_code="AccessDenied", http_status_code=403)
        with self.assertRaises(StorageReadError):
            self.store.get_bytes(url)

        timeout = EndpointConnectionError(endpoint_url="https://church.s3.amazonaws.com")
        with mock.patch.object(self.store._client, "get_object", side_effect=timeout):
            with self.assertRaises(StorageReadError) as ctx:
                self.store.get_bytes(url)
        self.assertEqual(ctx.exception.url, url)


if __name__ == "__main__":
    unittest.main()
