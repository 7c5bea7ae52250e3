import io
import unittest

from PIL import Image

from church_cms.cleanup import InMemoryCleanupQueue
from church_cms.db import InMemoryRecordStore
from church_cms.errors import (
    InvalidMediaType,
    MissingMedia,
    NotFound,
    StorageDeleteError,
    StorageUploadError,
    ValidationFailed,
)
from church_cms.media import UploadedMedia
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import ACTIVITIES, ARTICLES, AUDIO_MESSAGES, MEMORIES
from church_cms.storage import InMemoryObjectStore


def png(width: int = 4, height: int = 3, name: str = "photo.png") -> UploadedMedia:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "blue").save(buffer, format="PNG")
    return UploadedMedia(name, "image/png", buffer.getvalue())


def mp3(size: int = 1024, name: str = "sermon.mp3") -> UploadedMedia:
    return UploadedMedia(name, "audio/mpeg", b"\x00" * size)


class FailingDeleteStore(InMemoryObjectStore):
    def delete(self, url: str) -> None:
        raise StorageDeleteError(url, "service unavailable")


class FailingCreateStore(InMemoryRecordStore):
    def create(self, collection, fields):
        raise RuntimeError("database unavailable")


ARTICLE_FIELDS = {"title": "Grace", "authorId": "author-1", "text": "Some words here"}
AUDIO_FIELDS = {
    "title": "Sunday Service",
    "category": "Sermons",
    "speaker": "Pastor X",
    "description": "Morning worship",
}


class MediaManagerTestCase(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryRecordStore()
        self.storage = InMemoryObjectStore(bucket="church")
        self.queue = InMemoryCleanupQueue()

    def manager(self, collection, storage=None, db=None):
        return MediaAttachedResourceManager(
            db or self.db, storage or self.storage, collection, cleanup_queue=self.queue
        )


class CreateWithMediaTests(MediaManagerTestCase):
    def test_url_set_iff_file_supplied(self):
        articles = self.manager(ARTICLES)
        with_file = articles.create_with_media(ARTICLE_FIELDS, {"displayImage": png()})
        without_file = articles.create_with_media(ARTICLE_FIELDS, {"displayImage": None})
        self.assertTrue(with_file["displayImage"])
        self.assertEqual(without_file["displayImage"], "")
        self.assertEqual(len(self.storage.objects), 1)

    def test_audio_example(self):
        message = self.manager(AUDIO_MESSAGES).create_with_media(
            AUDIO_FIELDS, {"audioUrl": mp3(2 * 1024 * 1024)}
        )
        self.assertEqual(message["title"], "Sunday Service")
        self.assertIn("/audio/", message["audioUrl"])
        self.assertTrue(message["audioUrl"].endswith(".mp3"))
        self.assertEqual(message["fileSize"], 2097152)
        self.assertEqual(message["playCount"], 0)
        self.assertTrue(message["isActive"])
        self.assertIsNone(message["thumbnailUrl"])

    def test_audio_with_thumbnail_uses_separate_folder(self):
        message = self.manager(AUDIO_MESSAGES).create_with_media(
            AUDIO_FIELDS, {"audioUrl": mp3(), "thumbnailUrl": png()}
        )
        self.assertIn("/audio-thumbnails/", message["thumbnailUrl"])
        self.assertEqual(message["fileSize"], 1024)

    def test_missing_required_audio(self):
        with self.assertRaises(MissingMedia) as ctx:
            self.manager(AUDIO_MESSAGES).create_with_media(AUDIO_FIELDS, {"audioUrl": None})
        self.assertEqual(ctx.exception.message, "Audio file is required")
        self.assertEqual(self.storage.objects, {})

    def test_invalid_file_uploads_nothing(self):
        with self.assertRaises(InvalidMediaType):
            self.manager(AUDIO_MESSAGES).create_with_media(
                AUDIO_FIELDS, {"audioUrl": mp3(), "thumbnailUrl": mp3(name="x.mp3")}
            )
        self.assertEqual(self.storage.objects, {})
        self.assertEqual(self.db.count(AUDIO_MESSAGES), 0)

    def test_invalid_fields_upload_nothing(self):
        fields = dict(AUDIO_FIELDS, title="")
        with self.assertRaises(ValidationFailed):
            self.manager(AUDIO_MESSAGES).create_with_media(fields, {"audioUrl": mp3()})
        self.assertEqual(self.storage.objects, {})

    def test_memory_derives_dimensions_and_type(self):
        activity = self.db.create(
            ACTIVITIES, {"name": "Picnic", "date": "June", "description": "Park"}
        )
        memory = self.manager(MEMORIES).create_with_media(
            {"activityId": activity["id"]}, {"imageUrl": png(8, 6)}
        )
        self.assertEqual((memory["width"], memory["height"]), (8, 6))
        self.assertEqual(memory["imgType"], "png")

    def test_client_dimensions_win(self):
        memory = self.manager(MEMORIES).create_with_media(
            {"activityId": "a1", "width": 100}, {"imageUrl": png(8, 6)}
        )
        self.assertEqual((memory["width"], memory["height"]), (100, 6))

    def test_record_failure_discards_upload(self):
        manager = self.manager(ARTICLES, db=FailingCreateStore())
        with self.assertRaises(RuntimeError):
            manager.create_with_media(ARTICLE_FIELDS, {"displayImage": png()})
        self.assertEqual(self.storage.objects, {})


class ReplaceMediaTests(MediaManagerTestCase):
    def setUp(self):
        super().setUp()
        self.articles = self.manager(ARTICLES)
        self.article = self.articles.create_with_media(ARTICLE_FIELDS, {"displayImage": png()})

    def test_new_file_changes_url_and_removes_old_blob(self):
        old_url = self.article["displayImage"]
        updated = self.articles.replace_media(
            self.article["id"], {"title": "New"}, {"displayImage": png(name="b.jpg")}
        )
        self.assertNotEqual(updated["displayImage"], old_url)
        self.assertEqual(updated["title"], "New")
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes(old_url)
        self.assertEqual(len(self.storage.objects), 1)

    def test_without_file_updates_only_plain_fields(self):
        updated = self.articles.replace_media(
            self.article["id"],
            {"title": "Renamed", "displayImage": "https://elsewhere.example.org/x.png"},
            {"displayImage": None},
        )
        self.assertEqual(updated["title"], "Renamed")
        self.assertEqual(updated["displayImage"], self.article["displayImage"])

    def test_missing_record(self):
        with self.assertRaises(NotFound):
            self.articles.replace_media("missing", {}, {"displayImage": png()})
        self.assertEqual(len(self.storage.objects), 1)

    def test_failed_old_blob_delete_is_queued(self):
        storage = FailingDeleteStore(bucket="church", objects=self.storage.objects)
        manager = self.manager(ARTICLES, storage=storage)
        updated = manager.replace_media(self.article["id"], {}, {"displayImage": png()})
        self.assertNotEqual(updated["displayImage"], self.article["displayImage"])
        self.assertEqual([t.url for t in self.queue.items], [self.article["displayImage"]])

    def test_attach_media_on_empty_slot(self):
        bare = self.articles.create_with_media(ARTICLE_FIELDS, {})
        attached = self.articles.attach_media(bare["id"], png())
        self.assertTrue(attached["displayImage"])

    def test_update_fields_discards_overwritten_url(self):
        uploaded = self.articles.upload_media(png())
        updated = self.articles.update_fields(
            self.article["id"], {"displayImage": uploaded["url"]}
        )
        self.assertEqual(updated["displayImage"], uploaded["url"])
        with self.assertRaises(FileNotFoundError):
            self.storage.get_bytes(self.article["displayImage"])


class DeleteEntityTests(MediaManagerTestCase):
    def test_second_delete_is_not_found(self):
        messages = self.manager(AUDIO_MESSAGES)
        message = messages.create_with_media(
            AUDIO_FIELDS, {"audioUrl": mp3(), "thumbnailUrl": png()}
        )
        messages.delete_entity(message["id"])
        self.assertEqual(self.storage.objects, {})
        with self.assertRaises(NotFound):
            messages.delete_entity(message["id"])

    def test_blob_failure_does_not_block_delete(self):
        article = self.manager(ARTICLES).create_with_media(
            ARTICLE_FIELDS, {"displayImage": png()}
        )
        manager = self.manager(ARTICLES, storage=FailingDeleteStore(bucket="church"))
        manager.delete_entity(article["id"])
        self.assertIsNone(self.db.find_by_id(ARTICLES, article["id"]))
        self.assertEqual([t.url for t in self.queue.items], [article["displayImage"]])

    def test_foreign_url_is_skipped(self):
        article = self.db.create(
            ARTICLES, dict(ARTICLE_FIELDS, displayImage="https://elsewhere.example.org/a.png")
        )
        self.manager(ARTICLES).delete_entity(article["id"])
        self.assertEqual(self.queue.items, [])


class UploadMediaTests(MediaManagerTestCase):
    def test_upload_returns_derived_fields(self):
        result = self.manager(MEMORIES).upload_media(png(5, 2))
        self.assertTrue(result["url"].startswith("https://church.s3.amazonaws.com/memories/"))
        self.assertEqual((result["width"], result["height"], result["imgType"]), (5, 2, "png"))
        self.assertGreater(result["fileSize"], 0)

    def test_upload_requires_file(self):
        with self.assertRaises(MissingMedia):
            self.manager(ARTICLES).upload_media(None)

    def test_collection_without_media_fields(self):
        with self.assertRaises(ValueError):
            MediaAttachedResourceManager(self.db, self.storage, ACTIVITIES)


class SecondUploadFailsStore(InMemoryObjectStore):
    def upload(self, data: bytes, original_filename: str, folder: str) -> str:
        if self.objects:
            raise StorageUploadError(f"{folder}/{original_filename}", "RequestTimeout")
        return super().upload(data, original_filename, folder)


class FailingUpdateStore(InMemoryRecordStore):
    def update_by_id(self, collection, record_id, fields):
        raise RuntimeError("database unavailable")


class FailurePathTests(MediaManagerTestCase):
    def test_partial_upload_is_discarded(self):
        storage = SecondUploadFailsStore(bucket="church")
        manager = self.manager(AUDIO_MESSAGES, storage=storage)
        with self.assertRaises(StorageUploadError):
            manager.create_with_media(AUDIO_FIELDS, {"audioUrl": mp3(), "thumbnailUrl": png()})
        self.assertEqual(storage.objects, {})
        self.assertEqual(self.db.count(AUDIO_MESSAGES), 0)

    def test_failed_update_keeps_old_blob(self):
        db = FailingUpdateStore()
        manager = self.manager(ARTICLES, db=db)
        article = manager.create_with_media(ARTICLE_FIELDS, {"displayImage": png()})
        with self.assertRaises(RuntimeError):
            manager.replace_media(article["id"], {}, {"displayImage": png(name="new.png")})
        self.assertEqual(
            db.find_by_id(ARTICLES, article["id"])["displayImage"], article["displayImage"]
        )
        self.assertEqual(self.storage.get_bytes(article["displayImage"])[:4], b"\x89PNG")
        self.assertEqual(len(self.storage.objects), 1)

    def test_orphan_logged_without_queue(self):
        article = self.manager(ARTICLES).create_with_media(ARTICLE_FIELDS, {"displayImage": png()})
        manager = MediaAttachedResourceManager(
            self.db, FailingDeleteStore(bucket="church"), ARTICLES, cleanup_queue=None
        )
        with self.assertLogs("church_cms.media_manager", level="ERROR") as logs:
            manager.delete_entity(article["id"])
        self.assertIn(article["displayImage"], logs.output[0])
        self.assertIsNone(self.db.find_by_id(ARTICLES, article["id"]))


if __name__ == "__main__":
    unittest.main()
