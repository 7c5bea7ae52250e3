"""
Create, replace and delete records that own uploaded media.

A record's media fields hold public URLs of blobs in the object store; the
URL is the only handle to the blob. The manager keeps the two in step:

- every file is validated, and the record fields are checked, before anything
  is uploaded;
- a blob that is no longer referenced (replaced, record deleted, record write
  failed) is deleted best-effort. Failed deletes are logged and handed to the
  cleanup queue so the worker can retry them; they never fail the request.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from church_cms.cleanup import BlobCleanupQueue, CleanupTask
from church_cms.db import RecordStore
from church_cms.errors import InvalidReference, MissingMedia, NotFound, StorageDeleteError
from church_cms.media import (
    MediaSlot,
    UploadedMedia,
    image_subtype,
    probe_image_size,
    validate_media,
)
from church_cms.records import MEDIA_SLOTS, label_for, utcnow, validate_document
from church_cms.storage import ObjectStore

logger = logging.getLogger(__name__)

Files = Mapping[str, Optional[UploadedMedia]]

_PLACEHOLDER_URL = "pending-upload"


class MediaAttachedResourceManager:
    def __init__(
        self,
        db: RecordStore,
        storage: ObjectStore,
        collection: str,
        slots: Optional[Iterable[MediaSlot]] = None,
        cleanup_queue: Optional[BlobCleanupQueue] = None,
    ):
        self.db = db
        self.storage = storage
        self.collection = collection
        if slots is None:
            slots = MEDIA_SLOTS.get(collection, ())
        self.slots: dict[str, MediaSlot] = {slot.field: slot for slot in slots}
        if not self.slots:
            raise ValueError(f"Collection {collection!r} has no media fields")
        self.cleanup_queue = cleanup_queue
        self.label = label_for(collection)

    @property
    def default_slot(self) -> MediaSlot:
        return next(iter(self.slots.values()))

    def slot(self, field: Optional[str] = None) -> MediaSlot:
        if field is None:
            return self.default_slot
        try:
            return self.slots[field]
        except KeyError:
            raise ValueError(f"{field!r} is not a media field of {self.collection}") from None

    def get(self, record_id: str) -> dict:
        record = self.db.find_by_id(self.collection, record_id)
        if record is None:
            raise NotFound(self.label, record_id)
        return record

    # -- operations -------------------------------------------------------

    def create_with_media(self, fields: Mapping[str, Any], files: Files) -> dict:
        """
        Validate, upload every supplied file, then create the record with the
        resulting URLs. Media fields without a file keep their defaults.
        """
        present = self._check_files(files, creating=True)
        record_fields = self._without_media_fields(fields)
        self._precheck({}, record_fields, present)

        urls = self._upload_all(present)
        for field, media in present.items():
            record_fields[field] = urls[field]
            self._apply_derived(record_fields, self.slots[field], media, fields)
        try:
            record = self.db.create(self.collection, record_fields)
        except Exception:
            logger.warning("Creating %s failed after upload; discarding new blobs", self.label)
            self._discard_all(urls.values())
            raise
        logger.info("Created %s %s with %d file(s)", self.label, record["id"], len(urls))
        return record

    def replace_media(self, record_id: str, fields: Mapping[str, Any], files: Files) -> dict:
        """
        Update a record, swapping in new blobs for every supplied file.

        Without files only the non-media fields change. The old blob of a
        replaced field is discarded once the record points at the new one.
        """
        existing = self.get(record_id)
        present = self._check_files(files, creating=False)
        updates = self._without_media_fields(fields)
        if not present:
            return self._update(record_id, updates)

        self._precheck(existing, updates, present)
        urls = self._upload_all(present)
        for field, media in present.items():
            updates[field] = urls[field]
            self._apply_derived(updates, self.slots[field], media, fields, overwrite=True)
        try:
            record = self._update(record_id, updates)
        except Exception:
            logger.warning("Updating %s %s failed after upload", self.label, record_id)
            self._discard_all(urls.values())
            raise

        for field in present:
            old_url = existing.get(field)
            if old_url and old_url != record.get(field):
                self._discard(old_url)
        logger.info("Replaced media %s on %s %s", sorted(present), self.label, record_id)
        return record

    def attach_media(
        self, record_id: str, media: UploadedMedia, field: Optional[str] = None
    ) -> dict:
        """Attach a file to one media field, replacing any blob already there."""
        return self.replace_media(record_id, {}, {self.slot(field).field: media})

    def update_fields(self, record_id: str, fields: Mapping[str, Any]) -> dict:
        """
        Plain field update. Media URLs may be set directly (e.g. from a prior
        upload-image call); a URL overwritten this way has its blob discarded.
        """
        existing = self.get(record_id)
        record = self._update(record_id, dict(fields))
        for field in self.slots:
            old_url = existing.get(field)
            if old_url and old_url != record.get(field):
                self._discard(old_url)
        return record

    def delete_entity(self, record_id: str) -> dict:
        """Delete the record, then best-effort delete every blob it referenced."""
        record = self.db.delete_by_id(self.collection, record_id)
        if record is None:
            raise NotFound(self.label, record_id)
        self._discard_all(record.get(field) for field in self.slots)
        logger.info("Deleted %s %s", self.label, record_id)
        return record

    def upload_media(self, media: Optional[UploadedMedia], field: Optional[str] = None) -> dict:
        """
        Validate and upload a file without touching any record.

        Returns the URL plus the derived fields a later update can store.
        """
        slot = self.slot(field)
        if media is None:
            raise MissingMedia(slot.field, slot.label)
        validate_media(slot.kind, media)
        url = self.storage.upload(media.data, media.filename, slot.folder)
        result: dict[str, Any] = {"url": url, "fileSize": media.size}
        self._apply_derived(result, slot, media, {})
        return result

    # -- helpers ----------------------------------------------------------

    def _check_files(self, files: Files, *, creating: bool) -> dict[str, UploadedMedia]:
        present = {field: media for field, media in files.items() if media is not None}
        for field in present:
            self.slot(field)
        if creating:
            for slot in self.slots.values():
                if slot.required and slot.field not in present:
                    raise MissingMedia(slot.field, slot.label)
        for field, media in present.items():
            validate_media(self.slots[field].kind, media)
        return present

    def _without_media_fields(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in fields.items() if key not in self.slots}

    def _precheck(
        self, existing: Mapping[str, Any], updates: Mapping[str, Any], present: Files
    ) -> None:
        # Same schema check the store will run, with stand-in URLs, so bad
        # fields are rejected before anything is uploaded.
        now = utcnow()
        candidate = {"id": "pending", "createdAt": now, **existing, **updates, "updatedAt": now}
        for field in present:
            candidate[field] = _PLACEHOLDER_URL
        validate_document(self.collection, candidate)

    def _apply_derived(
        self,
        target: dict[str, Any],
        slot: MediaSlot,
        media: UploadedMedia,
        client_fields: Mapping[str, Any],
        *,
        overwrite: bool = False,
    ) -> None:
        derived: dict[str, Any] = {}
        if slot.size_field:
            derived[slot.size_field] = media.size
        if slot.width_field or slot.height_field:
            dimensions = probe_image_size(media.data)
            if dimensions:
                if slot.width_field:
                    derived[slot.width_field] = dimensions[0]
                if slot.height_field:
                    derived[slot.height_field] = dimensions[1]
            elif overwrite:
                # Stale dimensions of the old image would be wrong.
                for name in (slot.width_field, slot.height_field):
                    if name:
                        derived[name] = None
        if slot.type_field:
            derived[slot.type_field] = image_subtype(media.content_type)

        for name, value in derived.items():
            # Values the client sent explicitly win.
            if client_fields.get(name) not in (None, ""):
                continue
            target[name] = value

    def _upload_all(self, present: Mapping[str, UploadedMedia]) -> dict[str, str]:
        urls: dict[str, str] = {}
        try:
            for field, media in present.items():
                urls[field] = self.storage.upload(
                    media.data, media.filename, self.slots[field].folder
                )
        except Exception:
            self._discard_all(urls.values())
            raise
        return urls

    def _update(self, record_id: str, updates: Mapping[str, Any]) -> dict:
        record = self.db.update_by_id(self.collection, record_id, dict(updates))
        if record is None:
            raise NotFound(self.label, record_id)
        return record

    def _discard_all(self, urls: Iterable[Optional[str]]) -> None:
        for url in urls:
            if url:
                self._discard(url)

    def _discard(self, url: str) -> None:
        try:
            self.storage.delete(url)
        except InvalidReference:
            logger.warning("Not deleting %s: not a URL of this object store", url)
        except StorageDeleteError as e:
            logger.warning("Failed to delete blob %s: %s", url, e.error)
            if self.cleanup_queue is None:
                logger.error("No cleanup queue configured; blob %s is orphaned", url)
                return
            self.cleanup_queue.enqueue(CleanupTask(url=url))
