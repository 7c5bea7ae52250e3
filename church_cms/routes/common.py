"""
Helpers shared by the resource routers.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import UploadFile

from church_cms.db import RecordStore
from church_cms.errors import NotFound
from church_cms.media import UploadedMedia
from church_cms.records import label_for


def get_or_404(db: RecordStore, collection: str, record_id: str) -> dict:
    record = db.find_by_id(collection, record_id)
    if record is None:
        raise NotFound(label_for(collection), record_id)
    return record


def update_or_404(db: RecordStore, collection: str, record_id: str, fields: dict) -> dict:
    record = db.update_by_id(collection, record_id, fields)
    if record is None:
        raise NotFound(label_for(collection), record_id)
    return record


def delete_or_404(db: RecordStore, collection: str, record_id: str) -> dict:
    record = db.delete_by_id(collection, record_id)
    if record is None:
        raise NotFound(label_for(collection), record_id)
    return record


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedMedia]:
    """Read a multipart file fully into memory; a part without a filename counts as absent."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return UploadedMedia(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


def form_fields(**values: Any) -> dict:
    """Keep only the form fields the client actually sent."""
    return {key: value for key, value in values.items() if value is not None}
