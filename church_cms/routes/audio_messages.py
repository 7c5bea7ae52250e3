"""
Audio sermon endpoints: listing with filters, multipart upload and play counts.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store, media_manager
from church_cms.errors import NotFound
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import AUDIO_MESSAGES, CATEGORIES
from church_cms.responses import audio_message_view, item_pagination, skip_for, success
from church_cms.routes.common import form_fields, get_or_404, read_upload

router = APIRouter(prefix="/audio-messages", tags=["audio-messages"])

get_manager = media_manager(AUDIO_MESSAGES)

NEWEST_FIRST = [("dateUploaded", -1)]
CATEGORY_ORDER = [("sortOrder", 1), ("name", 1)]


def _contains(text: str) -> dict:
    return {"$regex": re.escape(text), "$options": "i"}


def build_audio_filter(
    category: Optional[str] = None,
    speaker: Optional[str] = None,
    search: Optional[str] = None,
) -> dict:
    query: dict = {"isActive": True}
    if category and category != "all":
        query["category"] = category
    if speaker and speaker != "all":
        query["speaker"] = _contains(speaker)
    if search:
        query["$or"] = [
            {"title": _contains(search)},
            {"description": _contains(search)},
            {"speaker": _contains(search)},
        ]
    return query


@router.get("")
def list_audio_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    speaker: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: RecordStore = Depends(get_record_store),
):
    query = build_audio_filter(category, speaker, search)
    total = db.count(AUDIO_MESSAGES, query)
    messages = db.find(
        AUDIO_MESSAGES, query, sort=NEWEST_FIRST, skip=skip_for(page, limit), limit=limit
    )
    return success(
        "Audio messages retrieved successfully",
        [audio_message_view(message) for message in messages],
        pagination=item_pagination(page, limit, total),
    )


@router.get("/categories")
def list_audio_categories(db: RecordStore = Depends(get_record_store)):
    categories = db.find(CATEGORIES, {"isActive": True}, sort=CATEGORY_ORDER)
    return success(
        "Audio message categories retrieved successfully",
        [category["name"] for category in categories],
    )


@router.get("/latest")
def latest_audio_messages(
    limit: int = Query(5, ge=1, le=100), db: RecordStore = Depends(get_record_store)
):
    messages = db.find(AUDIO_MESSAGES, {"isActive": True}, sort=NEWEST_FIRST, limit=limit)
    return success(
        "Latest audio messages retrieved successfully",
        [audio_message_view(message) for message in messages],
    )


@router.get("/popular")
def popular_audio_messages(
    limit: int = Query(10, ge=1, le=100), db: RecordStore = Depends(get_record_store)
):
    messages = db.find(
        AUDIO_MESSAGES,
        {"isActive": True},
        sort=[("playCount", -1), ("dateUploaded", -1)],
        limit=limit,
    )
    return success(
        "Popular audio messages retrieved successfully",
        [audio_message_view(message) for message in messages],
    )


@router.get("/category/{category}")
def audio_messages_by_category(
    category: str,
    limit: int = Query(10, ge=1, le=100),
    db: RecordStore = Depends(get_record_store),
):
    messages = db.find(
        AUDIO_MESSAGES,
        {"category": category, "isActive": True},
        sort=NEWEST_FIRST,
        limit=limit,
    )
    return success(
        f"Audio messages in {category} category retrieved successfully",
        [audio_message_view(message) for message in messages],
    )


@router.get("/{message_id}")
def get_audio_message(message_id: str, db: RecordStore = Depends(get_record_store)):
    message = get_or_404(db, AUDIO_MESSAGES, message_id)
    return success("Audio message retrieved successfully", audio_message_view(message))


@router.post("", status_code=201)
async def create_audio_message(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    speaker: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    audio: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(
        title=title,
        description=description,
        speaker=speaker,
        category=category,
        duration=duration,
        dateUploaded=date,
    )
    files = {"audioUrl": await read_upload(audio), "thumbnailUrl": await read_upload(thumbnail)}
    message = await run_in_threadpool(manager.create_with_media, fields, files)
    return success("Audio message created successfully", audio_message_view(message))


@router.put("/{message_id}")
async def update_audio_message(
    message_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    speaker: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    duration: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    isActive: Optional[bool] = Form(None),
    audio: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(
        title=title,
        description=description,
        speaker=speaker,
        category=category,
        duration=duration,
        dateUploaded=date,
        isActive=isActive,
    )
    files = {"audioUrl": await read_upload(audio), "thumbnailUrl": await read_upload(thumbnail)}
    message = await run_in_threadpool(manager.replace_media, message_id, fields, files)
    return success("Audio message updated successfully", audio_message_view(message))


@router.delete("/{message_id}")
def delete_audio_message(
    message_id: str, manager: MediaAttachedResourceManager = Depends(get_manager)
):
    manager.delete_entity(message_id)
    return success("Audio message deleted successfully")


@router.post("/{message_id}/play")
def increment_play_count(message_id: str, db: RecordStore = Depends(get_record_store)):
    message = db.increment(AUDIO_MESSAGES, message_id, "playCount")
    if message is None:
        raise NotFound("Audio message", message_id)
    return success("Play count incremented successfully", {"playCount": message["playCount"]})
