"""
Photo memory endpoints and the gallery grouped by activity.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store, media_manager
from church_cms.errors import ValidationFailed
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import ACTIVITIES, MEMORIES
from church_cms.responses import success
from church_cms.routes.common import form_fields, get_or_404, read_upload
from church_cms.schemas import MemoryPayload

router = APIRouter(prefix="/memories", tags=["memories"])

get_manager = media_manager(MEMORIES)


def _require_activity(db: RecordStore, activity_id: Optional[str]) -> None:
    if activity_id and db.find_by_id(ACTIVITIES, activity_id) is None:
        raise ValidationFailed(
            "Activity not found",
            errors=[{"field": "activityId", "message": f"No activity with id {activity_id}"}],
        )


@router.post("", status_code=201)
def create_memory(payload: MemoryPayload, db: RecordStore = Depends(get_record_store)):
    memory = db.create(MEMORIES, payload.fields())
    return success("Memory created successfully", memory)


@router.post("/with-image", status_code=201)
async def create_memory_with_image(
    activityId: Optional[str] = Form(None),
    width: Optional[int] = Form(None),
    height: Optional[int] = Form(None),
    imgType: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    await run_in_threadpool(_require_activity, manager.db, activityId)
    fields = form_fields(activityId=activityId, width=width, height=height, imgType=imgType)
    files = {"imageUrl": await read_upload(image)}
    memory = await run_in_threadpool(manager.create_with_media, fields, files)
    return success("Memory created successfully", memory)


@router.post("/upload-image")
async def upload_memory_image(
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    media = await read_upload(image)
    uploaded = await run_in_threadpool(manager.upload_media, media)
    return success("Image uploaded successfully", uploaded)


@router.get("")
def list_memories(db: RecordStore = Depends(get_record_store)):
    memories = db.find(MEMORIES, sort=[("createdAt", -1)])
    return success("All memories loaded successfully", memories)


@router.get("/by-events")
def gallery_by_events(db: RecordStore = Depends(get_record_store)):
    grouped: dict[str, list[dict]] = {}
    for memory in db.find(MEMORIES, sort=[("createdAt", -1)]):
        grouped.setdefault(memory["activityId"], []).append(memory)

    events = [
        {**activity, "memories": grouped[activity["id"]], "memoryCount": len(grouped[activity["id"]])}
        for activity in db.find(ACTIVITIES, sort=[("createdAt", -1)])
        if activity["id"] in grouped
    ]
    return success("Gallery loaded successfully", events)


@router.get("/activity/{activity_id}")
def list_memories_by_activity(activity_id: str, db: RecordStore = Depends(get_record_store)):
    memories = db.find(MEMORIES, {"activityId": activity_id}, sort=[("createdAt", -1)])
    return success("Memories loaded successfully", memories)


@router.get("/{memory_id}")
def get_memory(memory_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Memory loaded successfully", get_or_404(db, MEMORIES, memory_id))


@router.put("/{memory_id}")
@router.patch("/{memory_id}")
def update_memory(
    memory_id: str,
    payload: MemoryPayload,
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    memory = manager.update_fields(memory_id, payload.fields())
    return success("Memory updated successfully", memory)


@router.put("/{memory_id}/with-image")
@router.patch("/{memory_id}/with-image")
async def update_memory_with_image(
    memory_id: str,
    activityId: Optional[str] = Form(None),
    width: Optional[int] = Form(None),
    height: Optional[int] = Form(None),
    imgType: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(activityId=activityId, width=width, height=height, imgType=imgType)
    files = {"imageUrl": await read_upload(image)}
    memory = await run_in_threadpool(manager.replace_media, memory_id, fields, files)
    return success("Memory updated successfully", memory)


@router.delete("/{memory_id}")
def delete_memory(memory_id: str, manager: MediaAttachedResourceManager = Depends(get_manager)):
    memory = manager.delete_entity(memory_id)
    return success("Memory deleted successfully", memory)
