"""
Pastor endpoints. The active pastor is shown on the homepage.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store, media_manager
from church_cms.errors import NotFound
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import PASTORS
from church_cms.responses import success
from church_cms.routes.common import form_fields, get_or_404, read_upload
from church_cms.schemas import PastorPayload

router = APIRouter(prefix="/pastors", tags=["pastors"])

get_manager = media_manager(PASTORS)


@router.get("/active")
def get_active_pastor(db: RecordStore = Depends(get_record_store)):
    pastor = db.find_one(PASTORS, {"isActive": True}, sort=[("updatedAt", -1)])
    if pastor is None:
        raise NotFound("Active pastor")
    return success("Active pastor loaded successfully", pastor)


@router.post("", status_code=201)
def create_pastor(payload: PastorPayload, db: RecordStore = Depends(get_record_store)):
    pastor = db.create(PASTORS, payload.fields())
    return success("Pastor created successfully", pastor)


@router.post("/with-image", status_code=201)
async def create_pastor_with_image(
    name: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    welcomeMessage: Optional[str] = Form(None),
    isActive: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(
        name=name, title=title, welcomeMessage=welcomeMessage, isActive=isActive
    )
    files = {"image": await read_upload(image)}
    pastor = await run_in_threadpool(manager.create_with_media, fields, files)
    return success("Pastor created successfully", pastor)


@router.get("")
def list_pastors(db: RecordStore = Depends(get_record_store)):
    return success("All pastors loaded successfully", db.find(PASTORS))


@router.get("/{pastor_id}")
def get_pastor(pastor_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Pastor loaded successfully", get_or_404(db, PASTORS, pastor_id))


@router.put("/{pastor_id}")
@router.patch("/{pastor_id}")
def update_pastor(
    pastor_id: str,
    payload: PastorPayload,
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    pastor = manager.update_fields(pastor_id, payload.fields())
    return success("Pastor updated successfully", pastor)


@router.put("/{pastor_id}/with-image")
@router.patch("/{pastor_id}/with-image")
async def update_pastor_with_image(
    pastor_id: str,
    name: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    welcomeMessage: Optional[str] = Form(None),
    isActive: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(
        name=name, title=title, welcomeMessage=welcomeMessage, isActive=isActive
    )
    files = {"image": await read_upload(image)}
    pastor = await run_in_threadpool(manager.replace_media, pastor_id, fields, files)
    return success("Pastor updated successfully", pastor)


@router.delete("/{pastor_id}")
def delete_pastor(pastor_id: str, manager: MediaAttachedResourceManager = Depends(get_manager)):
    pastor = manager.delete_entity(pastor_id)
    return success("Pastor deleted successfully", pastor)
