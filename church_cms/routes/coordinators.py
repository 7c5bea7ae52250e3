"""
Coordinator endpoints. At most one coordinator is featured at a time.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store, media_manager
from church_cms.errors import NotFound
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import COORDINATORS
from church_cms.responses import success
from church_cms.routes.common import form_fields, get_or_404, read_upload
from church_cms.schemas import CoordinatorPayload

router = APIRouter(prefix="/coordinators", tags=["coordinators"])

get_manager = media_manager(COORDINATORS)

FEATURED_FIELD = "isFeatured"


def set_featured(db: RecordStore, coordinator_id: str) -> dict:
    """Feature one coordinator and un-feature every other one, atomically."""
    coordinator = db.set_exclusive_flag(COORDINATORS, coordinator_id, FEATURED_FIELD)
    if coordinator is None:
        raise NotFound("Coordinator", coordinator_id)
    return coordinator


def _without_featured(fields: dict) -> tuple[dict, bool]:
    # isFeatured=true only ever goes through set_featured; false is a plain write.
    fields = dict(fields)
    if fields.get(FEATURED_FIELD):
        del fields[FEATURED_FIELD]
        return fields, True
    return fields, False


def _apply_featured(db: RecordStore, coordinator: dict, featured: bool) -> dict:
    if featured:
        return set_featured(db, coordinator["id"])
    return coordinator


@router.post("", status_code=201)
def create_coordinator(
    payload: CoordinatorPayload, db: RecordStore = Depends(get_record_store)
):
    fields, featured = _without_featured(payload.fields())
    coordinator = _apply_featured(db, db.create(COORDINATORS, fields), featured)
    return success("Coordinator created successfully", coordinator)


@router.post("/with-image", status_code=201)
async def create_coordinator_with_image(
    name: Optional[str] = Form(None),
    occupation: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    isFeatured: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields, featured = _without_featured(
        form_fields(
            name=name,
            occupation=occupation,
            phone_number=phone_number,
            about=about,
            isFeatured=isFeatured,
        )
    )
    files = {"image_url": await read_upload(image)}
    coordinator = await run_in_threadpool(manager.create_with_media, fields, files)
    coordinator = await run_in_threadpool(_apply_featured, manager.db, coordinator, featured)
    return success("Coordinator created successfully", coordinator)


@router.post("/upload-image")
async def upload_coordinator_image(
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    media = await read_upload(image)
    uploaded = await run_in_threadpool(manager.upload_media, media)
    return success("Image uploaded successfully", uploaded)


@router.get("")
def list_coordinators(db: RecordStore = Depends(get_record_store)):
    coordinators = db.find(COORDINATORS, sort=[("createdAt", 1)])
    return success("All coordinators loaded successfully", coordinators)


@router.get("/featured")
def get_featured_coordinator(db: RecordStore = Depends(get_record_store)):
    coordinator = db.find_one(COORDINATORS, {FEATURED_FIELD: True})
    if coordinator is None:
        raise NotFound("Featured coordinator")
    return success("Featured coordinator loaded successfully", coordinator)


@router.get("/{coordinator_id}")
def get_coordinator(coordinator_id: str, db: RecordStore = Depends(get_record_store)):
    return success(
        "Coordinator loaded successfully", get_or_404(db, COORDINATORS, coordinator_id)
    )


@router.put("/{coordinator_id}")
@router.patch("/{coordinator_id}")
def update_coordinator(
    coordinator_id: str,
    payload: CoordinatorPayload,
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields, featured = _without_featured(payload.fields())
    coordinator = manager.update_fields(coordinator_id, fields)
    coordinator = _apply_featured(manager.db, coordinator, featured)
    return success("Coordinator updated successfully", coordinator)


@router.put("/{coordinator_id}/with-image")
@router.patch("/{coordinator_id}/with-image")
async def update_coordinator_with_image(
    coordinator_id: str,
    name: Optional[str] = Form(None),
    occupation: Optional[str] = Form(None),
    phone_number: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    isFeatured: Optional[bool] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields, featured = _without_featured(
        form_fields(
            name=name,
            occupation=occupation,
            phone_number=phone_number,
            about=about,
            isFeatured=isFeatured,
        )
    )
    files = {"image_url": await read_upload(image)}
    coordinator = await run_in_threadpool(manager.replace_media, coordinator_id, fields, files)
    coordinator = await run_in_threadpool(_apply_featured, manager.db, coordinator, featured)
    return success("Coordinator updated successfully", coordinator)


@router.patch("/{coordinator_id}/featured")
def feature_coordinator(coordinator_id: str, db: RecordStore = Depends(get_record_store)):
    coordinator = set_featured(db, coordinator_id)
    return success("Coordinator set as featured successfully", coordinator)


@router.delete("/{coordinator_id}")
def delete_coordinator(
    coordinator_id: str, manager: MediaAttachedResourceManager = Depends(get_manager)
):
    coordinator = manager.delete_entity(coordinator_id)
    return success("Coordinator deleted successfully", coordinator)
