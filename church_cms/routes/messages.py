"""
Coordinator messages, paginated and embedding the authoring coordinator.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store
from church_cms.errors import NotFound
from church_cms.records import COORDINATORS, MESSAGES
from church_cms.responses import counted_pagination, populate, skip_for, success
from church_cms.routes.common import delete_or_404, get_or_404, update_or_404
from church_cms.schemas import MessagePayload

router = APIRouter(prefix="/messages", tags=["messages"])

COORDINATOR_SUMMARY = ("name", "occupation", "image_url")
NEWEST_FIRST = [("datePublished", -1)]


def _with_coordinators(db: RecordStore, messages: list[dict]) -> list[dict]:
    return populate(db, messages, "coordinatorId", COORDINATORS, COORDINATOR_SUMMARY)


def _paginated(
    db: RecordStore, query: dict, page: int, limit: int, message: str
) -> dict:
    total = db.count(MESSAGES, query)
    messages = db.find(
        MESSAGES, query, sort=NEWEST_FIRST, skip=skip_for(page, limit), limit=limit
    )
    return success(
        message,
        _with_coordinators(db, messages),
        pagination=counted_pagination(page, limit, total, "totalMessages"),
    )


@router.post("", status_code=201)
def create_message(payload: MessagePayload, db: RecordStore = Depends(get_record_store)):
    created = db.create(MESSAGES, payload.fields())
    return success("Message created successfully", _with_coordinators(db, [created])[0])


@router.get("")
def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    isPublished: Optional[bool] = Query(None),
    db: RecordStore = Depends(get_record_store),
):
    query = {} if isPublished is None else {"isPublished": isPublished}
    return _paginated(db, query, page, limit, "All messages loaded successfully")


@router.get("/latest")
def latest_message(db: RecordStore = Depends(get_record_store)):
    latest = db.find_one(MESSAGES, {"isPublished": True}, sort=NEWEST_FIRST)
    if latest is None:
        raise NotFound("Published message")
    return success("Latest message loaded successfully", _with_coordinators(db, [latest])[0])


@router.get("/coordinator/{coordinator_id}")
def messages_by_coordinator(
    coordinator_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    isPublished: Optional[bool] = Query(None),
    db: RecordStore = Depends(get_record_store),
):
    query: dict = {"coordinatorId": coordinator_id}
    if isPublished is not None:
        query["isPublished"] = isPublished
    return _paginated(db, query, page, limit, "Messages by coordinator loaded successfully")


@router.get("/{message_id}")
def get_message(message_id: str, db: RecordStore = Depends(get_record_store)):
    found = get_or_404(db, MESSAGES, message_id)
    return success("Message loaded successfully", _with_coordinators(db, [found])[0])


@router.put("/{message_id}")
@router.patch("/{message_id}")
def update_message(
    message_id: str, payload: MessagePayload, db: RecordStore = Depends(get_record_store)
):
    updated = update_or_404(db, MESSAGES, message_id, payload.fields())
    return success("Message updated successfully", _with_coordinators(db, [updated])[0])


@router.delete("/{message_id}")
def delete_message(message_id: str, db: RecordStore = Depends(get_record_store)):
    deleted = delete_or_404(db, MESSAGES, message_id)
    return success("Message deleted successfully", deleted)
