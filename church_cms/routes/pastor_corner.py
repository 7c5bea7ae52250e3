"""
Pastor's corner posts. Responses embed a summary of the authoring pastor.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store
from church_cms.errors import NotFound
from church_cms.records import PASTOR_CORNERS, PASTORS
from church_cms.responses import populate, populate_one, success
from church_cms.routes.common import delete_or_404, get_or_404, update_or_404
from church_cms.schemas import PastorCornerPayload

router = APIRouter(prefix="/pastor-corner", tags=["pastor-corner"])

PASTOR_SUMMARY = ("name", "title", "image")
NEWEST_FIRST = [("datePublished", -1)]


def _with_pastor(db: RecordStore, post: dict) -> dict:
    return populate_one(db, post, "pastorId", PASTORS, PASTOR_SUMMARY)


@router.post("", status_code=201)
def create_post(payload: PastorCornerPayload, db: RecordStore = Depends(get_record_store)):
    post = db.create(PASTOR_CORNERS, payload.fields())
    return success("Pastor corner post created successfully", _with_pastor(db, post))


@router.get("")
def list_posts(db: RecordStore = Depends(get_record_store)):
    posts = db.find(PASTOR_CORNERS, sort=NEWEST_FIRST)
    return success(
        "All pastor corner posts loaded successfully",
        populate(db, posts, "pastorId", PASTORS, PASTOR_SUMMARY),
    )


@router.get("/latest")
def latest_post(db: RecordStore = Depends(get_record_store)):
    post = db.find_one(PASTOR_CORNERS, {"isPublished": True}, sort=NEWEST_FIRST)
    if post is None:
        raise NotFound("Published pastor corner post")
    return success("Latest pastor corner post loaded successfully", _with_pastor(db, post))


@router.get("/pastor/{pastor_id}")
def posts_by_pastor(pastor_id: str, db: RecordStore = Depends(get_record_store)):
    posts = db.find(PASTOR_CORNERS, {"pastorId": pastor_id}, sort=NEWEST_FIRST)
    return success(
        "Pastor corner posts by pastor loaded successfully",
        populate(db, posts, "pastorId", PASTORS, PASTOR_SUMMARY),
    )


@router.get("/{post_id}")
def get_post(post_id: str, db: RecordStore = Depends(get_record_store)):
    post = get_or_404(db, PASTOR_CORNERS, post_id)
    return success("Pastor corner post loaded successfully", _with_pastor(db, post))


@router.put("/{post_id}")
@router.patch("/{post_id}")
def update_post(
    post_id: str, payload: PastorCornerPayload, db: RecordStore = Depends(get_record_store)
):
    post = update_or_404(db, PASTOR_CORNERS, post_id, payload.fields())
    return success("Pastor corner post updated successfully", _with_pastor(db, post))


@router.delete("/{post_id}")
def delete_post(post_id: str, db: RecordStore = Depends(get_record_store)):
    post = delete_or_404(db, PASTOR_CORNERS, post_id)
    return success("Pastor corner post deleted successfully", post)
