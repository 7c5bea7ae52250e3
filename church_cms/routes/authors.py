"""
Author endpoints (plain CRUD).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store
from church_cms.records import AUTHORS
from church_cms.responses import success
from church_cms.routes.common import delete_or_404, get_or_404, update_or_404
from church_cms.schemas import AuthorPayload

router = APIRouter(prefix="/authors", tags=["authors"])


@router.post("", status_code=201)
def create_author(payload: AuthorPayload, db: RecordStore = Depends(get_record_store)):
    author = db.create(AUTHORS, payload.fields())
    return success("Author created successfully", author)


@router.get("")
def list_authors(db: RecordStore = Depends(get_record_store)):
    return success("All authors loaded successfully", db.find(AUTHORS))


@router.get("/{author_id}")
def get_author(author_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Author loaded successfully", get_or_404(db, AUTHORS, author_id))


@router.put("/{author_id}")
@router.patch("/{author_id}")
def update_author(
    author_id: str, payload: AuthorPayload, db: RecordStore = Depends(get_record_store)
):
    author = update_or_404(db, AUTHORS, author_id, payload.fields())
    return success("Author updated successfully", author)


@router.delete("/{author_id}")
def delete_author(author_id: str, db: RecordStore = Depends(get_record_store)):
    author = delete_or_404(db, AUTHORS, author_id)
    return success("Author deleted successfully", author)
