"""
Audio message category endpoints.

Category names are unique ignoring case, and a category still used by an
active audio message cannot be deleted.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store
from church_cms.errors import ValidationFailed
from church_cms.records import AUDIO_MESSAGES, CATEGORIES
from church_cms.responses import item_pagination, skip_for, success
from church_cms.routes.common import get_or_404, update_or_404
from church_cms.schemas import CategoryPayload, CategoryReorderPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])

CATEGORY_ORDER = [("sortOrder", 1), ("name", 1)]


def _name_filter(name: str) -> dict:
    return {"name": {"$regex": f"^{re.escape(name.strip())}$", "$options": "i"}}


def _ensure_unique_name(db: RecordStore, name: str, exclude_id: Optional[str] = None) -> None:
    query = _name_filter(name)
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    if db.find_one(CATEGORIES, query) is not None:
        raise ValidationFailed(
            "Category name already exists",
            errors=[{"field": "name", "message": f"A category named {name!r} already exists"}],
        )


def next_sort_order(db: RecordStore) -> int:
    last = db.find_one(CATEGORIES, sort=[("sortOrder", -1)])
    return last["sortOrder"] + 1 if last else 1


def active_message_count(db: RecordStore, name: str) -> int:
    return db.count(AUDIO_MESSAGES, {"category": name, "isActive": True})


@router.get("")
def list_categories(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    includeInactive: bool = Query(False),
    search: Optional[str] = Query(None),
    db: RecordStore = Depends(get_record_store),
):
    query: dict = {}
    if not includeInactive:
        query["isActive"] = True
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"description": pattern}]

    total = db.count(CATEGORIES, query)
    categories = db.find(
        CATEGORIES, query, sort=CATEGORY_ORDER, skip=skip_for(page, limit), limit=limit
    )
    return success(
        "Categories retrieved successfully",
        categories,
        pagination=item_pagination(page, limit, total),
    )


@router.get("/active")
def list_active_categories(db: RecordStore = Depends(get_record_store)):
    categories = db.find(CATEGORIES, {"isActive": True}, sort=CATEGORY_ORDER)
    return success(
        "Active categories retrieved successfully",
        [category["name"] for category in categories],
    )


@router.get("/stats")
def category_stats(db: RecordStore = Depends(get_record_store)):
    stats = [
        {
            "id": category["id"],
            "name": category["name"],
            "description": category.get("description"),
            "messageCount": active_message_count(db, category["name"]),
            "sortOrder": category["sortOrder"],
        }
        for category in db.find(CATEGORIES, {"isActive": True}, sort=[("sortOrder", 1)])
    ]
    return success("Category statistics retrieved successfully", stats)


@router.get("/{category_id}")
def get_category(category_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Category retrieved successfully", get_or_404(db, CATEGORIES, category_id))


@router.post("", status_code=201)
def create_category(payload: CategoryPayload, db: RecordStore = Depends(get_record_store)):
    fields = payload.fields()
    if fields.get("name"):
        _ensure_unique_name(db, fields["name"])
    if not fields.get("sortOrder"):
        fields["sortOrder"] = next_sort_order(db)
    category = db.create(CATEGORIES, fields)
    return success("Category created successfully", category)


# Declared before /{category_id} so "reorder" is not taken for an id.
@router.put("/reorder")
def reorder_categories(
    payload: CategoryReorderPayload, db: RecordStore = Depends(get_record_store)
):
    for order in payload.categoryOrders:
        if db.update_by_id(CATEGORIES, order.id, {"sortOrder": order.sortOrder}) is None:
            logger.warning("Skipping reorder of unknown category %s", order.id)
    return success("Categories reordered successfully")


@router.put("/{category_id}")
def update_category(
    category_id: str, payload: CategoryPayload, db: RecordStore = Depends(get_record_store)
):
    category = get_or_404(db, CATEGORIES, category_id)
    fields = payload.fields()
    name = fields.get("name")
    if name and name.strip() != category["name"]:
        _ensure_unique_name(db, name, exclude_id=category_id)
    updated = update_or_404(db, CATEGORIES, category_id, fields)
    return success("Category updated successfully", updated)


@router.delete("/{category_id}")
def delete_category(category_id: str, db: RecordStore = Depends(get_record_store)):
    category = get_or_404(db, CATEGORIES, category_id)
    in_use = active_message_count(db, category["name"])
    if in_use > 0:
        raise ValidationFailed(
            f"Cannot delete category. It is currently used by {in_use} audio message(s). "
            "Please reassign or delete those messages first."
        )
    db.delete_by_id(CATEGORIES, category_id)
    return success("Category deleted successfully")
