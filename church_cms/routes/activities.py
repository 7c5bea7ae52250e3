"""
Activity (church event) endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store
from church_cms.records import ACTIVITIES
from church_cms.responses import success
from church_cms.routes.common import delete_or_404, get_or_404, update_or_404
from church_cms.schemas import ActivityPayload

router = APIRouter(prefix="/activities", tags=["activities"])


@router.post("", status_code=201)
def create_activity(payload: ActivityPayload, db: RecordStore = Depends(get_record_store)):
    activity = db.create(ACTIVITIES, payload.fields())
    return success("Activity created successfully", activity)


@router.get("")
def list_activities(db: RecordStore = Depends(get_record_store)):
    activities = db.find(ACTIVITIES, sort=[("createdAt", -1)])
    return success("All activities loaded successfully", activities)


@router.get("/{activity_id}")
def get_activity(activity_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Activity loaded successfully", get_or_404(db, ACTIVITIES, activity_id))


@router.put("/{activity_id}")
@router.patch("/{activity_id}")
def update_activity(
    activity_id: str, payload: ActivityPayload, db: RecordStore = Depends(get_record_store)
):
    activity = update_or_404(db, ACTIVITIES, activity_id, payload.fields())
    return success("Activity updated successfully", activity)


@router.delete("/{activity_id}")
def delete_activity(activity_id: str, db: RecordStore = Depends(get_record_store)):
    activity = delete_or_404(db, ACTIVITIES, activity_id)
    return success("Activity deleted successfully", activity)
