"""
HTTP routes for the church CMS API, one router per resource.
"""

from __future__ import annotations

from fastapi import APIRouter

from church_cms.routes import (
    activities,
    articles,
    audio_messages,
    authors,
    categories,
    coordinators,
    memories,
    messages,
    pastor_corner,
    pastors,
)

router = APIRouter()

for module in (
    authors,
    activities,
    articles,
    coordinators,
    memories,
    audio_messages,
    categories,
    pastors,
    pastor_corner,
    messages,
):
    router.include_router(module.router)
