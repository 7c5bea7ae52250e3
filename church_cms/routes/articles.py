"""
Article endpoints, including image upload and author-joined read shapes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool

from church_cms.db import RecordStore
from church_cms.dependencies import get_record_store, media_manager
from church_cms.media_manager import MediaAttachedResourceManager
from church_cms.records import ARTICLES
from church_cms.responses import (
    articles_with_authors,
    counted_pagination,
    skip_for,
    success,
)
from church_cms.routes.common import form_fields, get_or_404, read_upload
from church_cms.schemas import ArticlePayload

router = APIRouter(prefix="/articles", tags=["articles"])

get_manager = media_manager(ARTICLES)

NEWEST_FIRST = [("date", -1), ("createdAt", -1)]


@router.post("", status_code=201)
def create_article(payload: ArticlePayload, db: RecordStore = Depends(get_record_store)):
    article = db.create(ARTICLES, payload.fields())
    return success("Article created successfully", article)


@router.post("/with-image", status_code=201)
async def create_article_with_image(
    title: Optional[str] = Form(None),
    authorId: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    readTime: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(title=title, authorId=authorId, text=text, date=date, readTime=readTime)
    files = {"displayImage": await read_upload(image)}
    article = await run_in_threadpool(manager.create_with_media, fields, files)
    return success("Article created successfully", article)


@router.post("/upload-image")
async def upload_article_image(
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    media = await read_upload(image)
    uploaded = await run_in_threadpool(manager.upload_media, media)
    return success("Image uploaded successfully", uploaded)


@router.get("")
def list_articles(db: RecordStore = Depends(get_record_store)):
    articles = db.find(ARTICLES, sort=NEWEST_FIRST)
    return success("All articles loaded successfully", articles)


@router.get("/with-authors")
def list_articles_with_authors(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: RecordStore = Depends(get_record_store),
):
    total = db.count(ARTICLES)
    articles = db.find(ARTICLES, sort=NEWEST_FIRST, skip=skip_for(page, limit), limit=limit)
    return success(
        "Articles with authors loaded successfully",
        articles_with_authors(db, articles),
        pagination=counted_pagination(page, limit, total, "totalArticles"),
    )


@router.get("/{article_id}")
def get_article(article_id: str, db: RecordStore = Depends(get_record_store)):
    return success("Article loaded successfully", get_or_404(db, ARTICLES, article_id))


@router.get("/{article_id}/with-author")
def get_article_with_author(article_id: str, db: RecordStore = Depends(get_record_store)):
    article = get_or_404(db, ARTICLES, article_id)
    return success("Article loaded successfully", articles_with_authors(db, [article])[0])


@router.put("/{article_id}")
@router.patch("/{article_id}")
def update_article(
    article_id: str,
    payload: ArticlePayload,
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    article = manager.update_fields(article_id, payload.fields())
    return success("Article updated successfully", article)


@router.put("/{article_id}/with-image")
@router.patch("/{article_id}/with-image")
async def update_article_with_image(
    article_id: str,
    title: Optional[str] = Form(None),
    authorId: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    date: Optional[datetime] = Form(None),
    readTime: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    manager: MediaAttachedResourceManager = Depends(get_manager),
):
    fields = form_fields(title=title, authorId=authorId, text=text, date=date, readTime=readTime)
    files = {"displayImage": await read_upload(image)}
    article = await run_in_threadpool(manager.replace_media, article_id, fields, files)
    return success("Article updated successfully", article)


@router.delete("/{article_id}")
def delete_article(
    article_id: str, manager: MediaAttachedResourceManager = Depends(get_manager)
):
    article = manager.delete_entity(article_id)
    return success("Article deleted successfully", article)
