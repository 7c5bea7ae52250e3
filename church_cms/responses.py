"""
Response envelopes and read-side shaping shared by the routers.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional, Sequence

from church_cms.db import RecordStore
from church_cms.records import AUTHORS
from church_cms.text_utils import estimate_read_time, format_file_size, time_ago


def success(message: str, data: Any = None, *, pagination: Optional[dict] = None) -> dict:
    body: dict[str, Any] = {"status": "Success", "message": message}
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    return body


def skip_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def item_pagination(page: int, limit: int, total: int) -> dict:
    """Pagination block used by audio messages and categories."""
    pages = total_pages(total, limit)
    return {
        "currentPage": page,
        "totalPages": pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNext": page < pages,
        "hasPrev": page > 1,
    }


def counted_pagination(page: int, limit: int, total: int, total_key: str) -> dict:
    """Pagination block naming its total (``totalMessages``, ``totalArticles``)."""
    pages = total_pages(total, limit)
    return {
        "currentPage": page,
        "totalPages": pages,
        total_key: total,
        "hasNextPage": page < pages,
        "hasPrevPage": page > 1,
    }


def _reference(document: Optional[dict], keep: Sequence[str]) -> Optional[dict]:
    if document is None:
        return None
    return {"id": document["id"], **{key: document.get(key) for key in keep}}


def populate(
    db: RecordStore,
    documents: Iterable[dict],
    field: str,
    collection: str,
    keep: Sequence[str],
) -> list[dict]:
    """
    Replace the id in ``field`` with a summary of the referenced record.

    Dangling references become null.
    """
    cache: dict[str, Optional[dict]] = {}
    shaped = []
    for document in documents:
        ref_id = document.get(field)
        if ref_id and ref_id not in cache:
            cache[ref_id] = _reference(db.find_by_id(collection, ref_id), keep)
        shaped.append({**document, field: cache.get(ref_id) if ref_id else None})
    return shaped


def populate_one(
    db: RecordStore, document: dict, field: str, collection: str, keep: Sequence[str]
) -> dict:
    return populate(db, [document], field, collection, keep)[0]


def audio_message_view(document: dict) -> dict:
    return {
        **document,
        "date": document.get("dateUploaded"),
        "thumbnail": document.get("thumbnailUrl"),
        "formattedFileSize": format_file_size(document.get("fileSize")),
    }


def author_summary(author: Optional[dict]) -> Optional[dict]:
    if author is None:
        return None
    return {
        "id": author["id"],
        "firstName": author.get("firstName"),
        "lastName": author.get("lastName"),
        "profileImage": author.get("profileImage"),
        "fullName": f"{author.get('firstName', '')} {author.get('lastName', '')}".strip(),
    }


def articles_with_authors(db: RecordStore, articles: Iterable[dict]) -> list[dict]:
    authors: dict[str, Optional[dict]] = {}
    shaped = []
    for article in articles:
        author_id = article.get("authorId")
        if author_id and author_id not in authors:
            authors[author_id] = author_summary(db.find_by_id(AUTHORS, author_id))
        shaped.append(
            {
                **article,
                "author": authors.get(author_id) if author_id else None,
                "timeAgo": time_ago(article.get("date") or article.get("createdAt")),
                "readTime": estimate_read_time(article.get("text")),
            }
        )
    return shaped
