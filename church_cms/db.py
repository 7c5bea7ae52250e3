"""
Record store: document collections backed by SQLAlchemy or kept in memory.

Both implementations store each record as a JSON document keyed by id and
validate every write against the collection schema in ``church_cms.records``.
Queries use a small Mongo-like filter language evaluated in Python:

    {"isActive": True}                           equality
    {"name": {"$regex": "^sermons$", "$options": "i"}}
    {"id": {"$ne": some_id}}, {"category": {"$in": [...]}}
    {"$or": [{...}, {...}]}

Sort specs are lists of ``(field, 1 | -1)``.
"""

from __future__ import annotations

import copy
import re
import threading
import uuid
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import JSON, Column, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from church_cms.records import PROTECTED_FIELDS, utcnow, validate_document
from church_cms.text_utils import parse_timestamp

Filter = Dict[str, Any]
Sort = list[tuple[str, int]]

_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


class RecordStore(Protocol):
    """Interface for record access, one namespace per collection."""

    def create(self, collection: str, fields: dict) -> dict:
        ...

    def find_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        ...

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def find_one(
        self, collection: str, filter: Optional[Filter] = None, *, sort: Optional[Sort] = None
    ) -> Optional[dict]:
        ...

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        ...

    def update_by_id(self, collection: str, record_id: str, fields: dict) -> Optional[dict]:
        ...

    def delete_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        ...

    def increment(
        self, collection: str, record_id: str, field: str, amount: int = 1
    ) -> Optional[dict]:
        ...

    def set_exclusive_flag(self, collection: str, record_id: str, field: str) -> Optional[dict]:
        ...


def _match_condition(value: Any, condition: Any) -> bool:
    if not (isinstance(condition, dict) and any(k.startswith("$") for k in condition)):
        return value == condition
    for op, operand in condition.items():
        if op == "$options":
            continue
        if op == "$ne":
            if value == operand:
                return False
        elif op == "$in":
            if value not in operand:
                return False
        elif op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def matches(document: dict, filter: Optional[Filter]) -> bool:
    for key, condition in (filter or {}).items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _match_condition(document.get(key), condition):
            return False
    return True


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    # Stored timestamps vary in precision (":00Z" vs ":00.5Z"), so compare them
    # as datetimes rather than as text.
    if isinstance(value, str) and _TIMESTAMP.match(value):
        moment = parse_timestamp(value)
        if moment is not None:
            return (2, moment)
    return (3, str(value))


def apply_query(
    documents: list[dict],
    filter: Optional[Filter] = None,
    sort: Optional[Sort] = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> list[dict]:
    selected = [doc for doc in documents if matches(doc, filter)]
    # Stable sorts applied last-key-first give a multi-key ordering.
    for field, direction in reversed(sort or []):
        selected.sort(key=lambda doc: _sort_key(doc.get(field)), reverse=direction < 0)
    if skip:
        selected = selected[skip:]
    if limit is not None:
        selected = selected[:limit]
    return selected


def _new_document(collection: str, fields: dict) -> dict:
    now = utcnow()
    data = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
    data.update(id=uuid.uuid4().hex, createdAt=now, updatedAt=now)
    return validate_document(collection, data)


def _merged_document(collection: str, existing: dict, fields: dict) -> dict:
    data = dict(existing)
    data.update({k: v for k, v in fields.items() if k not in PROTECTED_FIELDS})
    data["updatedAt"] = utcnow()
    return validate_document(collection, data)


class InMemoryRecordStore:
    """Simple in-memory record store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

    def _collection(self, collection: str) -> Dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def create(self, collection: str, fields: dict) -> dict:
        document = _new_document(collection, fields)
        with self._lock:
            self._collection(collection)[document["id"]] = document
        return copy.deepcopy(document)

    def find_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        with self._lock:
            document = self._collection(collection).get(record_id)
            return copy.deepcopy(document) if document else None

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict]:
        with self._lock:
            documents = list(self._collection(collection).values())
            return copy.deepcopy(apply_query(documents, filter, sort, skip, limit))

    def find_one(
        self, collection: str, filter: Optional[Filter] = None, *, sort: Optional[Sort] = None
    ) -> Optional[dict]:
        found = self.find(collection, filter, sort=sort, limit=1)
        return found[0] if found else None

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        with self._lock:
            return len(apply_query(list(self._collection(collection).values()), filter))

    def update_by_id(self, collection: str, record_id: str, fields: dict) -> Optional[dict]:
        with self._lock:
            documents = self._collection(collection)
            existing = documents.get(record_id)
            if existing is None:
                return None
            document = _merged_document(collection, existing, fields)
            documents[record_id] = document
            return copy.deepcopy(document)

    def delete_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        with self._lock:
            return self._collection(collection).pop(record_id, None)

    def increment(
        self, collection: str, record_id: str, field: str, amount: int = 1
    ) -> Optional[dict]:
        with self._lock:
            existing = self._collection(collection).get(record_id)
            if existing is None:
                return None
            return self.update_by_id(
                collection, record_id, {field: (existing.get(field) or 0) + amount}
            )

    def set_exclusive_flag(self, collection: str, record_id: str, field: str) -> Optional[dict]:
        with self._lock:
            documents = self._collection(collection)
            if record_id not in documents:
                return None
            for doc_id, document in list(documents.items()):
                if doc_id != record_id and document.get(field):
                    documents[doc_id] = _merged_document(collection, document, {field: False})
            target = _merged_document(collection, documents[record_id], {field: True})
            documents[record_id] = target
            return copy.deepcopy(target)

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()


class SqlRecordStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlRecordStore")
        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, otherwise every checkout sees an empty DB.
            engine_kwargs.update(
                connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _get_row(
        self, session: Session, collection: str, record_id: str, *, for_update: bool = False
    ) -> Optional["DocumentRow"]:
        stmt = select(DocumentRow).where(
            DocumentRow.id == record_id, DocumentRow.collection == collection
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def _all_documents(self, collection: str) -> list[dict]:
        with self.Session() as session:
            rows = session.execute(
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.created_at.asc(), DocumentRow.id.asc())
            ).scalars()
            return [dict(row.data) for row in rows]

    def create(self, collection: str, fields: dict) -> dict:
        document = _new_document(collection, fields)
        with self.Session() as session, session.begin():
            session.add(
                DocumentRow(
                    id=document["id"],
                    collection=collection,
                    data=document,
                    created_at=document["createdAt"],
                    updated_at=document["updatedAt"],
                )
            )
        return document

    def find_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = self._get_row(session, collection, record_id)
            return dict(row.data) if row else None

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> list[dict]:
        return apply_query(self._all_documents(collection), filter, sort, skip, limit)

    def find_one(
        self, collection: str, filter: Optional[Filter] = None, *, sort: Optional[Sort] = None
    ) -> Optional[dict]:
        found = self.find(collection, filter, sort=sort, limit=1)
        return found[0] if found else None

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        return len(apply_query(self._all_documents(collection), filter))

    def update_by_id(self, collection: str, record_id: str, fields: dict) -> Optional[dict]:
        with self.Session() as session, session.begin():
            row = self._get_row(session, collection, record_id, for_update=True)
            if row is None:
                return None
            document = _merged_document(collection, row.data, fields)
            row.data = document
            row.updated_at = document["updatedAt"]
        return document

    def delete_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        with self.Session() as session, session.begin():
            row = self._get_row(session, collection, record_id, for_update=True)
            if row is None:
                return None
            document = dict(row.data)
            session.delete(row)
        return document

    def increment(
        self, collection: str, record_id: str, field: str, amount: int = 1
    ) -> Optional[dict]:
        with self.Session() as session, session.begin():
            row = self._get_row(session, collection, record_id, for_update=True)
            if row is None:
                return None
            value = (row.data.get(field) or 0) + amount
            document = _merged_document(collection, row.data, {field: value})
            row.data = document
            row.updated_at = document["updatedAt"]
        return document

    def set_exclusive_flag(self, collection: str, record_id: str, field: str) -> Optional[dict]:
        with self.Session() as session, session.begin():
            rows = (
                session.execute(
                    select(DocumentRow)
                    .where(DocumentRow.collection == collection)
                    .with_for_update()
                )
                .scalars()
                .all()
            )
            if not any(row.id == record_id for row in rows):
                return None
            target: Optional[dict] = None
            for row in rows:
                flagged = row.id == record_id
                if not flagged and not row.data.get(field):
                    continue
                document = _merged_document(collection, row.data, {field: flagged})
                row.data = document
                row.updated_at = document["updatedAt"]
                if flagged:
                    target = document
        return target


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True)
    collection = Column(String, nullable=False, index=True)
    data = Column("document", JSON, nullable=False)
    # ISO-8601 UTC strings; they sort chronologically.
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
