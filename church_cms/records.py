"""
Document schemas for every collection, and which fields hold media URLs.

The record store validates each write against these models, so required
fields, length limits and patterns are enforced in one place.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from church_cms.errors import ValidationFailed
from church_cms.media import MediaKind, MediaSlot

AUTHORS = "authors"
ACTIVITIES = "activities"
ARTICLES = "articles"
COORDINATORS = "coordinators"
MEMORIES = "memories"
AUDIO_MESSAGES = "audio_messages"
CATEGORIES = "categories"
PASTORS = "pastors"
PASTOR_CORNERS = "pastor_corners"
MESSAGES = "messages"

DURATION_PATTERN = re.compile(r"^(\d{1,2}:)?[0-5]?\d:[0-5]\d$")
CATEGORY_NAME_PATTERN = r"^[a-zA-Z\s\-]+$"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]
RequiredText = Annotated[str, Field(min_length=1)]


class Document(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str
    createdAt: UtcDatetime
    updatedAt: UtcDatetime


class AuthorDocument(Document):
    firstName: RequiredText
    lastName: RequiredText
    profileImage: RequiredText


class ActivityDocument(Document):
    name: RequiredText
    date: RequiredText
    description: RequiredText


class ArticleDocument(Document):
    title: RequiredText
    authorId: RequiredText
    text: RequiredText
    date: UtcDatetime = Field(default_factory=utcnow)
    readTime: Optional[str] = None
    displayImage: str = ""


class CoordinatorDocument(Document):
    name: RequiredText
    occupation: RequiredText
    phone_number: RequiredText
    about: RequiredText
    image_url: str = ""
    isFeatured: bool = False


class MemoryDocument(Document):
    imageUrl: str = ""
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    imgType: Optional[str] = None
    activityId: RequiredText


class AudioMessageDocument(Document):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    speaker: str = Field(..., min_length=1, max_length=100)
    category: RequiredText
    duration: Optional[str] = None
    audioUrl: str
    thumbnailUrl: Optional[str] = None
    dateUploaded: UtcDatetime = Field(default_factory=utcnow)
    fileSize: Optional[int] = Field(default=None, ge=0)
    playCount: int = Field(default=0, ge=0)
    isActive: bool = True

    @field_validator("duration")
    @classmethod
    def _check_duration(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not DURATION_PATTERN.match(value):
            raise ValueError("Duration must be in format MM:SS or H:MM:SS")
        return value


class CategoryDocument(Document):
    name: str = Field(..., min_length=1, max_length=50, pattern=CATEGORY_NAME_PATTERN)
    description: Optional[str] = Field(default=None, max_length=200)
    isActive: bool = True
    sortOrder: int = Field(default=0, ge=0)


class PastorDocument(Document):
    name: RequiredText
    title: RequiredText
    welcomeMessage: RequiredText
    image: str = ""
    isActive: bool = True


class PastorCornerDocument(Document):
    title: RequiredText
    content: RequiredText
    pastorId: RequiredText
    datePublished: UtcDatetime = Field(default_factory=utcnow)
    isPublished: bool = True
    excerpt: Optional[str] = None


class MessageDocument(Document):
    title: RequiredText
    content: RequiredText
    coordinatorId: RequiredText
    datePublished: UtcDatetime = Field(default_factory=utcnow)
    isPublished: bool = True
    excerpt: Optional[str] = None


SCHEMAS: dict[str, type[Document]] = {
    AUTHORS: AuthorDocument,
    ACTIVITIES: ActivityDocument,
    ARTICLES: ArticleDocument,
    COORDINATORS: CoordinatorDocument,
    MEMORIES: MemoryDocument,
    AUDIO_MESSAGES: AudioMessageDocument,
    CATEGORIES: CategoryDocument,
    PASTORS: PastorDocument,
    PASTOR_CORNERS: PastorCornerDocument,
    MESSAGES: MessageDocument,
}

LABELS = {
    AUTHORS: "Author",
    ACTIVITIES: "Activity",
    ARTICLES: "Article",
    COORDINATORS: "Coordinator",
    MEMORIES: "Memory",
    AUDIO_MESSAGES: "Audio message",
    CATEGORIES: "Category",
    PASTORS: "Pastor",
    PASTOR_CORNERS: "Pastor corner post",
    MESSAGES: "Message",
}

MEDIA_SLOTS: dict[str, tuple[MediaSlot, ...]] = {
    ARTICLES: (MediaSlot("displayImage", MediaKind.IMAGE, "articles", label="Image"),),
    COORDINATORS: (MediaSlot("image_url", MediaKind.IMAGE, "coordinators", label="Image"),),
    MEMORIES: (
        MediaSlot(
            "imageUrl",
            MediaKind.IMAGE,
            "memories",
            label="Image",
            width_field="width",
            height_field="height",
            type_field="imgType",
        ),
    ),
    AUDIO_MESSAGES: (
        MediaSlot(
            "audioUrl",
            MediaKind.AUDIO,
            "audio",
            required=True,
            label="Audio file",
            size_field="fileSize",
        ),
        MediaSlot("thumbnailUrl", MediaKind.IMAGE, "audio-thumbnails", label="Thumbnail"),
    ),
    PASTORS: (MediaSlot("image", MediaKind.IMAGE, "pastors", label="Image"),),
}

# Fields the server owns; clients can't overwrite them on update.
PROTECTED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})


def label_for(collection: str) -> str:
    return LABELS.get(collection, collection)


def format_validation_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())) or None,
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]


def validate_document(collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a full document and return its JSON-ready form.

    Raises ValidationFailed listing every failing field.
    """
    schema = SCHEMAS[collection]
    try:
        model = schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationFailed(
            f"{label_for(collection)} validation failed",
            errors=format_validation_errors(e),
        ) from e
    return model.model_dump(mode="json")
