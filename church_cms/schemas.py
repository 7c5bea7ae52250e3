"""
Pydantic request bodies for the JSON endpoints.

Every field is optional here: the same body serves create and update, and
the record schemas in ``church_cms.records`` decide what a complete record
needs. Only fields the client actually sent are passed on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def fields(self) -> dict:
        return self.model_dump(exclude_unset=True)


class AuthorPayload(Payload):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    profileImage: Optional[str] = None


class ActivityPayload(Payload):
    name: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None


class ArticlePayload(Payload):
    title: Optional[str] = None
    authorId: Optional[str] = None
    text: Optional[str] = None
    date: Optional[datetime] = None
    readTime: Optional[str] = None
    displayImage: Optional[str] = None


class CoordinatorPayload(Payload):
    name: Optional[str] = None
    occupation: Optional[str] = None
    phone_number: Optional[str] = None
    about: Optional[str] = None
    image_url: Optional[str] = None
    isFeatured: Optional[bool] = None


class MemoryPayload(Payload):
    imageUrl: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    imgType: Optional[str] = None
    activityId: Optional[str] = None


class CategoryPayload(Payload):
    name: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None
    sortOrder: Optional[int] = None


class CategoryOrder(BaseModel):
    id: str
    sortOrder: int = Field(..., ge=0)


class CategoryReorderPayload(BaseModel):
    categoryOrders: list[CategoryOrder]


class PastorPayload(Payload):
    name: Optional[str] = None
    title: Optional[str] = None
    welcomeMessage: Optional[str] = None
    image: Optional[str] = None
    isActive: Optional[bool] = None


class PastorCornerPayload(Payload):
    title: Optional[str] = None
    content: Optional[str] = None
    pastorId: Optional[str] = None
    datePublished: Optional[datetime] = None
    isPublished: Optional[bool] = None
    excerpt: Optional[str] = None


class MessagePayload(Payload):
    title: Optional[str] = None
    content: Optional[str] = None
    coordinatorId: Optional[str] = None
    datePublished: Optional[datetime] = None
    isPublished: Optional[bool] = None
    excerpt: Optional[str] = None
