from datetime import datetime
from typing import List, Optional
from uuid import UUID

from tinypm.models.content import ContentType
from tinypm.schemas.custom_domain import CamelModel


class ContentCreate(CamelModel):
    type: ContentType
    title: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    emoji: Optional[str] = None
    enabled: bool = True
    order: Optional[int] = None


class ContentUpdate(CamelModel):
    title: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    emoji: Optional[str] = None
    enabled: Optional[bool] = None
    order: Optional[int] = None


class ContentReorder(CamelModel):
    ids: List[UUID]


class ContentInfo(CamelModel):
    id: UUID
    type: str
    title: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    emoji: Optional[str] = None
    enabled: bool
    order: int
    clicks: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ContentList(CamelModel):
    content: List[ContentInfo]


class PublicProfile(CamelModel):
    username: str
    name: Optional[str] = None
    image: Optional[str] = None
    page_title: Optional[str] = None
    page_desc: Optional[str] = None
    content: List[ContentInfo]
