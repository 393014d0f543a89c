from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tinypm.schemas.custom_domain import CamelModel


class UsernameRequest(BaseModel):
    username: str = ""


class UsernameAvailability(CamelModel):
    available: bool
    error: Optional[str] = None


class UserInfo(CamelModel):
    id: UUID
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    username: Optional[str] = None
    page_title: Optional[str] = None
    page_desc: Optional[str] = None


class UserEnvelope(CamelModel):
    user: UserInfo


class UserUpdate(CamelModel):
    """Profile fields the owner may edit; unknown keys are ignored."""

    name: Optional[str] = Field(None, max_length=100)
    page_title: Optional[str] = Field(None, max_length=100)
    page_desc: Optional[str] = Field(None, max_length=500)


class SubscriptionInfo(CamelModel):
    id: UUID
    status: str
    stripe_price_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False


class SubscriptionEnvelope(CamelModel):
    subscription: Optional[SubscriptionInfo] = None
