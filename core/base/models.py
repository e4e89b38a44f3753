from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from enum import Enum
from core.utils.str import random_id
from datetime import datetime, timezone


class SubscriberStatus(str, Enum):
    Subscribed = "subscribed"
    Unsubscribed = "unsubscribed"


class Subscriber(BaseModel):
    """A row of the mailing list, keyed by email"""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    # Plain str: identities bound into tokens are not re-validated
    # Input is validated at the request models; stored identities come from verified tokens too
    email: str
    name: Optional[str] = Field(None, max_length=120)
    status: SubscriberStatus = SubscriberStatus.Subscribed
    last_source: Optional[str] = None
    subscribed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SubscribeRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=120)
    source: Optional[str] = Field(None, max_length=60)


class ResubscribeRequest(BaseModel):
    token: Optional[str] = None
    id: Optional[str] = None


class UnsubscribeLink(BaseModel):
    url: str
    token: str
    email: str
