from datetime import datetime
from typing import Optional

from pydantic import Field

from msgbroker.models.message import MessageStatus
from msgbroker.schemas import AppBaseModel


class PublishRequest(AppBaseModel):
    """POST /topics/{id}/messages request body.

    status is copied as-is onto every delivery copy. Producers normally
    leave it at NEW.
    """

    payload: str = Field(..., min_length=1)
    expires_after: Optional[datetime] = None
    status: MessageStatus = MessageStatus.NEW


class PublishResponse(AppBaseModel):
    """POST /topics/{id}/messages response."""

    message: str
    copies: int


class MessageResponse(AppBaseModel):
    """GET /subscriptions/{id}/messages response item."""

    id: int
    subscription_id: int
    payload: str
    expires_after: Optional[datetime] = None
    status: MessageStatus
    created_at: datetime


class AcknowledgeResponse(AppBaseModel):
    """POST /subscriptions/{id}/messages response."""

    message: str
    acknowledged: int
    submitted: int
