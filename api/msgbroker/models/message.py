import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from msgbroker.database import Base


class MessageStatus(str, enum.Enum):
    NEW = "NEW"
    REQUESTED = "REQUESTED"
    SENT = "SENT"

    def can_advance_to(self, new_status: "MessageStatus") -> bool:
        return new_status in _TRANSITIONS[self]


# Forward only. Re-pulling a REQUESTED copy and re-acknowledging a SENT one
# are allowed no-ops; NEW cannot jump to SENT without a pull.
_TRANSITIONS = {
    MessageStatus.NEW: {MessageStatus.REQUESTED},
    MessageStatus.REQUESTED: {MessageStatus.REQUESTED, MessageStatus.SENT},
    MessageStatus.SENT: {MessageStatus.SENT},
}


class Message(Base):
    """One subscription's copy of a published payload."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscription_id: Mapped[int] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="RESTRICT")
    )
    payload: Mapped[str] = mapped_column(Text)
    expires_after: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    status: Mapped[MessageStatus] = mapped_column(
        Enum(MessageStatus, name="message_status"),
        default=MessageStatus.NEW,
        server_default=MessageStatus.NEW.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_messages_subscription_id_status", "subscription_id", "status"),
    )
