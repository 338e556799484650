"""Fan-out: turn one published message into one copy per subscription."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from msgbroker.models.message import Message, MessageStatus
from msgbroker.services import store
from msgbroker.services.errors import NoSubscribers, TopicNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageTemplate:
    """Producer-supplied fields shared by every delivery copy."""

    payload: str
    expires_after: Optional[datetime] = None
    status: MessageStatus = MessageStatus.NEW


async def fan_out(
    session: AsyncSession, topic_id: int, template: MessageTemplate
) -> list[Message]:
    """Persist one copy of ``template`` for each subscription of ``topic_id``.

    Only subscriptions that exist now receive a copy; later subscribers
    never see earlier messages. All copies go through a single
    insert_messages call, so the enclosing transaction sees all or none.

    Raises:
        TopicNotFound: the topic does not exist.
        NoSubscribers: the topic has no subscriptions; nothing is written.
    """
    if not await store.topic_exists(session, topic_id):
        raise TopicNotFound()

    subscriptions = await store.list_subscriptions(session, topic_id)
    if not subscriptions:
        raise NoSubscribers()

    copies = [
        Message(
            subscription_id=subscription.id,
            payload=template.payload,
            expires_after=template.expires_after,
            status=template.status,
        )
        for subscription in subscriptions
    ]
    await store.insert_messages(session, copies)
    logger.debug("Fanned out topic %s to %d subscriptions", topic_id, len(copies))
    return copies
