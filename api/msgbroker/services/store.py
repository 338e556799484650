"""Entity store: persistence for topics, subscriptions and message copies.

Writes flush but never commit. The caller owns the transaction, so a
publish's inserts or a pull's updates land together or not at all.
"""

from collections.abc import Sequence
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from msgbroker.models.message import Message, MessageStatus
from msgbroker.models.subscription import Subscription
from msgbroker.models.topic import Topic
from msgbroker.services.errors import (
    InvalidTransition,
    MessageNotFound,
    TopicNotFound,
)

# Ids are PostgreSQL INTEGER; anything outside that range cannot exist.
MAX_ID = 2**31 - 1


def is_storable_id(value: int) -> bool:
    return 1 <= value <= MAX_ID


async def create_topic(session: AsyncSession, my_property: int) -> Topic:
    topic = Topic(my_property=my_property)
    session.add(topic)
    await session.flush()
    return topic


async def get_topics(
    session: AsyncSession,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Topic], int]:
    count_result = await session.execute(select(func.count()).select_from(Topic))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Topic).order_by(Topic.id).offset((page - 1) * per_page).limit(per_page)
    )
    topics = list(result.scalars().all())
    return topics, total


async def get_topic_by_id(session: AsyncSession, topic_id: int) -> Topic | None:
    if not is_storable_id(topic_id):
        return None
    result = await session.execute(select(Topic).where(Topic.id == topic_id))
    return result.scalar_one_or_none()


async def topic_exists(session: AsyncSession, topic_id: int) -> bool:
    if not is_storable_id(topic_id):
        return False
    result = await session.execute(
        select(func.count()).where(Topic.id == topic_id)
    )
    return result.scalar_one() > 0


async def create_subscription(session: AsyncSession, topic_id: int) -> Subscription:
    if not await topic_exists(session, topic_id):
        raise TopicNotFound()
    subscription = Subscription(topic_id=topic_id)
    session.add(subscription)
    await session.flush()
    return subscription


async def subscription_exists(session: AsyncSession, subscription_id: int) -> bool:
    if not is_storable_id(subscription_id):
        return False
    result = await session.execute(
        select(func.count()).where(Subscription.id == subscription_id)
    )
    return result.scalar_one() > 0


async def list_subscriptions(
    session: AsyncSession, topic_id: int
) -> list[Subscription]:
    result = await session.execute(
        select(Subscription)
        .where(Subscription.topic_id == topic_id)
        .order_by(Subscription.id)
    )
    return list(result.scalars().all())


async def insert_messages(session: AsyncSession, copies: Sequence[Message]) -> None:
    session.add_all(copies)
    await session.flush()


async def list_messages(
    session: AsyncSession,
    subscription_id: int,
    status_not_equal: Optional[MessageStatus] = None,
) -> list[Message]:
    query = select(Message).where(Message.subscription_id == subscription_id)
    if status_not_equal is not None:
        query = query.where(Message.status != status_not_equal)
    result = await session.execute(query.order_by(Message.id))
    return list(result.scalars().all())


async def get_message(session: AsyncSession, message_id: int) -> Message:
    if not is_storable_id(message_id):
        raise MessageNotFound()
    result = await session.execute(select(Message).where(Message.id == message_id))
    message = result.scalar_one_or_none()
    if message is None:
        raise MessageNotFound()
    return message


async def update_message_status(
    session: AsyncSession,
    message_id: int,
    new_status: MessageStatus,
) -> Message:
    message = await get_message(session, message_id)
    if not message.status.can_advance_to(new_status):
        raise InvalidTransition(
            f"Message {message_id} cannot move from {message.status.value} "
            f"to {new_status.value}"
        )
    message.status = new_status
    await session.flush()
    return message
