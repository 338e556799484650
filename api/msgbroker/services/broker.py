"""Broker operations exposed to the HTTP layer.

Each function validates its inputs, delegates to the store, fan-out engine
or delivery state machine, and commits as a single transaction.
"""

import logging
from collections.abc import Sequence
from typing import NamedTuple

from sqlalchemy.ext.asyncio import AsyncSession

from msgbroker.database import transaction
from msgbroker.models.message import Message
from msgbroker.models.subscription import Subscription
from msgbroker.models.topic import Topic
from msgbroker.schemas.message import PublishRequest
from msgbroker.schemas.topic import TopicCreate
from msgbroker.services import delivery, fanout, store
from msgbroker.services.errors import (
    EmptyAcknowledgement,
    SubscriptionNotFound,
    TopicNotFound,
)

logger = logging.getLogger(__name__)


class AckResult(NamedTuple):
    acknowledged: int
    submitted: int


async def create_topic(session: AsyncSession, data: TopicCreate) -> Topic:
    async with transaction(session):
        topic = await store.create_topic(session, data.my_property)
    logger.info("Created topic %s", topic.id)
    return topic


async def list_topics(
    session: AsyncSession, page: int = 1, per_page: int = 20
) -> tuple[list[Topic], int]:
    return await store.get_topics(session, page, per_page)


async def get_topic(session: AsyncSession, topic_id: int) -> Topic:
    topic = await store.get_topic_by_id(session, topic_id)
    if topic is None:
        raise TopicNotFound()
    return topic


async def subscribe(session: AsyncSession, topic_id: int) -> Subscription:
    async with transaction(session):
        subscription = await store.create_subscription(session, topic_id)
    logger.info("Created subscription %s on topic %s", subscription.id, topic_id)
    return subscription


async def list_topic_subscriptions(
    session: AsyncSession, topic_id: int
) -> list[Subscription]:
    if not await store.topic_exists(session, topic_id):
        raise TopicNotFound()
    return await store.list_subscriptions(session, topic_id)


async def publish(session: AsyncSession, topic_id: int, data: PublishRequest) -> int:
    template = fanout.MessageTemplate(
        payload=data.payload,
        expires_after=data.expires_after,
        status=data.status,
    )
    async with transaction(session):
        copies = await fanout.fan_out(session, topic_id, template)
    logger.info("Published to topic %s: %d copies", topic_id, len(copies))
    return len(copies)


async def pull(session: AsyncSession, subscription_id: int) -> list[Message]:
    async with transaction(session):
        if not await store.subscription_exists(session, subscription_id):
            raise SubscriptionNotFound()
        messages = await delivery.claim_messages(session, subscription_id)
    logger.info(
        "Subscription %s pulled %d messages", subscription_id, len(messages)
    )
    return messages


async def acknowledge(
    session: AsyncSession, subscription_id: int, message_ids: Sequence[int]
) -> AckResult:
    async with transaction(session):
        if not await store.subscription_exists(session, subscription_id):
            raise SubscriptionNotFound()
        if not message_ids:
            raise EmptyAcknowledgement()
        acknowledged = await delivery.acknowledge_messages(
            session, subscription_id, message_ids
        )
    result = AckResult(acknowledged=acknowledged, submitted=len(message_ids))
    logger.info(
        "Subscription %s acknowledged %d/%d messages",
        subscription_id,
        result.acknowledged,
        result.submitted,
    )
    return result
