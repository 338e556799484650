"""Unit tests for the entity store (direct DB session, no HTTP client)."""

import pytest
from sqlalchemy.exc import IntegrityError

from msgbroker.database import transaction
from msgbroker.models.message import Message, MessageStatus
from msgbroker.services import store
from msgbroker.services.errors import InvalidTransition, MessageNotFound, TopicNotFound


async def test_create_topic(db_session):
    topic = await store.create_topic(db_session, 42)
    await db_session.commit()

    assert topic.id is not None
    assert topic.my_property == 42
    assert await store.topic_exists(db_session, topic.id) is True


async def test_topic_exists_false(db_session):
    assert await store.topic_exists(db_session, 999999) is False


async def test_create_subscription_unknown_topic(db_session):
    with pytest.raises(TopicNotFound):
        await store.create_subscription(db_session, 999999)


async def test_list_subscriptions_scoped_to_topic(db_session):
    topic = await store.create_topic(db_session, 1)
    other = await store.create_topic(db_session, 2)
    s1 = await store.create_subscription(db_session, topic.id)
    s2 = await store.create_subscription(db_session, topic.id)
    await store.create_subscription(db_session, other.id)
    await db_session.commit()

    subscriptions = await store.list_subscriptions(db_session, topic.id)
    assert [s.id for s in subscriptions] == [s1.id, s2.id]
    assert await store.subscription_exists(db_session, s1.id) is True
    assert await store.subscription_exists(db_session, 999999) is False


async def test_list_messages_status_filter(db_session):
    topic = await store.create_topic(db_session, 1)
    sub = await store.create_subscription(db_session, topic.id)
    await store.insert_messages(
        db_session,
        [
            Message(subscription_id=sub.id, payload="a", status=MessageStatus.NEW),
            Message(subscription_id=sub.id, payload="b", status=MessageStatus.SENT),
        ],
    )
    await db_session.commit()

    everything = await store.list_messages(db_session, sub.id)
    pending = await store.list_messages(
        db_session, sub.id, status_not_equal=MessageStatus.SENT
    )
    assert [m.payload for m in everything] == ["a", "b"]
    assert [m.payload for m in pending] == ["a"]


async def test_insert_messages_is_all_or_nothing(db_session, session_factory):
    topic = await store.create_topic(db_session, 1)
    sub = await store.create_subscription(db_session, topic.id)
    await db_session.commit()
    sub_id = sub.id

    copies = [
        Message(subscription_id=sub_id, payload="ok"),
        Message(subscription_id=999999, payload="dangling"),
    ]
    with pytest.raises(IntegrityError):
        async with transaction(db_session):
            await store.insert_messages(db_session, copies)

    async with session_factory() as fresh:
        assert await store.list_messages(fresh, sub_id) == []


async def test_get_message_not_found(db_session):
    with pytest.raises(MessageNotFound):
        await store.get_message(db_session, 999999)


async def test_update_message_status_forward(db_session):
    topic = await store.create_topic(db_session, 1)
    sub = await store.create_subscription(db_session, topic.id)
    message = Message(subscription_id=sub.id, payload="a")
    await store.insert_messages(db_session, [message])

    updated = await store.update_message_status(
        db_session, message.id, MessageStatus.REQUESTED
    )
    assert updated.status == MessageStatus.REQUESTED
    updated = await store.update_message_status(
        db_session, message.id, MessageStatus.SENT
    )
    assert updated.status == MessageStatus.SENT


async def test_update_message_status_rejects_backward(db_session):
    topic = await store.create_topic(db_session, 1)
    sub = await store.create_subscription(db_session, topic.id)
    message = Message(subscription_id=sub.id, payload="a", status=MessageStatus.SENT)
    await store.insert_messages(db_session, [message])

    with pytest.raises(InvalidTransition):
        await store.update_message_status(db_session, message.id, MessageStatus.NEW)
    assert message.status == MessageStatus.SENT


async def test_update_message_status_cannot_skip_pull(db_session):
    topic = await store.create_topic(db_session, 1)
    sub = await store.create_subscription(db_session, topic.id)
    message = Message(subscription_id=sub.id, payload="a")
    await store.insert_messages(db_session, [message])

    with pytest.raises(InvalidTransition):
        await store.update_message_status(db_session, message.id, MessageStatus.SENT)


@pytest.mark.parametrize(
    ("current", "new", "allowed"),
    [
        (MessageStatus.NEW, MessageStatus.REQUESTED, True),
        (MessageStatus.NEW, MessageStatus.SENT, False),
        (MessageStatus.REQUESTED, MessageStatus.REQUESTED, True),
        (MessageStatus.REQUESTED, MessageStatus.SENT, True),
        (MessageStatus.REQUESTED, MessageStatus.NEW, False),
        (MessageStatus.SENT, MessageStatus.SENT, True),
        (MessageStatus.SENT, MessageStatus.REQUESTED, False),
    ],
)
def test_status_transitions(current, new, allowed):
    assert current.can_advance_to(new) is allowed
