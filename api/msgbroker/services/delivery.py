"""Delivery state machine for message copies: NEW -> REQUESTED -> SENT.

A pull moves every un-SENT copy of a subscription to REQUESTED and hands it
out. Copies stay REQUESTED until acknowledged, so a later pull delivers them
again (at-least-once). An acknowledgement moves pulled copies to SENT, which
is terminal.
"""

import logging
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from msgbroker.models.message import Message, MessageStatus
from msgbroker.services.errors import NoNewMessages
from msgbroker.services.store import is_storable_id

logger = logging.getLogger(__name__)

ACKNOWLEDGEABLE = (MessageStatus.REQUESTED, MessageStatus.SENT)


async def claim_messages(session: AsyncSession, subscription_id: int) -> list[Message]:
    """Pull transition: mark the subscription's pending copies REQUESTED.

    Rows are locked until the caller's transaction ends. SKIP LOCKED makes
    an overlapping pull on the same subscription pass over copies that are
    already being handed out instead of returning them twice. Other
    subscriptions' rows are never touched.

    Raises:
        NoNewMessages: nothing is pending, or everything pending is claimed
            by a pull that has not finished yet.
    """
    result = await session.execute(
        select(Message)
        .where(
            Message.subscription_id == subscription_id,
            Message.status != MessageStatus.SENT,
        )
        .order_by(Message.id)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    messages = list(result.scalars().all())
    if not messages:
        raise NoNewMessages()

    for message in messages:
        message.status = MessageStatus.REQUESTED
    await session.flush()
    return messages


async def acknowledge_messages(
    session: AsyncSession,
    subscription_id: int,
    message_ids: Iterable[int],
) -> int:
    """Acknowledge transition: mark pulled copies SENT.

    Only copies owned by ``subscription_id`` that have been pulled are
    affected. Unknown ids, ids of another subscription and copies still NEW
    are skipped, as are ids outside the storable range. Already-SENT copies
    match again and stay SENT.

    Returns how many of the submitted ids, counted with repeats, refer to a
    copy that ended up SENT.
    """
    message_ids = list(message_ids)
    ids = {i for i in message_ids if is_storable_id(i)}
    if not ids:
        return 0

    result = await session.execute(
        update(Message)
        .where(
            Message.id.in_(sorted(ids)),
            Message.subscription_id == subscription_id,
            Message.status.in_(ACKNOWLEDGEABLE),
        )
        .values(status=MessageStatus.SENT)
        .returning(Message.id)
    )
    acknowledged = set(result.scalars().all())
    skipped = set(message_ids).difference(acknowledged)
    if skipped:
        logger.debug(
            "Subscription %s: skipped acknowledgement of %s",
            subscription_id,
            sorted(skipped),
        )
    return sum(1 for i in message_ids if i in acknowledged)
