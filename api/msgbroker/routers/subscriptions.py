from fastapi import APIRouter, Body, Depends, HTTPException, Security
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from msgbroker.database import get_session
from msgbroker.dependencies import verify_api_key
from msgbroker.rate_limit import limiter
from msgbroker.schemas.message import AcknowledgeResponse, MessageResponse
from msgbroker.services import broker
from msgbroker.services.errors import (
    InvalidArgument,
    NoNewMessages,
    SubscriptionNotFound,
)

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/{subscription_id}/messages", response_model=list[MessageResponse])
@limiter.limit("300/minute")
async def pull_messages(
    request: Request,
    subscription_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Hand out every unacknowledged message of the subscription.

    Returned messages are REQUESTED and come back on the next pull until
    they are acknowledged.
    """
    try:
        return await broker.pull(session, subscription_id)
    except (SubscriptionNotFound, NoNewMessages) as exc:
        raise HTTPException(status_code=404, detail=exc.detail)


@router.post("/{subscription_id}/messages", response_model=AcknowledgeResponse)
@limiter.limit("300/minute")
async def acknowledge_messages(
    request: Request,
    subscription_id: int,
    message_ids: list[int] = Body(...),
    session: AsyncSession = Depends(get_session),
    _api_key: str = Security(verify_api_key),
):
    try:
        result = await broker.acknowledge(session, subscription_id, message_ids)
    except SubscriptionNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.detail)
    except InvalidArgument as exc:
        raise HTTPException(status_code=400, detail=exc.detail)
    return AcknowledgeResponse(
        message=f"Acknowledged {result.acknowledged}/{result.submitted} messages",
        acknowledged=result.acknowledged,
        submitted=result.submitted,
    )
