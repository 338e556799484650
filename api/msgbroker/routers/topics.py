from fastapi import APIRouter, Depends, HTTPException, Query, Security
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from msgbroker.database import get_session
from msgbroker.dependencies import verify_api_key
from msgbroker.rate_limit import limiter
from msgbroker.schemas.message import PublishRequest, PublishResponse
from msgbroker.schemas.subscription import SubscriptionResponse
from msgbroker.schemas.topic import TopicCreate, TopicListResponse, TopicResponse
from msgbroker.services import broker
from msgbroker.services.errors import NoSubscribers, TopicNotFound

router = APIRouter(prefix="/topics", tags=["topics"])


@router.post("", response_model=TopicResponse, status_code=201)
@limiter.limit("30/minute")
async def create_topic_endpoint(
    request: Request,
    data: TopicCreate,
    session: AsyncSession = Depends(get_session),
    _api_key: str = Security(verify_api_key),
):
    return await broker.create_topic(session, data)


@router.get("", response_model=TopicListResponse)
@limiter.limit("60/minute")
async def list_topics(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    topics, total = await broker.list_topics(session, page, per_page)
    return TopicListResponse(items=topics, total=total, page=page, per_page=per_page)


@router.get("/{topic_id}", response_model=TopicResponse)
@limiter.limit("60/minute")
async def get_topic(
    request: Request,
    topic_id: int,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await broker.get_topic(session, topic_id)
    except TopicNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.detail)


@router.post("/{topic_id}/messages", response_model=PublishResponse, status_code=201)
@limiter.limit("300/minute")
async def publish_message(
    request: Request,
    topic_id: int,
    data: PublishRequest,
    session: AsyncSession = Depends(get_session),
    _api_key: str = Security(verify_api_key),
):
    try:
        copies = await broker.publish(session, topic_id, data)
    except (TopicNotFound, NoSubscribers) as exc:
        raise HTTPException(status_code=404, detail=exc.detail)
    return PublishResponse(message="Messages have been published", copies=copies)


@router.post(
    "/{topic_id}/subscriptions",
    response_model=SubscriptionResponse,
    status_code=201,
)
@limiter.limit("30/minute")
async def create_subscription(
    request: Request,
    topic_id: int,
    session: AsyncSession = Depends(get_session),
    _api_key: str = Security(verify_api_key),
):
    try:
        return await broker.subscribe(session, topic_id)
    except TopicNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.detail)


@router.get("/{topic_id}/subscriptions", response_model=list[SubscriptionResponse])
@limiter.limit("60/minute")
async def list_subscriptions(
    request: Request,
    topic_id: int,
    session: AsyncSession = Depends(get_session),
):
    try:
        return await broker.list_topic_subscriptions(session, topic_id)
    except TopicNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.detail)
