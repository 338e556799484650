from datetime import datetime

from msgbroker.schemas import AppBaseModel


class TopicCreate(AppBaseModel):
    """POST /topics request body."""

    my_property: int


class TopicResponse(AppBaseModel):
    """POST /topics, GET /topics/{id} response."""

    id: int
    my_property: int
    created_at: datetime


class TopicListResponse(AppBaseModel):
    """GET /topics paginated response."""

    items: list[TopicResponse]
    total: int
    page: int
    per_page: int
