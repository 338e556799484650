from datetime import datetime

from msgbroker.schemas import AppBaseModel


class SubscriptionResponse(AppBaseModel):
    """POST /topics/{id}/subscriptions response.

    The topic comes from the path; subscriptions carry no other input.
    """

    id: int
    topic_id: int
    created_at: datetime
