"""Broker error taxonomy.

Routers map NotFoundError and PreconditionFailed to 404 and InvalidArgument
to 400. Storage errors are never wrapped in these classes.
"""


class BrokerError(Exception):
    detail = "Broker error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class NotFoundError(BrokerError):
    detail = "Not found"


class TopicNotFound(NotFoundError):
    detail = "Topic not found"


class SubscriptionNotFound(NotFoundError):
    detail = "Subscription not found"


class MessageNotFound(NotFoundError):
    detail = "Message not found"


class PreconditionFailed(BrokerError):
    """Nothing to do. Safe for the caller to retry later."""

    detail = "Precondition failed"


class NoSubscribers(PreconditionFailed):
    detail = "There are no subscriptions for this topic"


class NoNewMessages(PreconditionFailed):
    detail = "No new messages"


class InvalidArgument(BrokerError):
    detail = "Invalid argument"


class EmptyAcknowledgement(InvalidArgument):
    detail = "At least one message id is required"


class InvalidTransition(BrokerError):
    detail = "Message status cannot move backwards"
