"""Content mutation events that drive targeted timeline refresh."""

from timeline.events.schemas import PostCreatedEvent
from timeline.events.subscriber import (
    POST_CREATED_CHANNEL,
    PostEventSubscriber,
    publish_post_created,
)

__all__ = [
    "POST_CREATED_CHANNEL",
    "PostCreatedEvent",
    "PostEventSubscriber",
    "publish_post_created",
]
