"""Post-created event subscriber.

Listens on a Redis Pub/Sub channel for PostCreatedEvent messages and queues a
targeted timeline refresh for each one. Malformed messages are logged and
skipped; they never stop the listener.

Example:
    subscriber = PostEventSubscriber(orchestrator)
    await subscriber.start()
    ...
    await subscriber.stop()

    # Content service side
    await publish_post_created(PostCreatedEvent.from_post(post))
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, cast

from timeline.cache.redis import get_redis
from timeline.events.schemas import PostCreatedEvent

if TYPE_CHECKING:
    from redis.asyncio import Redis
    from redis.asyncio.client import PubSub

    from timeline.refresh import RefreshOrchestrator

logger = logging.getLogger(__name__)

POST_CREATED_CHANNEL = "timeline:events:post_created"


async def publish_post_created(
    event: PostCreatedEvent,
    redis: Redis | None = None,
    channel: str = POST_CREATED_CHANNEL,
) -> int:
    """Publish a post-created event; returns the number of receivers."""
    client = redis or await get_redis()
    count = cast(int, await client.publish(channel, event.to_bytes()))
    logger.debug(f"Published post_created {event.post_id} to {count} subscribers")
    return count


class PostEventSubscriber:
    """Turns post-created events into targeted refresh jobs."""

    def __init__(
        self,
        orchestrator: RefreshOrchestrator,
        channel: str = POST_CREATED_CHANNEL,
        redis: Redis | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.channel = channel
        self._redis = redis
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._pubsub: PubSub | None = None

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Subscribe and start the listen loop."""
        if self._running:
            return

        redis = await self._get_redis()
        self._pubsub = redis.pubsub()
        await self._pubsub.subscribe(self.channel)

        self._running = True
        self._task = asyncio.create_task(self._listen_loop())
        logger.info(f"Listening for post events on channel {self.channel}")

    async def stop(self) -> None:
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            await self._pubsub.unsubscribe(self.channel)
            await self._pubsub.aclose()
            self._pubsub = None

        logger.info("Stopped post event subscriber")

    async def wait(self) -> None:
        """Block until the listen loop ends."""
        if self._task:
            await self._task

    async def _listen_loop(self) -> None:
        while self._running and self._pubsub:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )

                if message is None:
                    continue

                if message["type"] == "message":
                    await self.handle_message(message["data"])

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in post event listener: {e}")
                await asyncio.sleep(1)

    async def handle_message(self, data: bytes | str) -> str | None:
        """Queue a refresh for one raw message; returns the job id."""
        try:
            event = PostCreatedEvent.from_bytes(data)
            post = event.to_post()
        except ValueError as e:
            logger.warning(f"Skipping malformed post event: {e}")
            return None

        logger.debug(f"Received post_created {event.post_id} ({event.event_id})")
        return await self.orchestrator.enqueue_targeted(post)
