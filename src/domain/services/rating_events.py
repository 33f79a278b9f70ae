"""
Rating change subscriptions.

Dashboards follow rating changes through ``subscribe()``, an async context
manager; leaving the context always releases the subscription. The in-memory
bus serves a single process; the Redis bus fans events out across API workers
through pub/sub.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError
from src.core.config import get_settings
from src.domain.models import Rating

logger = structlog.get_logger(__name__)

REDIS_CHANNEL = "lern:rating-events"
DEFAULT_QUEUE_SIZE = 100


@dataclass(frozen=True, slots=True)
class RatingEvent:
    """A rating was created or moved to completed."""

    kind: str
    rating_id: str
    learner_id: str
    rater_id: str
    rater_type: str
    status: str

    @classmethod
    def from_rating(cls, kind: str, rating: Rating) -> RatingEvent:
        return cls(
            kind=kind,
            rating_id=rating.id,
            learner_id=rating.learner_id,
            rater_id=rating.rater_id,
            rater_type=rating.rater_type.value,
            status=rating.status.value,
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> RatingEvent:
        data: dict[str, Any] = json.loads(raw)
        return cls(**data)


class RatingSubscription:
    """Buffered stream of events for one learner and/or rater."""

    def __init__(
        self,
        *,
        learner_id: str | None = None,
        rater_id: str | None = None,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self.learner_id = learner_id
        self.rater_id = rater_id
        self._queue: asyncio.Queue[RatingEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Mark the feed as ended; buffered events can still be read."""
        self._closed = True

    def accepts(self, event: RatingEvent) -> bool:
        if self.learner_id is not None and event.learner_id != self.learner_id:
            return False
        if self.rater_id is not None and event.rater_id != self.rater_id:
            return False
        return True

    def offer(self, event: RatingEvent) -> None:
        """Queue an event if it matches, dropping the oldest when full."""
        if not self.accepts(event):
            return
        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning("rating_event_dropped", rating_id=dropped.rating_id)
        self._queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> RatingEvent | None:
        """Next event, or None when ``timeout`` elapses first or the feed has ended."""
        if self._closed and self._queue.empty():
            return None
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except TimeoutError:
            return None

    def __aiter__(self) -> AsyncIterator[RatingEvent]:
        return self

    async def __anext__(self) -> RatingEvent:
        return await self._queue.get()


class RatingEventBus(Protocol):
    """Protocol for rating event transports (allows swapping backends)."""

    async def publish(self, event: RatingEvent) -> None: ...

    def subscribe(
        self, *, learner_id: str | None = None, rater_id: str | None = None
    ) -> contextlib.AbstractAsyncContextManager[RatingSubscription]: ...


class InMemoryRatingEventBus:
    """Process-local fan-out."""

    def __init__(self) -> None:
        self._subscriptions: set[RatingSubscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: RatingEvent) -> None:
        for subscription in list(self._subscriptions):
            subscription.offer(event)

    @contextlib.asynccontextmanager
    async def subscribe(
        self, *, learner_id: str | None = None, rater_id: str | None = None
    ) -> AsyncIterator[RatingSubscription]:
        subscription = RatingSubscription(learner_id=learner_id, rater_id=rater_id)
        self._subscriptions.add(subscription)
        logger.debug("rating_subscription_opened", learner_id=learner_id, rater_id=rater_id)
        try:
            yield subscription
        finally:
            self._subscriptions.discard(subscription)
            logger.debug("rating_subscription_closed", learner_id=learner_id, rater_id=rater_id)


class RedisRatingEventBus:
    """Pub/sub fan-out shared by every API process."""

    def __init__(
        self, redis_url: str, channel: str = REDIS_CHANNEL, *, client: Any | None = None
    ) -> None:
        self.channel = channel
        self._client = client if client is not None else aioredis.from_url(redis_url)

    async def publish(self, event: RatingEvent) -> None:
        await self._client.publish(self.channel, event.to_json())

    @contextlib.asynccontextmanager
    async def subscribe(
        self, *, learner_id: str | None = None, rater_id: str | None = None
    ) -> AsyncIterator[RatingSubscription]:
        subscription = RatingSubscription(learner_id=learner_id, rater_id=rater_id)
        pubsub = self._client.pubsub()
        await pubsub.subscribe(self.channel)
        reader = asyncio.create_task(self._pump(pubsub, subscription))
        try:
            yield subscription
        finally:
            reader.cancel()
            try:
                with contextlib.suppress(asyncio.CancelledError):
                    await reader
            finally:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()

    async def _pump(self, pubsub: Any, subscription: RatingSubscription) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    subscription.offer(RatingEvent.from_json(message["data"]))
                except (ValueError, TypeError):
                    logger.warning("rating_event_malformed", channel=self.channel)
        except RedisError:
            logger.exception("rating_event_listener_failed", channel=self.channel)
            subscription.close()


@lru_cache
def get_event_bus() -> RatingEventBus:
    """Return the process-wide event bus selected by EVENT_BACKEND."""
    settings = get_settings()
    if settings.event_backend == "redis":
        return RedisRatingEventBus(settings.redis_url)
    return InMemoryRatingEventBus()
