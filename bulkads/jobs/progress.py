"""
Progress publishing.

Publishers forward job progress events to observers. Publishing is best
effort: a publisher failure is logged and never fails the job that produced
the event.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

import redis

from bulkads.config import RedisConfig
from bulkads.jobs.models import ProgressEvent

logger = logging.getLogger(__name__)

class ProgressPublisher(ABC):
    """Sink for job progress events."""

    @abstractmethod
    async def publish(self, job_id: str, event: ProgressEvent) -> None:
        """Forward a progress event for a job."""

class InMemoryProgressPublisher(ProgressPublisher):
    """Keeps the latest event per job and fans events out to local subscribers."""

    def __init__(self):
        self._latest: Dict[str, ProgressEvent] = {}
        self._subscribers: Dict[str, List[asyncio.Queue]] = {}

    async def publish(self, job_id: str, event: ProgressEvent) -> None:
        self._latest[job_id] = event
        for queue in list(self._subscribers.get(job_id, [])):
            queue.put_nowait(event)

    def latest(self, job_id: str) -> Optional[ProgressEvent]:
        """Get the most recent event published for a job."""
        return self._latest.get(job_id)

    def subscribe(self, job_id: str) -> asyncio.Queue:
        """Register a queue that receives every subsequent event for a job."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.setdefault(job_id, []).append(queue)
        return queue

    def unsubscribe(self, job_id: str, queue: asyncio.Queue) -> None:
        """Remove a queue registered with subscribe()."""
        queues = self._subscribers.get(job_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(job_id, None)

    def forget(self, job_id: str) -> None:
        """Drop the stored event for a deleted job."""
        self._latest.pop(job_id, None)

class RedisProgressPublisher(ProgressPublisher):
    """Publishes events on a per-job Redis channel and keeps the latest one as a key."""

    def __init__(self, config: Optional[RedisConfig] = None, client: Optional[redis.Redis] = None):
        """
        Initialize the publisher.

        Args:
            config: Redis configuration
            client: Optional pre-built Redis client
        """
        self.config = config or RedisConfig()
        self.redis = client or redis.from_url(
            self.config.url,
            password=self.config.password,
            decode_responses=True
        )

    def channel(self, job_id: str) -> str:
        """Get the prefixed channel (and key) name for a job."""
        return f"{self.config.prefix}{self.config.progress_prefix}{job_id}"

    def _publish(self, job_id: str, payload: str) -> None:
        key = self.channel(job_id)
        self.redis.set(key, payload, ex=self.config.progress_ttl)
        self.redis.publish(key, payload)

    async def publish(self, job_id: str, event: ProgressEvent) -> None:
        try:
            await asyncio.to_thread(self._publish, job_id, event.model_dump_json())
        except redis.RedisError as e:
            logger.error(f"Redis error publishing progress for job {job_id}: {e}")

class CompositeProgressPublisher(ProgressPublisher):
    """Forwards each event to several publishers, isolating their failures."""

    def __init__(self, publishers: Iterable[ProgressPublisher]):
        self.publishers = list(publishers)

    async def publish(self, job_id: str, event: ProgressEvent) -> None:
        for publisher in self.publishers:
            try:
                await publisher.publish(job_id, event)
            except Exception as e:
                logger.error(f"{type(publisher).__name__} failed to publish progress for job {job_id}: {e}")
