from __future__ import annotations

import logging

from barback.application.ports.publisher import EventPublisher
from barback.infrastructure.cache.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class RedisEventPublisher(EventPublisher):
    def __init__(self, timeout_seconds: float = 1.0) -> None:
        self._timeout_seconds = timeout_seconds

    def publish(self, channel: str, message: str) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).publish(channel, message)


class LoggingEventPublisher(EventPublisher):
    """Publisher for deployments without Redis; events only reach the log."""

    def publish(self, channel: str, message: str) -> None:
        logger.debug("event_published", extra={"channel": channel, "event": message})
