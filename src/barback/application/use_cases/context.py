from __future__ import annotations

import logging
from dataclasses import dataclass

from barback.application.mappers.event_envelope import event_channel
from barback.application.ports.publisher import EventPublisher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceContext:
    trace_id: str | None
    request_id: str | None


NO_TRACE = TraceContext(trace_id=None, request_id=None)


def publish_event(publisher: EventPublisher, organization_id: str, message: str) -> None:
    try:
        publisher.publish(channel=event_channel(organization_id), message=message)
    except Exception:
        # events are best effort, the write they describe is already committed
        logger.warning("event_publish_failed", exc_info=True)
