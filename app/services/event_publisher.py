"""
Pre-playback event publishing

Builds the notification payload for a claimed entry and pushes it to the
notification sink (an HTTP webhook). Delivery is attempted once: a failure is
logged and the claim stays in place.
"""
import logging
from enum import Enum

import httpx

from app.models import Schedule
from app.schemas import PrePlaybackEvent


logger = logging.getLogger(__name__)


def build_event(schedule: Schedule) -> PrePlaybackEvent:
    """Snapshot an entry into an immutable notification payload"""
    return PrePlaybackEvent(
        schedule_id=schedule.id,
        user_id=schedule.user_id,
        channel=schedule.channel,
        program_url=schedule.program_url,
        start_at=schedule.start_at,
        duration_min=schedule.duration_min,
    )


class PrePlaybackEventPublisher:
    """Publishes events to the configured webhook as `{exchange, routing_key, payload}`"""

    def __init__(
        self,
        url: str | None,
        exchange: str,
        routing_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.exchange = exchange
        self.routing_key = routing_key
        self._timeout = timeout
        self._transport = transport

    async def publish(
        self,
        event: PrePlaybackEvent,
        exchange: str | None = None,
        routing_key: str | None = None,
    ) -> bool:
        """
        Send one event to the sink

        Returns:
            True once the sink accepted the event, False if no sink is configured

        Raises:
            httpx.HTTPError: If the sink is unreachable, times out or rejects the event
        """
        exchange = exchange or self.exchange
        routing_key = routing_key or self.routing_key

        if not self.url:
            logger.warning(
                "No notification sink configured, dropping PrePlaybackEvent scheduleId=%s",
                event.schedule_id,
            )
            return False

        logger.info(
            "Publishing PrePlaybackEvent scheduleId=%s startAt=%s to exchange=%s routingKey=%s",
            event.schedule_id,
            event.start_at.isoformat(),
            exchange,
            routing_key,
        )

        body = {
            "exchange": exchange,
            "routing_key": routing_key,
            "payload": event.model_dump(mode="json", by_alias=True),
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            response = await client.post(self.url, json=body)
            response.raise_for_status()
        return True


class DispatchOutcome(str, Enum):
    DELIVERED = "delivered"
    DROPPED = "dropped"
    FAILED = "failed"


class EventDispatcher:
    """Hands claimed entries to the publisher, isolating delivery failures"""

    def __init__(self, publisher: PrePlaybackEventPublisher) -> None:
        self._publisher = publisher

    async def dispatch(self, schedule: Schedule) -> DispatchOutcome:
        """
        Publish the pre-playback event for an entry this worker has claimed

        Returns:
            DELIVERED if the sink accepted the event, DROPPED if no sink is
            configured, FAILED if delivery raised
        """
        event = build_event(schedule)
        try:
            delivered = await self._publisher.publish(event)
        except Exception as exc:
            logger.error(
                "[SCHEDULER] publish failed for schedule id=%s: %s",
                schedule.id,
                exc,
                exc_info=True,
            )
            return DispatchOutcome.FAILED
        return DispatchOutcome.DELIVERED if delivered else DispatchOutcome.DROPPED
