"""Event bus client for publishing review events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from review_engine.integrations.base import ServiceClient


@dataclass
class BusMessage:
    """Envelope the event bus expects around every payload."""

    topic: str
    originator: str
    payload: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    mime_type: str = "application/json"

    def to_dict(self) -> dict[str, Any]:
        """Convert message to dictionary for JSON serialization."""
        return {
            "topic": self.topic,
            "originator": self.originator,
            "timestamp": self.timestamp.isoformat(),
            "mime-type": self.mime_type,
            "payload": self.payload,
        }


class EventBusClient(ServiceClient):
    """Publishes messages to the event bus.

    Delivery is at-least-once from the bus' point of view; this client
    makes a single attempt and raises DownstreamError on failure.
    """

    error_code = "EVENT_BUS_ERROR"
    service_name = "event_bus"

    def __init__(
        self,
        bus_url: str,
        originator: str,
        auth_token: str | None = None,
        timeout_seconds: int = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("", auth_token, timeout_seconds, transport)
        self.bus_url = bus_url
        self.originator = originator

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Publish a payload on a topic."""
        message = BusMessage(topic=topic, originator=self.originator, payload=payload)
        await self._request("POST", self.bus_url, json=message.to_dict())
        self.logger.info("bus_event_published", topic=topic)
