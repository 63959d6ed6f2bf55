# SPDX-License-Identifier: Apache-2.0

"""
Engine event dispatcher.

The engine emits semantic events and does not care whether they are
delivered: publishing failures are logged and never reach the caller.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from opentelemetry import trace

from models.enums import EngineEvent
from .amqp import AMQPService, PublishResult

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class EventDispatcher:
    """Publishes engine events as AMQP messages routed by company and event."""

    def __init__(self, amqp_service: Optional[AMQPService] = None):
        self.amqp_service = amqp_service

    def is_available(self) -> bool:
        return self.amqp_service is not None

    def notify(self, event: Union[EngineEvent, str], payload: Dict[str, Any]) -> Optional[PublishResult]:
        """
        Emit an event, fire-and-forget.

        Args:
            event: Event name
            payload: Event data; company_id and case_id drive the routing key

        Returns:
            The publish result, or None when no broker is configured or it failed
        """
        event_name = EngineEvent(event).value if isinstance(event, EngineEvent) else str(event)

        if not self.amqp_service:
            logger.debug("Event dispatcher disabled, dropping event", extra={"event": event_name})
            return None

        routing_key = f"karin.{payload.get('company_id', 'unknown')}.{event_name}"
        message = {
            "event": event_name,
            "occurred_at": datetime.utcnow().isoformat() + "Z",
            "payload": payload,
        }

        with tracer.start_as_current_span("events.notify") as span:
            span.set_attributes({"karin.event": event_name, "amqp.routing_key": routing_key})
            try:
                result = self.amqp_service.publish(routing_key, message)
            except Exception as e:
                span.record_exception(e)
                logger.error(
                    "Event dispatch failed",
                    extra={"event": event_name, "routing_key": routing_key, "error": str(e)},
                    exc_info=True
                )
                return None

            if not result.success:
                logger.error(
                    "Event dispatch failed",
                    extra={"event": event_name, "routing_key": routing_key, "error": result.error}
                )
                return None
            return result
