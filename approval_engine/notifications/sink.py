"""Notification sink abstraction.

In production, a sink might be:
- the internal notification HTTP service
- an email relay
- a queue producer
"""

from __future__ import annotations

from typing import Protocol

from approval_engine.domain.approval.entities import NotificationEvent
from approval_engine.observability.tracing import log_event, new_trace_id


class NotificationSink(Protocol):
    def send(self, event: NotificationEvent) -> None:
        """Deliver one event. Raise on failure; the dispatcher decides what to do."""
        ...


class LoggingNotificationSink:
    """Used when no notification service is configured."""

    def send(self, event: NotificationEvent) -> None:
        fields = event.to_dict()
        trace_id = fields.pop('trace_id') or new_trace_id()
        fields['approval_level'] = fields.pop('level')
        log_event('notification.logged', trace_id=trace_id, **fields)
