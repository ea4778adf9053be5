"""HTTP notification sink that calls the notification service."""

from __future__ import annotations

import httpx

from approval_engine.domain.approval.entities import NotificationEvent


class HttpNotificationSink:
    """Post workflow events to an HTTP notification service."""

    def __init__(
        self,
        base_url: str,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Create an HTTP notification sink.

        Args:
            base_url: Base URL of the notification service (e.g. http://notify-svc:8002).
            client: Optional injected httpx client for testing / transport control.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = base_url.rstrip('/')
        self._client = client
        self._timeout = timeout

    def send(self, event: NotificationEvent) -> None:
        url = f'{self._base_url}/notifications'

        if self._client is not None:
            resp = self._client.post(url, json=event.to_dict(), timeout=self._timeout)
            resp.raise_for_status()
            return

        with httpx.Client() as client:
            resp = client.post(url, json=event.to_dict(), timeout=self._timeout)
            resp.raise_for_status()
