"""Fire-and-forget delivery of workflow events.

A transition is already durable when its event is dispatched, so the
controller only enqueues. A background worker owns delivery:
- events are sent to the sink off the caller's thread
- failed events go to a bounded outbox, retried every ``retry_interval`` seconds
- an event evicted from a full outbox is logged as ``notification.dropped``
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque

from approval_engine.domain.approval.entities import NotificationEvent
from approval_engine.observability.tracing import log_event, new_trace_id
from .sink import NotificationSink

_STOP = object()


class NotificationDispatcher:
    def __init__(
        self,
        sink: NotificationSink,
        *,
        max_pending: int = 1000,
        retry_interval: float = 30.0,
    ) -> None:
        self._sink = sink
        self._retry_interval = retry_interval
        self._inbox: queue.Queue = queue.Queue()
        self._pending: deque[NotificationEvent] = deque(maxlen=max_pending)
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    @property
    def pending(self) -> list[NotificationEvent]:
        with self._lock:
            return list(self._pending)

    def start(self) -> None:
        with self._worker_lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._run, name="notification-dispatcher", daemon=True
            )
            self._worker.start()

    def dispatch(self, event: NotificationEvent) -> None:
        """Hand an event to the worker. Never blocks on the sink."""
        self.start()
        self._inbox.put(event)

    def flush(self) -> None:
        """Block until every dispatched event has had one delivery attempt."""
        self._inbox.join()

    def close(self, timeout: float | None = 5.0) -> None:
        with self._worker_lock:
            worker = self._worker
            self._worker = None
        if worker is None or not worker.is_alive():
            return
        self._inbox.put(_STOP)
        worker.join(timeout)

    def retry_pending(self) -> int:
        """Re-attempt queued events once. Returns how many were delivered."""
        with self._lock:
            batch = list(self._pending)
            self._pending.clear()

        delivered = 0
        for event in batch:
            if self._deliver(event):
                delivered += 1
            else:
                self._queue_for_retry(event)
        return delivered

    def _run(self) -> None:
        next_retry = time.monotonic() + self._retry_interval
        while True:
            try:
                item = self._inbox.get(timeout=max(0.0, next_retry - time.monotonic()))
            except queue.Empty:
                item = None

            if item is _STOP:
                self._inbox.task_done()
                return
            if item is not None:
                try:
                    if not self._deliver(item):
                        self._queue_for_retry(item)
                finally:
                    self._inbox.task_done()

            if time.monotonic() >= next_retry:
                if self.pending:
                    self.retry_pending()
                next_retry = time.monotonic() + self._retry_interval

    def _queue_for_retry(self, event: NotificationEvent) -> None:
        with self._lock:
            evicted = None
            if len(self._pending) == self._pending.maxlen:
                evicted = self._pending[0] if self._pending else event
            self._pending.append(event)

        if evicted is not None:
            log_event(
                'notification.dropped',
                trace_id=evicted.trace_id or new_trace_id(),
                level=logging.ERROR,
                request_id=evicted.request_id,
                status=evicted.status.value,
            )

    def _deliver(self, event: NotificationEvent) -> bool:
        try:
            self._sink.send(event)
        except Exception as exc:
            log_event(
                'notification.failed',
                trace_id=event.trace_id or new_trace_id(),
                level=logging.WARNING,
                request_id=event.request_id,
                status=event.status.value,
                error=str(exc),
            )
            return False
        return True
