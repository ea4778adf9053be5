import threading

from approval_engine.domain.approval.entities import NotificationEvent


class RecordingSink:
    def __init__(self):
        self.events: list[NotificationEvent] = []

    def send(self, event: NotificationEvent) -> None:
        self.events.append(event)


class FailingSink:
    def __init__(self):
        self.attempts = 0

    def send(self, event: NotificationEvent) -> None:
        self.attempts += 1
        raise ConnectionError("notification service unavailable")


class BlockingSink:
    """Holds every delivery until release() is called."""

    def __init__(self, timeout: float = 5.0):
        self.events: list[NotificationEvent] = []
        self._released = threading.Event()
        self._timeout = timeout

    def release(self) -> None:
        self._released.set()

    def send(self, event: NotificationEvent) -> None:
        if not self._released.wait(self._timeout):
            raise TimeoutError("notification service did not answer")
        self.events.append(event)
