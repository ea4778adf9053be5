"""This module hands workflow events to the notification service."""
from .sink import LoggingNotificationSink, NotificationSink
from .http_sink import HttpNotificationSink
from .dispatcher import NotificationDispatcher
