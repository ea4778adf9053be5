"""Trace ids, spans and structured workflow events.

Each workflow operation gets one trace id. Events are written as one JSON
object per line on the ``approval_engine`` logger, so whatever handler
``setup_logging`` installs decides where they end up.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger("approval_engine")


@dataclass
class Span:
    """Timing for one operation. Durations use the monotonic clock."""

    name: str
    trace_id: str
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    started_ns: int = field(default_factory=time.perf_counter_ns)
    finished_ns: int | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    def finish(self, **attributes: Any) -> "Span":
        self.attributes.update(attributes)
        if self.finished_ns is None:
            self.finished_ns = time.perf_counter_ns()
        return self

    @property
    def duration_ms(self) -> float | None:
        if self.finished_ns is None:
            return None
        return round((self.finished_ns - self.started_ns) / 1_000_000.0, 3)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "span_id": self.span_id,
            "duration_ms": self.duration_ms,
            "attributes": self.attributes,
        }


def new_trace_id() -> str:
    return uuid.uuid4().hex


def start_span(name: str, *, trace_id: str | None = None) -> Span:
    return Span(name=name, trace_id=trace_id or new_trace_id())


def log_event(
    event: str,
    *,
    trace_id: str,
    span: Span | None = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one structured event. Enum and datetime values are stringified."""
    if not logger.isEnabledFor(level):
        return
    record: dict[str, Any] = {"event": event, "trace_id": trace_id}
    record.update(fields)
    if span is not None:
        record["span"] = span.to_dict()
    logger.log(level, json.dumps(record, ensure_ascii=False, default=str))
