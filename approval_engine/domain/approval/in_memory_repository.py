import threading
from typing import Iterable, Optional

from approval_engine.core.errors import ConcurrentModification, NotFound
from .entities import RequestKind, RequestStatus
from .record import ApprovalRequest


class InMemoryApprovalRequestRepository:
    """Process-local store with the same versioning contract as the SQL repository."""

    def __init__(self, records: Iterable[ApprovalRequest] = ()):
        self._lock = threading.Lock()
        self._records: dict[str, ApprovalRequest] = {}
        for record in records:
            self.add(record)

    def add(self, record: ApprovalRequest) -> ApprovalRequest:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Request '{record.id}' already exists")
            record.version = 1
            self._records[record.id] = record.clone()
        return record

    def get(self, request_id: str) -> ApprovalRequest:
        with self._lock:
            stored = self._records.get(request_id)
            if stored is None:
                raise NotFound(request_id)
            return stored.clone()

    def save(self, record: ApprovalRequest, expected_version: int) -> ApprovalRequest:
        with self._lock:
            stored = self._records.get(record.id)
            if stored is None:
                raise NotFound(record.id)
            if stored.version != expected_version:
                raise ConcurrentModification(record.id)
            record.version = expected_version + 1
            self._records[record.id] = record.clone()
        return record

    def list(
        self,
        *,
        requester_id: Optional[str] = None,
        statuses: Optional[Iterable[RequestStatus]] = None,
        kinds: Optional[Iterable[RequestKind]] = None,
    ) -> list[ApprovalRequest]:
        wanted_statuses = set(statuses) if statuses is not None else None
        wanted_kinds = set(kinds) if kinds is not None else None
        with self._lock:
            records = [r.clone() for r in self._records.values()]

        return sorted(
            (
                r for r in records
                if (requester_id is None or r.requester_id == requester_id)
                and (wanted_statuses is None or r.status in wanted_statuses)
                and (wanted_kinds is None or r.kind in wanted_kinds)
            ),
            key=lambda r: r.created_at,
            reverse=True,
        )
