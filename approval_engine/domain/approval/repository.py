# ============================================================
# DB access layer
# ============================================================
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from approval_engine.core.errors import ConcurrentModification, NotFound
from .entities import (
    ApprovalStep,
    AuditEntry,
    Decision,
    PaymentDetails,
    RequestKind,
    RequestStatus,
)
from .models import ApprovalRequestRow
from .record import ApprovalRequest


class ApprovalRequestRepositoryProtocol(Protocol):
    def add(self, record: ApprovalRequest) -> ApprovalRequest:
        """Persist a new request"""
        ...

    def get(self, request_id: str) -> ApprovalRequest:
        """Get a request by id, raising NotFound"""
        ...

    def save(self, record: ApprovalRequest, expected_version: int) -> ApprovalRequest:
        """Write back a request only if nobody else has written it since it was read"""
        ...

    def list(
        self,
        *,
        requester_id: Optional[str] = None,
        statuses: Optional[Iterable[RequestStatus]] = None,
        kinds: Optional[Iterable[RequestKind]] = None,
    ) -> list[ApprovalRequest]:
        """List requests matching the optional filters"""
        ...


class SqlApprovalRequestRepository(ApprovalRequestRepositoryProtocol):
    def __init__(self, db: Session):
        self.db = db

    def add(self, record: ApprovalRequest) -> ApprovalRequest:
        """Persist a new request"""
        record.version = 1
        self.db.add(ApprovalRequestRow(**_to_columns(record)))
        self.db.commit()
        return record

    def get(self, request_id: str) -> ApprovalRequest:
        """Get a request by id, raising NotFound"""
        query = (
            select(ApprovalRequestRow)
            .where(ApprovalRequestRow.id == request_id)
            .execution_options(populate_existing=True)
        )
        row = self.db.execute(query).scalar_one_or_none()
        if row is None:
            raise NotFound(request_id)
        return _to_record(row)

    def save(self, record: ApprovalRequest, expected_version: int) -> ApprovalRequest:
        """Conditional write keyed on the version token read with the record"""
        table = ApprovalRequestRow.__table__
        values = _to_columns(record)
        values.pop("id")
        values["version"] = expected_version + 1

        query = (
            update(table)
            .where(table.c.id == record.id)
            .where(table.c.version == expected_version)
            .values(**values)
        )
        result = self.db.execute(query)

        if result.rowcount != 1:
            self.db.rollback()
            exists = self.db.execute(
                select(table.c.id).where(table.c.id == record.id)
            ).first()
            if exists is None:
                raise NotFound(record.id)
            raise ConcurrentModification(record.id)

        self.db.commit()
        record.version = expected_version + 1
        return record

    def list(
        self,
        *,
        requester_id: Optional[str] = None,
        statuses: Optional[Iterable[RequestStatus]] = None,
        kinds: Optional[Iterable[RequestKind]] = None,
    ) -> list[ApprovalRequest]:
        """
        Retrieve requests matching the given filters.

        All filters are optional. Role and level filtering happens in the
        query projection because the chain is stored as JSON.
        """
        query = select(ApprovalRequestRow).execution_options(populate_existing=True)

        # --- Filters ---
        if requester_id is not None:
            query = query.where(ApprovalRequestRow.requester_id == requester_id)

        if statuses is not None:
            query = query.where(ApprovalRequestRow.status.in_([s.value for s in statuses]))

        if kinds is not None:
            query = query.where(ApprovalRequestRow.kind.in_([k.value for k in kinds]))

        query = query.order_by(ApprovalRequestRow.created_at.desc())

        return [_to_record(row) for row in self.db.execute(query).scalars()]


def _to_columns(record: ApprovalRequest) -> dict[str, Any]:
    return {
        "id": record.id,
        "kind": record.kind.value,
        "requester_id": record.requester_id,
        "status": record.status.value,
        "current_index": record.current_index,
        "chain": [step.to_dict() for step in record.chain],
        "history": [d.to_dict() for d in record.history],
        "audit_trail": [e.to_dict() for e in record.audit_trail],
        "payload": record.payload,
        "payment": record.payment.to_dict() if record.payment else None,
        "previous_request_id": record.previous_request_id,
        "created_at": record.created_at,
        "submitted_at": record.submitted_at,
        "finalized_at": record.finalized_at,
        "version": record.version,
    }


def _to_record(row: ApprovalRequestRow) -> ApprovalRequest:
    return ApprovalRequest(
        id=row.id,
        kind=RequestKind(row.kind),
        requester_id=row.requester_id,
        payload=dict(row.payload or {}),
        created_at=_aware(row.created_at),
        status=RequestStatus(row.status),
        chain=tuple(ApprovalStep.from_dict(s) for s in row.chain or []),
        current_index=row.current_index,
        history=[Decision.from_dict(d) for d in row.history or []],
        audit_trail=[AuditEntry.from_dict(e) for e in row.audit_trail or []],
        submitted_at=_aware(row.submitted_at),
        finalized_at=_aware(row.finalized_at),
        previous_request_id=row.previous_request_id,
        payment=PaymentDetails.from_dict(row.payment) if row.payment else None,
        version=row.version,
    )


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
