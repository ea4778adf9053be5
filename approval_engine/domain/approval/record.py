"""Approval request record and its state machine.

The record is the single source of truth for where a request stands:
``(status, current_index, chain)``. Display labels are derived from those
three fields, never stored.

Every transition validates all of its preconditions before touching any
field, so a failed transition leaves the record exactly as it was.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from approval_engine.core.errors import (
    DenialReason,
    StaleOrInvalidTransition,
    Unauthorized,
    ValidationError,
)
from approval_engine.domain.roles import Role
from .entities import (
    TERMINAL_STATUSES,
    ApprovalStep,
    AuditAction,
    AuditEntry,
    Decision,
    DecisionAction,
    PaymentDetails,
    RequestKind,
    RequestStatus,
)

_MAX_COMMENT_CHARS = 500

_REFERENCE_PREFIX = {
    RequestKind.PERMISSION: "PR",
    RequestKind.REGULARIZATION: "REG",
    RequestKind.REIMBURSEMENT: "RMB",
}


@dataclass
class ApprovalRequest:
    id: str
    kind: RequestKind
    requester_id: str
    payload: dict[str, Any]
    created_at: datetime
    status: RequestStatus = RequestStatus.DRAFT
    chain: tuple[ApprovalStep, ...] = ()
    current_index: int = -1
    history: list[Decision] = field(default_factory=list)
    audit_trail: list[AuditEntry] = field(default_factory=list)
    submitted_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    previous_request_id: Optional[str] = None
    payment: Optional[PaymentDetails] = None
    version: int = 0

    @classmethod
    def new_draft(
        cls,
        *,
        kind: RequestKind,
        requester_id: str,
        payload: dict[str, Any],
        now: datetime,
        previous_request_id: str | None = None,
    ) -> "ApprovalRequest":
        record = cls(
            id=uuid.uuid4().hex,
            kind=kind,
            requester_id=requester_id,
            payload=dict(payload),
            created_at=now,
            previous_request_id=previous_request_id,
        )
        details = "Draft created"
        if previous_request_id:
            details = f"Draft created from request {previous_request_id}"
        record._audit(AuditAction.CREATED, requester_id, now, details)
        return record

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def current_step(self) -> ApprovalStep | None:
        if not self.is_pending:
            return None
        return self.chain[self.current_index]

    @property
    def current_level(self) -> str | None:
        step = self.current_step
        return step.level if step else None

    @property
    def paid(self) -> bool:
        return self.payment is not None

    @property
    def rejection_reason(self) -> str | None:
        if self.status != RequestStatus.REJECTED or not self.history:
            return None
        return self.history[-1].comments

    @property
    def status_label(self) -> str:
        if self.status == RequestStatus.PENDING:
            return f"Pending {self.current_level}"
        if self.paid:
            return "Paid"
        return self.status.value.capitalize()

    @property
    def reference(self) -> str:
        prefix = _REFERENCE_PREFIX.get(self.kind, "REQ")
        suffix = self.id[-6:].upper()
        if self.kind == RequestKind.REIMBURSEMENT:
            stamp = self.submitted_at or self.created_at
            return f"{prefix}{stamp:%y%m}{suffix}"
        return f"{prefix}{suffix}"

    def passed_levels(self) -> list[str]:
        """Levels that have already been decided, in chain order."""
        if self.current_index <= 0:
            return []
        return [step.level for step in self.chain[:self.current_index]]

    def clone(self) -> "ApprovalRequest":
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def update_payload(self, *, actor_id: str, payload: dict[str, Any], now: datetime) -> None:
        if self.status != RequestStatus.DRAFT:
            raise StaleOrInvalidTransition(
                f"Request {self.id} is {self.status.value}; only drafts can be edited",
                reason=DenialReason.NOT_PENDING,
            )
        if actor_id != self.requester_id:
            raise Unauthorized(DenialReason.NOT_REQUESTER, "Only the requester can edit a draft")

        self.payload = dict(payload)
        self._audit(AuditAction.UPDATED, actor_id, now, "Draft payload updated")

    def submit(
        self,
        *,
        chain: Iterable[ApprovalStep],
        now: datetime,
        auto_approve_empty: bool = True,
    ) -> None:
        """Freeze the resolved chain and move to the first pending level.

        An empty chain means no approver applies to this requester. It is
        finalized as approved only when ``auto_approve_empty`` is set, and the
        audit trail says so.
        """
        if self.status != RequestStatus.DRAFT:
            raise StaleOrInvalidTransition(
                f"Request {self.id} has already been submitted (status {self.status.value})",
                reason=DenialReason.NOT_PENDING,
            )
        steps = tuple(chain)
        if not steps and not auto_approve_empty:
            raise ValidationError(
                f"No approval level applies to {self.kind.value} request {self.id}"
            )

        stamp = self._stamp(now)
        self.chain = steps
        self.submitted_at = stamp
        self._audit(
            AuditAction.SUBMITTED,
            self.requester_id,
            stamp,
            " -> ".join(s.level for s in steps) or "no approval levels",
        )

        if not steps:
            self.status = RequestStatus.APPROVED
            self.finalized_at = stamp
            self._audit(
                AuditAction.AUTO_APPROVED,
                "system",
                stamp,
                "Auto-approved: no applicable approver for this requester",
            )
            return

        self.current_index = 0
        self.status = RequestStatus.PENDING

    def approve(
        self,
        *,
        level: str,
        actor_id: str,
        actor_role: Role,
        now: datetime,
        comments: str | None = None,
    ) -> None:
        comments = _clean_comments(comments)
        self._require_pending_at(level)

        stamp = self._stamp(now)
        self.history.append(
            Decision(
                level=level,
                actor_id=actor_id,
                actor_role=actor_role,
                action=DecisionAction.APPROVED,
                comments=comments,
                timestamp=stamp,
            )
        )
        details = f"Approved by {level}" + (f": {comments}" if comments else "")
        self._audit(AuditAction.APPROVED, actor_id, stamp, details)

        if self.current_index == len(self.chain) - 1:
            self.status = RequestStatus.APPROVED
            self.finalized_at = stamp
        else:
            self.current_index += 1

    def reject(
        self,
        *,
        level: str,
        actor_id: str,
        actor_role: Role,
        reason: str,
        now: datetime,
    ) -> None:
        if reason is None or not reason.strip():
            raise ValidationError("A rejection reason is required")
        reason = _clean_comments(reason)
        self._require_pending_at(level)

        stamp = self._stamp(now)
        self.history.append(
            Decision(
                level=level,
                actor_id=actor_id,
                actor_role=actor_role,
                action=DecisionAction.REJECTED,
                comments=reason,
                timestamp=stamp,
            )
        )
        self._audit(AuditAction.REJECTED, actor_id, stamp, f"Rejected by {level}: {reason}")
        self.status = RequestStatus.REJECTED
        self.finalized_at = stamp

    def cancel(self, *, actor_id: str, now: datetime) -> None:
        if self.is_terminal:
            raise StaleOrInvalidTransition(
                f"Request {self.id} is already {self.status.value}",
                reason=DenialReason.NOT_PENDING,
            )
        if actor_id != self.requester_id:
            raise Unauthorized(DenialReason.NOT_REQUESTER, "Only the requester can cancel a request")

        stamp = self._stamp(now)
        self._audit(AuditAction.CANCELLED, actor_id, stamp, "Cancelled by requester")
        self.status = RequestStatus.CANCELLED
        self.finalized_at = stamp

    def mark_paid(self, *, payment: PaymentDetails, now: datetime) -> None:
        """Record payout on an approved request. The approval chain is not reopened."""
        if self.status != RequestStatus.APPROVED:
            raise StaleOrInvalidTransition(
                f"Only approved requests can be marked as paid (status {self.status.value})",
                reason=DenialReason.NOT_PENDING,
            )
        if self.paid:
            raise StaleOrInvalidTransition(f"Request {self.id} is already marked as paid")
        if payment.paid_amount < 0:
            raise ValidationError("Paid amount cannot be negative")

        stamp = self._stamp(now)
        self.payment = payment
        self._audit(
            AuditAction.PAID,
            payment.processed_by,
            stamp,
            f"Payment processed via {payment.method.value}",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_pending_at(self, level: str) -> None:
        if self.status != RequestStatus.PENDING:
            raise StaleOrInvalidTransition(
                f"Request {self.id} is {self.status.value}; no level is awaiting a decision",
                reason=DenialReason.NOT_PENDING,
            )
        if level != self.current_level:
            reason = (
                DenialReason.STALE_LEVEL
                if level in self.passed_levels()
                else DenialReason.WRONG_LEVEL
            )
            raise StaleOrInvalidTransition(
                f"Request {self.id} is awaiting {self.current_level}, not {level}",
                reason=reason,
            )

    def _stamp(self, now: datetime) -> datetime:
        # history and audit trail are ordered by timestamp
        latest = [e.timestamp for e in self.audit_trail] + [d.timestamp for d in self.history]
        if latest and max(latest) > now:
            return max(latest)
        return now

    def _audit(self, action: AuditAction, actor_id: str, now: datetime, details: str | None) -> None:
        self.audit_trail.append(
            AuditEntry(action=action, performed_by=actor_id, timestamp=now, details=details)
        )


def _clean_comments(comments: str | None) -> str | None:
    if comments is None:
        return None
    text = comments.strip()
    if len(text) > _MAX_COMMENT_CHARS:
        raise ValidationError(f"Comments cannot exceed {_MAX_COMMENT_CHARS} characters")
    return text or None
