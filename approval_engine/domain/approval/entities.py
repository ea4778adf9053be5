# ============================================================
# Business/domain entities
# ============================================================
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from approval_engine.core.errors import DenialReason
from approval_engine.domain.roles import Role


class RequestKind(str, Enum):
    PERMISSION = "Permission"
    REGULARIZATION = "Regularization"
    REIMBURSEMENT = "Reimbursement"


class RequestStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.CANCELLED,
})


class DecisionAction(str, Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class AuditAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    SUBMITTED = "SUBMITTED"
    AUTO_APPROVED = "AUTO_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "Bank Transfer"
    CASH = "Cash"
    CHEQUE = "Cheque"
    PAYROLL_INTEGRATION = "Payroll Integration"


@dataclass(frozen=True)
class Actor:
    """A caller as seen by the engine: identity plus the roles observed right now."""
    id: str
    roles: frozenset[Role] = frozenset()


@dataclass(frozen=True)
class ApprovalStep:
    level: str
    required_roles: frozenset[Role]

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "required_roles": sorted(r.value for r in self.required_roles),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ApprovalStep":
        return cls(
            level=data["level"],
            required_roles=frozenset(Role(r) for r in data["required_roles"]),
        )


@dataclass(frozen=True)
class Decision:
    level: str
    actor_id: str
    actor_role: Role
    action: DecisionAction
    timestamp: datetime
    comments: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role.value,
            "action": self.action.value,
            "comments": self.comments,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Decision":
        return cls(
            level=data["level"],
            actor_id=data["actor_id"],
            actor_role=Role(data["actor_role"]),
            action=DecisionAction(data["action"]),
            comments=data.get("comments"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class AuditEntry:
    action: AuditAction
    performed_by: str
    timestamp: datetime
    details: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "performed_by": self.performed_by,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AuditEntry":
        return cls(
            action=AuditAction(data["action"]),
            performed_by=data["performed_by"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            details=data.get("details"),
        )


@dataclass(frozen=True)
class PaymentDetails:
    method: PaymentMethod
    paid_amount: float
    processed_by: str
    paid_at: datetime
    transaction_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method.value,
            "paid_amount": self.paid_amount,
            "processed_by": self.processed_by,
            "paid_at": self.paid_at.isoformat(),
            "transaction_id": self.transaction_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentDetails":
        return cls(
            method=PaymentMethod(data["method"]),
            paid_amount=float(data["paid_amount"]),
            processed_by=data["processed_by"],
            paid_at=datetime.fromisoformat(data["paid_at"]),
            transaction_id=data.get("transaction_id"),
        )


@dataclass(frozen=True)
class PaymentInstruction:
    """What a finance user supplies when marking a request as paid."""
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    paid_amount: Optional[float] = None
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[DenialReason] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class NotificationEvent:
    request_id: str
    kind: RequestKind
    status: RequestStatus
    notify_roles: frozenset[Role] = field(default_factory=frozenset)
    level: Optional[str] = None
    requester_id: Optional[str] = None
    trace_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "notify_roles": sorted(r.value for r in self.notify_roles),
            "level": self.level,
            "requester_id": self.requester_id,
            "trace_id": self.trace_id,
        }
