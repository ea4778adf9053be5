from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from approval_engine.domain.approval.entities import PaymentMethod, RequestKind
from approval_engine.domain.approval.record import ApprovalRequest
from approval_engine.domain.projection import CategorySummary, RequestCounts, StatusBucket


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class RequestSortField(str, Enum):
    submitted_at = "submitted_at"
    created_at = "created_at"
    status = "status"
    kind = "kind"


class RequestFiltersQuery(BaseModel):
    """
    Query filters for listing requests.

    All fields are optional.
    Counts returned alongside the page always describe the filtered set.
    """

    # Filtering
    level: Optional[str] = Field(
        default=None,
        description="Only requests currently awaiting this level"
    )

    status: Optional[StatusBucket] = Field(
        default=None,
        description="Filter requests by status bucket"
    )

    year: Optional[int] = Field(
        default=None,
        ge=1970,
        description="Only requests submitted in this calendar year"
    )

    kind: Optional[RequestKind] = Field(
        default=None,
        description="Filter requests by kind"
    )

    # Pagination
    limit: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Maximum number of records to return (1-100)"
    )

    offset: int = Field(
        default=0,
        ge=0,
        description="Number of records to skip (pagination)"
    )

    # Sorting
    sort_by: RequestSortField = Field(
        default=RequestSortField.submitted_at,
        description="Field to sort by"
    )
    sort_order: SortOrder = Field(
        default=SortOrder.desc,
        description="Sort order (asc or desc)"
    )


# ---------------------------------
# Command bodies
# ---------------------------------

class SubmitRequestIn(BaseModel):
    requester_id: str = Field(min_length=1)
    kind: RequestKind
    payload: dict[str, Any]
    draft: bool = Field(default=False, description="Store as draft without routing")


class DraftUpdateIn(BaseModel):
    actor_id: str = Field(min_length=1)
    payload: dict[str, Any]


class ActorIn(BaseModel):
    actor_id: str = Field(min_length=1)


class ResubmitIn(BaseModel):
    actor_id: str = Field(min_length=1)
    payload: Optional[dict[str, Any]] = Field(
        default=None,
        description="Replacement payload; the previous payload is reused when omitted"
    )


class ApproveIn(BaseModel):
    actor_id: str = Field(min_length=1)
    level: str = Field(min_length=1, description="Level the actor believes is current")
    comments: Optional[str] = Field(default=None, max_length=500)


class RejectIn(BaseModel):
    actor_id: str = Field(min_length=1)
    level: str = Field(min_length=1, description="Level the actor believes is current")
    reason: str = Field(description="Mandatory rejection reason")


class MarkPaidIn(BaseModel):
    actor_id: str = Field(min_length=1)
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    paid_amount: Optional[float] = Field(default=None, ge=0)
    transaction_id: Optional[str] = Field(default=None, max_length=100)


# ---------------------------------
# Responses
# ---------------------------------

class StepOut(BaseModel):
    level: str
    required_roles: List[str]


class DecisionOut(BaseModel):
    level: str
    actor_id: str
    actor_role: str
    action: str
    comments: Optional[str] = None
    timestamp: datetime


class AuditEntryOut(BaseModel):
    action: str
    performed_by: str
    timestamp: datetime
    details: Optional[str] = None


class PaymentOut(BaseModel):
    method: str
    paid_amount: float
    processed_by: str
    paid_at: datetime
    transaction_id: Optional[str] = None


class RequestSnapshot(BaseModel):
    id: str
    reference: str
    kind: RequestKind
    requester_id: str
    status: str
    status_label: str
    current_level: Optional[str] = None
    current_index: int
    chain: List[StepOut]
    history: List[DecisionOut]
    audit_trail: List[AuditEntryOut]
    payload: dict[str, Any]
    previous_request_id: Optional[str] = None
    created_at: datetime
    submitted_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    paid: bool = False
    payment: Optional[PaymentOut] = None
    version: int

    @classmethod
    def from_record(cls, record: ApprovalRequest) -> "RequestSnapshot":
        return cls(
            id=record.id,
            reference=record.reference,
            kind=record.kind,
            requester_id=record.requester_id,
            status=record.status.value,
            status_label=record.status_label,
            current_level=record.current_level,
            current_index=record.current_index,
            chain=[StepOut(**s.to_dict()) for s in record.chain],
            history=[DecisionOut(**d.to_dict()) for d in record.history],
            audit_trail=[AuditEntryOut(**a.to_dict()) for a in record.audit_trail],
            payload=record.payload,
            previous_request_id=record.previous_request_id,
            created_at=record.created_at,
            submitted_at=record.submitted_at,
            finalized_at=record.finalized_at,
            paid=record.paid,
            payment=PaymentOut(**record.payment.to_dict()) if record.payment else None,
            version=record.version,
        )


T = TypeVar("T")


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    has_next: bool
    has_previous: bool


class CountsOut(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int

    @classmethod
    def from_counts(cls, counts: RequestCounts) -> "CountsOut":
        return cls(
            total=counts.total,
            pending=counts.pending,
            approved=counts.approved,
            rejected=counts.rejected,
            cancelled=counts.cancelled,
        )


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: PaginationMeta
    counts: Optional[CountsOut] = None


class CategorySummaryOut(BaseModel):
    category: str
    count: int
    total_amount: float
    approved_amount: float
    pending_amount: float

    @classmethod
    def from_summary(cls, summary: CategorySummary) -> "CategorySummaryOut":
        return cls(
            category=summary.category,
            count=summary.count,
            total_amount=summary.total_amount,
            approved_amount=summary.approved_amount,
            pending_amount=summary.pending_amount,
        )


class GateDecisionOut(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    detail: Optional[str] = None


class ErrorOut(BaseModel):
    error: str
    detail: str
    reason: Optional[str] = None
    errors: Optional[List[dict[str, Any]]] = None
