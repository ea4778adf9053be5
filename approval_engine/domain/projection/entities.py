# ============================================================
# Read-model entities
# ============================================================
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from approval_engine.domain.approval.entities import RequestKind, RequestStatus
from approval_engine.domain.approval.record import ApprovalRequest

SortOrderLiteral = Literal["asc", "desc"]
RequestSortFieldLiteral = Literal["submitted_at", "created_at", "status", "kind"]


class StatusBucket(str, Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


_BUCKETS = {
    RequestStatus.DRAFT: StatusBucket.DRAFT,
    RequestStatus.PENDING: StatusBucket.PENDING,
    RequestStatus.APPROVED: StatusBucket.APPROVED,
    RequestStatus.REJECTED: StatusBucket.REJECTED,
    RequestStatus.CANCELLED: StatusBucket.CANCELLED,
}


def bucket_of(record: ApprovalRequest) -> StatusBucket:
    return _BUCKETS[record.status]


@dataclass(frozen=True)
class RequestFilters:
    level: Optional[str] = None
    status: Optional[StatusBucket] = None
    year: Optional[int] = None
    kind: Optional[RequestKind] = None


@dataclass(frozen=True)
class Pagination:
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class Sorting:
    sort_by: RequestSortFieldLiteral = "submitted_at"
    sort_order: SortOrderLiteral = "desc"


@dataclass(frozen=True)
class RequestCounts:
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0


@dataclass(frozen=True)
class PageMeta:
    total: int
    limit: int
    offset: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class PageResult:
    data: list[ApprovalRequest]
    meta: PageMeta
    counts: RequestCounts


@dataclass(frozen=True)
class CategorySummary:
    category: str
    count: int
    total_amount: float
    approved_amount: float
    pending_amount: float
