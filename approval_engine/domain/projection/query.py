"""Read-only views over the request store.

Counts are always computed from the filtered set, so they describe exactly
what a caller is looking at, never the unfiltered store.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Iterable

from approval_engine.domain.approval.entities import RequestKind, RequestStatus
from approval_engine.domain.approval.record import ApprovalRequest
from approval_engine.domain.approval.repository import ApprovalRequestRepositoryProtocol
from approval_engine.domain.roles import Role

from .entities import (
    CategorySummary,
    PageMeta,
    PageResult,
    Pagination,
    RequestCounts,
    RequestFilters,
    Sorting,
    StatusBucket,
    bucket_of,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class QueryProjection:
    def __init__(self, repository: ApprovalRequestRepositoryProtocol) -> None:
        self._repo = repository

    def pending_for(
        self,
        roles: Iterable[Role],
        *,
        filters: RequestFilters = RequestFilters(),
        paging: Pagination = Pagination(),
        sorting: Sorting = Sorting(),
        actor_id: str | None = None,
    ) -> PageResult:
        """Requests whose current level can be acted on by one of ``roles``.

        When ``actor_id`` is given the actor's own requests are left out,
        since the gate would refuse them anyway.
        """
        role_set = frozenset(roles)
        kinds = [filters.kind] if filters.kind else None
        candidates = [
            r for r in self._repo.list(statuses=[RequestStatus.PENDING], kinds=kinds)
            if r.current_step.required_roles & role_set
            and (actor_id is None or r.requester_id != actor_id)
        ]
        return self._page(candidates, filters, paging, sorting)

    def mine(
        self,
        requester_id: str,
        *,
        filters: RequestFilters = RequestFilters(),
        paging: Pagination = Pagination(),
        sorting: Sorting = Sorting(),
    ) -> PageResult:
        kinds = [filters.kind] if filters.kind else None
        return self._page(
            self._repo.list(requester_id=requester_id, kinds=kinds),
            filters,
            paging,
            sorting,
        )

    def reimbursement_summary(self, requester_id: str, *, year: int, month: int) -> list[CategorySummary]:
        """Per-category totals of a requester's expenses dated in the given month."""
        records = self._repo.list(requester_id=requester_id, kinds=[RequestKind.REIMBURSEMENT])
        grouped: dict[str, list[ApprovalRequest]] = defaultdict(list)
        for record in records:
            expense_date = record.payload.get("expense_date")
            if not expense_date:
                continue
            day = date.fromisoformat(str(expense_date))
            if (day.year, day.month) != (year, month):
                continue
            grouped[record.payload.get("category", "Other")].append(record)

        summaries = []
        for category in sorted(grouped):
            items = grouped[category]
            summaries.append(
                CategorySummary(
                    category=category,
                    count=len(items),
                    total_amount=sum(_amount(r) for r in items),
                    approved_amount=sum(_amount(r) for r in items if r.status == RequestStatus.APPROVED),
                    pending_amount=sum(_amount(r) for r in items if r.status == RequestStatus.PENDING),
                )
            )
        return summaries

    @staticmethod
    def apply_filters(records: Iterable[ApprovalRequest], filters: RequestFilters) -> list[ApprovalRequest]:
        result = []
        for record in records:
            if filters.level and record.current_level != filters.level:
                continue
            if filters.status and bucket_of(record) != filters.status:
                continue
            if filters.year and (record.submitted_at is None or record.submitted_at.year != filters.year):
                continue
            if filters.kind and record.kind != filters.kind:
                continue
            result.append(record)
        return result

    @staticmethod
    def count(records: Iterable[ApprovalRequest]) -> RequestCounts:
        buckets = [bucket_of(r) for r in records]
        return RequestCounts(
            total=len(buckets),
            pending=buckets.count(StatusBucket.PENDING),
            approved=buckets.count(StatusBucket.APPROVED),
            rejected=buckets.count(StatusBucket.REJECTED),
            cancelled=buckets.count(StatusBucket.CANCELLED),
        )

    def _page(
        self,
        records: Iterable[ApprovalRequest],
        filters: RequestFilters,
        paging: Pagination,
        sorting: Sorting,
    ) -> PageResult:
        filtered = self.apply_filters(records, filters)
        counts = self.count(filtered)

        ordered = sorted(
            filtered,
            key=_SORT_KEYS.get(sorting.sort_by, _SORT_KEYS["submitted_at"]),
            reverse=sorting.sort_order == "desc",
        )
        window = ordered[paging.offset:paging.offset + paging.limit]

        meta = PageMeta(
            total=counts.total,
            limit=paging.limit,
            offset=paging.offset,
            has_next=(paging.offset + paging.limit) < counts.total,
            has_previous=paging.offset > 0,
        )
        return PageResult(data=window, meta=meta, counts=counts)


_SORT_KEYS = {
    "submitted_at": lambda r: (r.submitted_at or _EPOCH, r.created_at),
    "created_at": lambda r: r.created_at,
    "status": lambda r: (r.status.value, r.created_at),
    "kind": lambda r: (r.kind.value, r.created_at),
}


def _amount(record: ApprovalRequest) -> float:
    return float(record.payload.get("amount") or 0)
