from fastapi import APIRouter, Depends, Query

from approval_engine.api.core.container import get_controller, get_projection
from approval_engine.api.schemas import (
    ActorIn,
    CategorySummaryOut,
    CountsOut,
    DraftUpdateIn,
    MarkPaidIn,
    PaginatedResponse,
    PaginationMeta,
    RequestFiltersQuery,
    RequestSnapshot,
    ResubmitIn,
    SubmitRequestIn,
)
from approval_engine.domain.approval.entities import PaymentInstruction
from approval_engine.domain.projection import (
    PageResult,
    Pagination,
    QueryProjection,
    RequestFilters,
    Sorting,
)
from approval_engine.runtime.controller import WorkflowController

router = APIRouter(prefix="/requests", tags=["Requests"])


def to_page(page: PageResult) -> PaginatedResponse[RequestSnapshot]:
    return PaginatedResponse[RequestSnapshot](
        data=[RequestSnapshot.from_record(r) for r in page.data],
        meta=PaginationMeta(
            total=page.meta.total,
            limit=page.meta.limit,
            offset=page.meta.offset,
            has_next=page.meta.has_next,
            has_previous=page.meta.has_previous,
        ),
        counts=CountsOut.from_counts(page.counts),
    )


def to_query(q: RequestFiltersQuery) -> tuple[RequestFilters, Pagination, Sorting]:
    filters = RequestFilters(level=q.level, status=q.status, year=q.year, kind=q.kind)
    paging = Pagination(limit=q.limit, offset=q.offset)
    sorting = Sorting(sort_by=q.sort_by.value, sort_order=q.sort_order.value)
    return filters, paging, sorting


@router.post(
    "",
    status_code=201,
    summary="Submit a request",
    description="Validates the payload, resolves and freezes the approval chain. "
                "With draft=true the request is stored without routing.",
    response_model=RequestSnapshot,
)
def submit_request(
    body: SubmitRequestIn,
    controller: WorkflowController = Depends(get_controller),
):
    if body.draft:
        record = controller.create_draft(
            kind=body.kind,
            requester_id=body.requester_id,
            payload=body.payload,
        )
    else:
        record = controller.submit(
            kind=body.kind,
            requester_id=body.requester_id,
            payload=body.payload,
        )
    return RequestSnapshot.from_record(record)


@router.get(
    "",
    summary="List my requests",
    description="Returns the requester's own requests, filtered and paginated, with status counts.",
    response_model=PaginatedResponse[RequestSnapshot],
)
def list_my_requests(
    requester_id: str = Query(..., min_length=1),
    q: RequestFiltersQuery = Depends(),
    projection: QueryProjection = Depends(get_projection),
):
    filters, paging, sorting = to_query(q)
    return to_page(projection.mine(requester_id, filters=filters, paging=paging, sorting=sorting))


@router.get(
    "/summary/reimbursements",
    summary="Reimbursement totals by category",
    response_model=list[CategorySummaryOut],
)
def reimbursement_summary(
    requester_id: str = Query(..., min_length=1),
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    projection: QueryProjection = Depends(get_projection),
):
    summaries = projection.reimbursement_summary(requester_id, year=year, month=month)
    return [CategorySummaryOut.from_summary(s) for s in summaries]


@router.get("/{request_id}", response_model=RequestSnapshot)
def get_request(
    request_id: str,
    controller: WorkflowController = Depends(get_controller),
):
    """Get a specific request."""
    return RequestSnapshot.from_record(controller.get(request_id))


@router.put("/{request_id}/draft", response_model=RequestSnapshot)
def update_draft(
    request_id: str,
    body: DraftUpdateIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.update_draft(request_id=request_id, actor_id=body.actor_id, payload=body.payload)
    return RequestSnapshot.from_record(record)


@router.post("/{request_id}/submit", response_model=RequestSnapshot)
def submit_draft(
    request_id: str,
    body: ActorIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.submit_draft(request_id=request_id, actor_id=body.actor_id)
    return RequestSnapshot.from_record(record)


@router.post("/{request_id}/cancel", response_model=RequestSnapshot)
def cancel_request(
    request_id: str,
    body: ActorIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.cancel(request_id=request_id, actor_id=body.actor_id)
    return RequestSnapshot.from_record(record)


@router.post("/{request_id}/resubmit", status_code=201, response_model=RequestSnapshot)
def resubmit_request(
    request_id: str,
    body: ResubmitIn,
    controller: WorkflowController = Depends(get_controller),
):
    """Create a new request from a rejected or cancelled one."""
    record = controller.resubmit(request_id=request_id, actor_id=body.actor_id, payload=body.payload)
    return RequestSnapshot.from_record(record)


@router.post("/{request_id}/payment", response_model=RequestSnapshot)
def mark_paid(
    request_id: str,
    body: MarkPaidIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.mark_paid(
        request_id=request_id,
        actor_id=body.actor_id,
        payment=PaymentInstruction(
            method=body.method,
            paid_amount=body.paid_amount,
            transaction_id=body.transaction_id,
        ),
    )
    return RequestSnapshot.from_record(record)
