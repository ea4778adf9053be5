from fastapi import APIRouter, Depends, Query

from approval_engine.api.core.container import Container, get_container, get_controller, get_projection
from approval_engine.api.routes.requests import to_page, to_query
from approval_engine.api.schemas import (
    ApproveIn,
    GateDecisionOut,
    PaginatedResponse,
    RejectIn,
    RequestFiltersQuery,
    RequestSnapshot,
)
from approval_engine.domain.projection import QueryProjection
from approval_engine.runtime.controller import WorkflowController

router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get(
    "",
    summary="List requests awaiting the actor",
    description="Returns pending requests whose current level the actor's roles can act on. "
                "The actor's own requests are never listed.",
    response_model=PaginatedResponse[RequestSnapshot],
)
def list_pending(
    actor_id: str = Query(..., min_length=1),
    q: RequestFiltersQuery = Depends(),
    projection: QueryProjection = Depends(get_projection),
    container: Container = Depends(get_container),
):
    """
    List pending approvals for an actor.

    Query Parameters:
    - actor_id: The approver
    - level: Only requests awaiting this level
    - year: Only requests submitted in this year
    - kind: Filter by request kind
    - limit: Page size (default: 50)
    - offset: Pagination offset (default: 0)
    """
    filters, paging, sorting = to_query(q)
    roles = container.role_provider.roles_for(actor_id)
    page = projection.pending_for(
        roles,
        filters=filters,
        paging=paging,
        sorting=sorting,
        actor_id=actor_id,
    )
    return to_page(page)


@router.get("/{request_id}/can-act", response_model=GateDecisionOut)
def can_act(
    request_id: str,
    actor_id: str = Query(..., min_length=1),
    level: str = Query(..., min_length=1),
    controller: WorkflowController = Depends(get_controller),
):
    """Ask the gate whether the actor may decide at ``level`` right now."""
    decision = controller.can_act(request_id=request_id, actor_id=actor_id, level=level)
    return GateDecisionOut(
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
        detail=decision.detail,
    )


@router.post("/{request_id}/approve", response_model=RequestSnapshot)
def approve_request(
    request_id: str,
    body: ApproveIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.approve(
        request_id=request_id,
        actor_id=body.actor_id,
        level=body.level,
        comments=body.comments,
    )
    return RequestSnapshot.from_record(record)


@router.post("/{request_id}/reject", response_model=RequestSnapshot)
def reject_request(
    request_id: str,
    body: RejectIn,
    controller: WorkflowController = Depends(get_controller),
):
    record = controller.reject(
        request_id=request_id,
        actor_id=body.actor_id,
        level=body.level,
        reason=body.reason,
    )
    return RequestSnapshot.from_record(record)
