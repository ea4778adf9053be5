from approval_engine.core.errors import DenialReason
from approval_engine.domain.roles import Role

from .entities import Actor, GateDecision
from .record import ApprovalRequest


class DefaultApprovalGate:
    """
    Decides whether an actor may approve or reject a request right now.

    Checks run in a fixed order so every denial carries exactly one reason:
    1. the request must be pending (drafts and terminal requests are closed)
    2. requesters never act on their own requests
    3. the proposed level must be the current level
    4. the actor must hold one of the current step's roles
    """

    def evaluate(
        self,
        *,
        actor: Actor,
        request: ApprovalRequest,
        proposed_level: str,
    ) -> GateDecision:
        if not request.is_pending:
            return GateDecision(
                allowed=False,
                reason=DenialReason.NOT_PENDING,
                detail=f"Request is {request.status.value}",
            )

        if actor.id == request.requester_id:
            return GateDecision(
                allowed=False,
                reason=DenialReason.SELF_APPROVAL,
                detail="Requesters cannot act on their own requests",
            )

        step = request.current_step
        if proposed_level != step.level:
            reason = (
                DenialReason.STALE_LEVEL
                if proposed_level in request.passed_levels()
                else DenialReason.WRONG_LEVEL
            )
            return GateDecision(
                allowed=False,
                reason=reason,
                detail=f"Request is awaiting {step.level}, not {proposed_level}",
            )

        if not actor.roles & step.required_roles:
            return GateDecision(
                allowed=False,
                reason=DenialReason.WRONG_ROLE,
                detail=f"{step.level} requires one of {sorted(r.value for r in step.required_roles)}",
            )

        return GateDecision(allowed=True)

    def can_act(
        self,
        *,
        actor: Actor,
        request: ApprovalRequest,
        proposed_level: str,
    ) -> bool:
        return self.evaluate(actor=actor, request=request, proposed_level=proposed_level).allowed

    @staticmethod
    def acting_role(actor: Actor, request: ApprovalRequest) -> Role:
        """The role the actor acts in at the current step, as recorded in history."""
        matching = actor.roles & request.current_step.required_roles
        return sorted(matching, key=lambda r: r.value)[0]
