"""Workflow coordination: load -> gate -> transition -> persist -> notify.

This is the only place that wires the pieces together. It is responsible for:
- validating payloads and resolving the approval chain at submission
- consulting the authorization gate before every decision
- asking the record to transition (the record owns the state machine)
- writing back with optimistic concurrency, retrying a bounded number of times
- handing a notification event to the dispatcher once the write is durable
- emitting one trace per operation, timed with a span

The controller holds no business rules of its own. Every operation runs to
completion on the calling thread; a caller that times out must re-read the
request before retrying, since the transition may already have happened.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from approval_engine.core.errors import (
    ConcurrentModification,
    DenialReason,
    StaleOrInvalidTransition,
    Unauthorized,
    ValidationError,
    WorkflowError,
)
from approval_engine.domain.approval.approval_gate import ApprovalGate
from approval_engine.domain.approval.default_approval_gate import DefaultApprovalGate
from approval_engine.domain.approval.entities import (
    Actor,
    ApprovalStep,
    GateDecision,
    NotificationEvent,
    PaymentDetails,
    PaymentInstruction,
    RequestKind,
    RequestStatus,
)
from approval_engine.domain.approval.payloads import validate_payload
from approval_engine.domain.approval.record import ApprovalRequest
from approval_engine.domain.approval.repository import ApprovalRequestRepositoryProtocol
from approval_engine.domain.directory.role_provider import RoleProvider
from approval_engine.domain.policies import PolicyNotConfigured, PolicyProvider
from approval_engine.domain.roles import Role
from approval_engine.notifications.dispatcher import NotificationDispatcher
from approval_engine.notifications.sink import LoggingNotificationSink
from approval_engine.observability.tracing import log_event, new_trace_id, start_span

# Denials that mean "the request has moved on" rather than "you may not"
_STALE_REASONS = frozenset({DenialReason.NOT_PENDING, DenialReason.STALE_LEVEL})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowController:
    """Coordinates request submission, decisions and bookkeeping."""

    def __init__(
        self,
        *,
        repository: ApprovalRequestRepositoryProtocol,
        policy_provider: PolicyProvider,
        role_provider: RoleProvider,
        gate: ApprovalGate | None = None,
        notifier: NotificationDispatcher | None = None,
        auto_approve_empty_chain: bool = True,
        max_retries: int = 2,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repo = repository
        self._policies = policy_provider
        self._roles = role_provider
        self._gate = gate or DefaultApprovalGate()
        self._notifier = notifier or NotificationDispatcher(LoggingNotificationSink())
        self._auto_approve_empty_chain = auto_approve_empty_chain
        self._max_retries = max_retries
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def create_draft(
        self,
        *,
        kind: RequestKind | str,
        requester_id: str,
        payload: dict[str, Any],
        previous_request_id: str | None = None,
    ) -> ApprovalRequest:
        """Store a request in Draft without routing it."""
        span = start_span('create_draft')
        trace_id = span.trace_id
        kind = _parse_kind(kind)
        normalized = validate_payload(kind, payload)

        record = ApprovalRequest.new_draft(
            kind=kind,
            requester_id=requester_id,
            payload=normalized,
            now=self._clock(),
            previous_request_id=previous_request_id,
        )
        self._repo.add(record)

        span.finish()
        log_event('create_draft.done', trace_id=trace_id, span=span, request_id=record.id, kind=kind.value)
        return record

    def update_draft(self, *, request_id: str, actor_id: str, payload: dict[str, Any]) -> ApprovalRequest:
        trace_id = new_trace_id()

        def apply(record: ApprovalRequest) -> None:
            normalized = validate_payload(record.kind, payload)
            record.update_payload(actor_id=actor_id, payload=normalized, now=self._clock())

        return self._run('update_draft', request_id, trace_id, apply, notify=False)

    def submit_draft(self, *, request_id: str, actor_id: str) -> ApprovalRequest:
        """Resolve and freeze the chain of an existing draft."""
        trace_id = new_trace_id()

        def apply(record: ApprovalRequest) -> None:
            if actor_id != record.requester_id:
                raise Unauthorized(DenialReason.NOT_REQUESTER, 'Only the requester can submit a draft')
            if record.status != RequestStatus.DRAFT:
                raise StaleOrInvalidTransition(
                    f'Request {record.id} has already been submitted',
                    reason=DenialReason.NOT_PENDING,
                )
            chain = self._resolve(record.kind, record.requester_id, record.payload)
            record.submit(chain=chain, now=self._clock(), auto_approve_empty=self._auto_approve_empty_chain)

        return self._run('submit', request_id, trace_id, apply)

    def submit(
        self,
        *,
        kind: RequestKind | str,
        requester_id: str,
        payload: dict[str, Any],
        previous_request_id: str | None = None,
    ) -> ApprovalRequest:
        """Create and submit a request in one step.

        The chain is resolved and frozen before anything is persisted, so a
        validation failure leaves no trace in the store.
        """
        span = start_span('submit')
        trace_id = span.trace_id
        log_event('submit.start', trace_id=trace_id, requester_id=requester_id)

        try:
            kind = _parse_kind(kind)
            normalized = validate_payload(kind, payload)
            chain = self._resolve(kind, requester_id, normalized)

            now = self._clock()
            record = ApprovalRequest.new_draft(
                kind=kind,
                requester_id=requester_id,
                payload=normalized,
                now=now,
                previous_request_id=previous_request_id,
            )
            record.submit(chain=chain, now=now, auto_approve_empty=self._auto_approve_empty_chain)
        except WorkflowError as exc:
            log_event('submit.denied', trace_id=trace_id, error=type(exc).__name__, detail=str(exc))
            raise

        self._repo.add(record)

        span.finish(chain=[s.level for s in record.chain])
        log_event('submit.done', trace_id=trace_id, span=span, request_id=record.id, status=record.status.value)
        self._notify(record, trace_id)
        return record

    def resubmit(
        self,
        *,
        request_id: str,
        actor_id: str,
        payload: dict[str, Any] | None = None,
    ) -> ApprovalRequest:
        """Submit a fresh request that references a rejected or cancelled one.

        The prior record is never modified; the new one gets its own chain.
        """
        prior = self._repo.get(request_id)
        if prior.status not in (RequestStatus.REJECTED, RequestStatus.CANCELLED):
            raise StaleOrInvalidTransition(
                f'Only rejected or cancelled requests can be resubmitted (status {prior.status.value})',
                reason=DenialReason.NOT_PENDING,
            )
        if actor_id != prior.requester_id:
            raise Unauthorized(DenialReason.NOT_REQUESTER, 'Only the requester can resubmit a request')

        return self.submit(
            kind=prior.kind,
            requester_id=prior.requester_id,
            payload=payload if payload is not None else prior.payload,
            previous_request_id=prior.id,
        )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def approve(
        self,
        *,
        request_id: str,
        actor_id: str,
        level: str,
        comments: str | None = None,
    ) -> ApprovalRequest:
        trace_id = new_trace_id()
        actor = self._actor(actor_id)

        def apply(record: ApprovalRequest) -> None:
            self._authorize(actor, record, level)
            record.approve(
                level=level,
                actor_id=actor.id,
                actor_role=DefaultApprovalGate.acting_role(actor, record),
                comments=comments,
                now=self._clock(),
            )

        return self._run('approve', request_id, trace_id, apply)

    def reject(self, *, request_id: str, actor_id: str, level: str, reason: str) -> ApprovalRequest:
        if reason is None or not reason.strip():
            raise ValidationError('A rejection reason is required')

        trace_id = new_trace_id()
        actor = self._actor(actor_id)

        def apply(record: ApprovalRequest) -> None:
            self._authorize(actor, record, level)
            record.reject(
                level=level,
                actor_id=actor.id,
                actor_role=DefaultApprovalGate.acting_role(actor, record),
                reason=reason,
                now=self._clock(),
            )

        return self._run('reject', request_id, trace_id, apply)

    def cancel(self, *, request_id: str, actor_id: str) -> ApprovalRequest:
        trace_id = new_trace_id()

        def apply(record: ApprovalRequest) -> None:
            record.cancel(actor_id=actor_id, now=self._clock())

        return self._run('cancel', request_id, trace_id, apply)

    def mark_paid(
        self,
        *,
        request_id: str,
        actor_id: str,
        payment: PaymentInstruction | None = None,
    ) -> ApprovalRequest:
        """Record payout on an approved request. Not an approval step."""
        trace_id = new_trace_id()
        actor = self._actor(actor_id)
        instruction = payment or PaymentInstruction()

        def apply(record: ApprovalRequest) -> None:
            policy = self._policy_for(record.kind)
            if not policy.supports_payout:
                raise StaleOrInvalidTransition(f'{record.kind.value} requests have no payout step')
            if record.status != RequestStatus.APPROVED or record.paid:
                raise StaleOrInvalidTransition(
                    f'Only approved, unpaid requests can be marked as paid ({record.status_label})',
                    reason=DenialReason.NOT_PENDING,
                )
            if actor.id == record.requester_id:
                raise Unauthorized(DenialReason.SELF_APPROVAL, 'Requesters cannot pay out their own requests')
            if not actor.roles & policy.payout_roles:
                raise Unauthorized(DenialReason.PAYOUT_ROLE)

            requested = float(record.payload.get('amount') or 0)
            paid_amount = requested if instruction.paid_amount is None else float(instruction.paid_amount)
            if paid_amount > requested:
                raise ValidationError(f'Paid amount {paid_amount} exceeds requested amount {requested}')

            now = self._clock()
            record.mark_paid(
                payment=PaymentDetails(
                    method=instruction.method,
                    paid_amount=paid_amount,
                    processed_by=actor.id,
                    paid_at=now,
                    transaction_id=instruction.transaction_id,
                ),
                now=now,
            )

        return self._run('mark_paid', request_id, trace_id, apply)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> ApprovalRequest:
        return self._repo.get(request_id)

    def can_act(self, *, request_id: str, actor_id: str, level: str) -> GateDecision:
        record = self._repo.get(request_id)
        return self._gate.evaluate(actor=self._actor(actor_id), request=record, proposed_level=level)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run(
        self,
        op: str,
        request_id: str,
        trace_id: str,
        apply: Callable[[ApprovalRequest], None],
        *,
        notify: bool = True,
    ) -> ApprovalRequest:
        """Read, apply and conditionally write one record.

        A version conflict restarts from the read, at most ``max_retries``
        times; the re-read record is re-checked from scratch.
        """
        span = start_span(op, trace_id=trace_id)
        log_event(f'{op}.start', trace_id=trace_id, request_id=request_id)

        for attempt in range(self._max_retries + 1):
            record = self._repo.get(request_id)
            expected_version = record.version
            try:
                apply(record)
            except WorkflowError as exc:
                log_event(
                    f'{op}.denied',
                    trace_id=trace_id,
                    request_id=request_id,
                    error=type(exc).__name__,
                    reason=getattr(getattr(exc, 'reason', None), 'value', None),
                    detail=str(exc),
                )
                raise

            try:
                saved = self._repo.save(record, expected_version=expected_version)
            except ConcurrentModification:
                log_event(f'{op}.conflict', trace_id=trace_id, request_id=request_id, attempt=attempt)
                if attempt >= self._max_retries:
                    raise
                continue

            span.finish(attempts=attempt + 1)
            log_event(
                f'{op}.done',
                trace_id=trace_id,
                span=span,
                request_id=request_id,
                status=saved.status.value,
                current_level=saved.current_level,
            )
            if notify:
                self._notify(saved, trace_id)
            return saved

        raise ConcurrentModification(request_id)

    def _authorize(self, actor: Actor, record: ApprovalRequest, level: str) -> None:
        decision = self._gate.evaluate(actor=actor, request=record, proposed_level=level)
        if decision.allowed:
            return
        if decision.reason in _STALE_REASONS:
            raise StaleOrInvalidTransition(decision.detail or 'Request has moved on', reason=decision.reason)
        raise Unauthorized(decision.reason, decision.detail)

    def _actor(self, actor_id: str) -> Actor:
        return Actor(id=actor_id, roles=self._roles.roles_for(actor_id))

    def _policy_for(self, kind: RequestKind):
        try:
            return self._policies.for_kind(kind=kind)
        except PolicyNotConfigured as exc:
            raise ValidationError(str(exc)) from exc

    def _resolve(self, kind: RequestKind, requester_id: str, payload: dict[str, Any]) -> list[ApprovalStep]:
        policy = self._policy_for(kind)
        return policy.resolve(self._roles.roles_for(requester_id), payload)

    def _notify(self, record: ApprovalRequest, trace_id: str) -> None:
        notify_roles: frozenset[Role] = frozenset()
        if record.is_pending:
            notify_roles = record.current_step.required_roles
        elif record.status == RequestStatus.APPROVED and not record.paid:
            policy = self._policy_for(record.kind)
            if policy.supports_payout:
                notify_roles = policy.payout_roles

        self._notifier.dispatch(
            NotificationEvent(
                request_id=record.id,
                kind=record.kind,
                status=record.status,
                notify_roles=notify_roles,
                level=record.current_level,
                requester_id=record.requester_id,
                trace_id=trace_id,
            )
        )


def _parse_kind(kind: RequestKind | str) -> RequestKind:
    try:
        return RequestKind(kind)
    except ValueError as exc:
        raise ValidationError(f'Unsupported request kind: {kind}') from exc
