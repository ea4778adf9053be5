from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from approval_engine.core.errors import (
    DenialReason,
    StaleOrInvalidTransition,
    Unauthorized,
    ValidationError,
)
from approval_engine.domain.approval.entities import (
    ApprovalStep,
    AuditAction,
    DecisionAction,
    PaymentDetails,
    PaymentMethod,
    RequestKind,
    RequestStatus,
)
from approval_engine.domain.approval.record import ApprovalRequest
from approval_engine.domain.roles import Role

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

CHAIN = (
    ApprovalStep(level="TeamLeader", required_roles=frozenset({Role.TEAM_LEADER})),
    ApprovalStep(level="TeamManager", required_roles=frozenset({Role.TEAM_MANAGER})),
    ApprovalStep(level="HR", required_roles=frozenset({Role.HR_MANAGER})),
)


def _at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _submitted(kind: RequestKind = RequestKind.PERMISSION) -> ApprovalRequest:
    record = ApprovalRequest.new_draft(kind=kind, requester_id="emp-1", payload={"amount": 100}, now=T0)
    record.submit(chain=CHAIN, now=_at(1))
    return record


def test_new_draft_is_unrouted() -> None:
    record = ApprovalRequest.new_draft(kind=RequestKind.PERMISSION, requester_id="emp-1", payload={}, now=T0)

    assert record.status == RequestStatus.DRAFT
    assert record.current_index == -1
    assert record.chain == ()
    assert record.current_level is None
    assert [e.action for e in record.audit_trail] == [AuditAction.CREATED]


def test_submit_moves_to_first_level() -> None:
    record = _submitted()

    assert record.status == RequestStatus.PENDING
    assert record.current_index == 0
    assert record.current_level == "TeamLeader"
    assert record.status_label == "Pending TeamLeader"
    assert record.submitted_at == _at(1)
    assert record.finalized_at is None


def test_double_submit_is_invalid() -> None:
    record = _submitted()
    with pytest.raises(StaleOrInvalidTransition):
        record.submit(chain=CHAIN, now=_at(2))
    assert record.chain == CHAIN


def test_empty_chain_is_auto_approved_explicitly() -> None:
    record = ApprovalRequest.new_draft(kind=RequestKind.REGULARIZATION, requester_id="vp-1", payload={}, now=T0)

    record.submit(chain=[], now=_at(1))

    assert record.status == RequestStatus.APPROVED
    assert record.finalized_at == _at(1)
    assert record.history == []
    assert record.audit_trail[-1].action == AuditAction.AUTO_APPROVED


def test_empty_chain_without_auto_approval_is_a_validation_error() -> None:
    record = ApprovalRequest.new_draft(kind=RequestKind.REGULARIZATION, requester_id="vp-1", payload={}, now=T0)

    with pytest.raises(ValidationError):
        record.submit(chain=[], now=_at(1), auto_approve_empty=False)
    assert record.status == RequestStatus.DRAFT


def test_approve_advances_then_finalizes() -> None:
    record = _submitted()

    record.approve(level="TeamLeader", actor_id="tl-1", actor_role=Role.TEAM_LEADER, now=_at(2))
    record.approve(level="TeamManager", actor_id="tm-1", actor_role=Role.TEAM_MANAGER, now=_at(3), comments=" ok ")
    assert record.current_index == 2

    record.approve(level="HR", actor_id="hr-1", actor_role=Role.HR_MANAGER, now=_at(4))

    assert record.status == RequestStatus.APPROVED
    assert record.finalized_at == _at(4)
    assert [d.level for d in record.history] == ["TeamLeader", "TeamManager", "HR"]
    assert record.history[1].comments == "ok"
    assert record.chain == CHAIN


def test_approve_at_wrong_level_leaves_record_unchanged() -> None:
    record = _submitted()
    before = record.clone()

    with pytest.raises(StaleOrInvalidTransition) as exc_info:
        record.approve(level="HR", actor_id="hr-1", actor_role=Role.HR_MANAGER, now=_at(2))

    assert exc_info.value.reason == DenialReason.WRONG_LEVEL
    assert record == before


def test_approve_at_passed_level_is_stale() -> None:
    record = _submitted()
    record.approve(level="TeamLeader", actor_id="tl-1", actor_role=Role.TEAM_LEADER, now=_at(2))

    with pytest.raises(StaleOrInvalidTransition) as exc_info:
        record.approve(level="TeamLeader", actor_id="tl-2", actor_role=Role.TEAM_LEADER, now=_at(3))

    assert exc_info.value.reason == DenialReason.STALE_LEVEL
    assert len(record.history) == 1


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_reject_requires_reason(reason) -> None:
    record = _submitted()
    with pytest.raises(ValidationError):
        record.reject(level="TeamLeader", actor_id="tl-1", actor_role=Role.TEAM_LEADER, reason=reason, now=_at(2))
    assert record.status == RequestStatus.PENDING
    assert record.history == []


def test_reject_is_absorbing() -> None:
    record = _submitted()
    record.approve(level="TeamLeader", actor_id="tl-1", actor_role=Role.TEAM_LEADER, now=_at(2))
    record.reject(
        level="TeamManager",
        actor_id="tm-1",
        actor_role=Role.TEAM_MANAGER,
        reason="insufficient coverage",
        now=_at(3),
    )

    assert record.status == RequestStatus.REJECTED
    assert record.rejection_reason == "insufficient coverage"
    assert record.history[-1].action == DecisionAction.REJECTED

    with pytest.raises(StaleOrInvalidTransition):
        record.approve(level="HR", actor_id="hr-1", actor_role=Role.HR_MANAGER, now=_at(4))
    with pytest.raises(StaleOrInvalidTransition):
        record.cancel(actor_id="emp-1", now=_at(4))
    assert len(record.history) == 2


def test_overlong_comments_are_rejected() -> None:
    record = _submitted()
    with pytest.raises(ValidationError):
        record.approve(
            level="TeamLeader",
            actor_id="tl-1",
            actor_role=Role.TEAM_LEADER,
            now=_at(2),
            comments="x" * 501,
        )
    assert record.history == []


def test_cancel_only_by_requester() -> None:
    record = _submitted()

    with pytest.raises(Unauthorized) as exc_info:
        record.cancel(actor_id="tl-1", now=_at(2))
    assert exc_info.value.reason == DenialReason.NOT_REQUESTER

    record.cancel(actor_id="emp-1", now=_at(3))
    assert record.status == RequestStatus.CANCELLED
    assert record.finalized_at == _at(3)


def test_update_payload_only_on_drafts() -> None:
    record = ApprovalRequest.new_draft(kind=RequestKind.PERMISSION, requester_id="emp-1", payload={"a": 1}, now=T0)
    record.update_payload(actor_id="emp-1", payload={"a": 2}, now=_at(1))
    assert record.payload == {"a": 2}

    record.submit(chain=CHAIN, now=_at(2))
    with pytest.raises(StaleOrInvalidTransition):
        record.update_payload(actor_id="emp-1", payload={"a": 3}, now=_at(3))
    assert record.payload == {"a": 2}


def test_timestamps_never_go_backwards() -> None:
    record = _submitted()
    record.approve(level="TeamLeader", actor_id="tl-1", actor_role=Role.TEAM_LEADER, now=_at(10))

    # Clock skew on another node
    record.approve(level="TeamManager", actor_id="tm-1", actor_role=Role.TEAM_MANAGER, now=_at(5))

    stamps = [d.timestamp for d in record.history]
    assert stamps == sorted(stamps)


def test_mark_paid_requires_approval_and_keeps_chain() -> None:
    record = _submitted(RequestKind.REIMBURSEMENT)
    payment = PaymentDetails(
        method=PaymentMethod.BANK_TRANSFER,
        paid_amount=100,
        processed_by="fin-1",
        paid_at=_at(9),
    )
    with pytest.raises(StaleOrInvalidTransition):
        record.mark_paid(payment=payment, now=_at(9))

    for i, (level, role) in enumerate(
        [("TeamLeader", Role.TEAM_LEADER), ("TeamManager", Role.TEAM_MANAGER), ("HR", Role.HR_MANAGER)]
    ):
        record.approve(level=level, actor_id=f"actor-{i}", actor_role=role, now=_at(2 + i))
    history_before = list(record.history)

    record.mark_paid(payment=payment, now=_at(9))

    assert record.paid is True
    assert record.status == RequestStatus.APPROVED
    assert record.status_label == "Paid"
    assert record.history == history_before
    assert record.chain == CHAIN
    with pytest.raises(StaleOrInvalidTransition):
        record.mark_paid(payment=payment, now=_at(10))


def test_reference_uses_kind_prefix() -> None:
    permission = ApprovalRequest.new_draft(kind=RequestKind.PERMISSION, requester_id="emp-1", payload={}, now=T0)
    reimbursement = _submitted(RequestKind.REIMBURSEMENT)

    assert permission.reference == "PR" + permission.id[-6:].upper()
    assert reimbursement.reference.startswith("RMB2403")
