from __future__ import annotations

import pytest

from approval_engine.config import Settings
from approval_engine.domain.approval.entities import RequestKind
from approval_engine.domain.policies import (
    ChainPolicy,
    DefaultPolicyProvider,
    FakePolicyProvider,
    Level,
    PolicyNotConfigured,
    StepRule,
)
from approval_engine.domain.roles import Role

from tests.fixtures.workflow import permission_payload, regularization_payload, reimbursement_payload


def _levels(provider: DefaultPolicyProvider, kind: RequestKind, roles, payload) -> list[str]:
    policy = provider.for_kind(kind=kind)
    return [step.level for step in policy.resolve(roles, payload)]


@pytest.fixture
def provider() -> DefaultPolicyProvider:
    return DefaultPolicyProvider(Settings())


def test_permission_for_employee_passes_every_level(provider) -> None:
    levels = _levels(provider, RequestKind.PERMISSION, {Role.EMPLOYEE}, permission_payload())
    assert levels == [Level.TEAM_LEADER, Level.TEAM_MANAGER, Level.HR]


def test_permission_for_team_leader_starts_at_team_manager(provider) -> None:
    levels = _levels(provider, RequestKind.PERMISSION, {Role.TEAM_LEADER}, permission_payload())
    assert levels == [Level.TEAM_MANAGER, Level.HR]


def test_lead_level_roles_are_configurable() -> None:
    provider = DefaultPolicyProvider(Settings(lead_level_roles=["TeamLeader", "TeamManager"]))
    levels = _levels(provider, RequestKind.PERMISSION, {Role.TEAM_MANAGER}, permission_payload())
    assert levels == [Level.TEAM_MANAGER, Level.HR]


def test_regularization_default_chain(provider) -> None:
    levels = _levels(provider, RequestKind.REGULARIZATION, {Role.EMPLOYEE}, regularization_payload())
    assert levels == [Level.TEAM_MANAGER, Level.HR]


@pytest.mark.parametrize("request_type", ["System Error", "Work From Home"])
def test_regularization_hr_only_types_skip_line_manager(provider, request_type) -> None:
    payload = regularization_payload(request_type=request_type)
    levels = _levels(provider, RequestKind.REGULARIZATION, {Role.EMPLOYEE}, payload)
    assert levels == [Level.HR]


def test_regularization_by_team_manager_goes_to_hr(provider) -> None:
    levels = _levels(provider, RequestKind.REGULARIZATION, {Role.TEAM_MANAGER}, regularization_payload())
    assert levels == [Level.HR]


def test_regularization_by_hr_is_escalated_to_executives(provider) -> None:
    levels = _levels(provider, RequestKind.REGULARIZATION, {Role.HR_MANAGER}, regularization_payload())
    assert levels == [Level.VP_ADMIN]


def test_regularization_by_executive_has_no_applicable_level(provider) -> None:
    levels = _levels(provider, RequestKind.REGULARIZATION, {Role.VICE_PRESIDENT}, regularization_payload())
    assert levels == []


@pytest.mark.parametrize(
    "amount, category, expected",
    [
        (1200, "Travel", [Level.MANAGER]),
        (5000, "Travel", [Level.MANAGER]),
        (5001, "Travel", [Level.MANAGER, Level.HR]),
        (300, "Medical", [Level.MANAGER, Level.HR]),
        (800, "Training", [Level.MANAGER, Level.HR]),
        (30000, "Travel", [Level.MANAGER, Level.HR, Level.FINANCE]),
    ],
)
def test_reimbursement_steps_are_additive(provider, amount, category, expected) -> None:
    payload = reimbursement_payload(amount=amount, category=category)
    levels = _levels(provider, RequestKind.REIMBURSEMENT, {Role.EMPLOYEE}, payload)
    assert levels == expected


def test_reimbursement_thresholds_come_from_settings() -> None:
    provider = DefaultPolicyProvider(
        Settings(reimbursement_hr_threshold=100, reimbursement_finance_threshold=1000)
    )
    payload = reimbursement_payload(amount=1200)
    levels = _levels(provider, RequestKind.REIMBURSEMENT, {Role.EMPLOYEE}, payload)
    assert levels == [Level.MANAGER, Level.HR, Level.FINANCE]


def test_reimbursement_manager_step_accepts_either_line_role(provider) -> None:
    policy = provider.for_kind(kind=RequestKind.REIMBURSEMENT)
    first = policy.resolve({Role.EMPLOYEE}, reimbursement_payload())[0]
    assert first.required_roles == frozenset({Role.TEAM_LEADER, Role.TEAM_MANAGER})
    assert policy.supports_payout is True
    assert policy.payout_roles == frozenset({Role.FINANCE, Role.ADMIN})


def test_resolution_is_deterministic(provider) -> None:
    payload = reimbursement_payload(amount=30000)
    first = provider.for_kind(kind=RequestKind.REIMBURSEMENT).resolve({Role.EMPLOYEE}, payload)
    second = provider.for_kind(kind=RequestKind.REIMBURSEMENT).resolve({Role.EMPLOYEE}, payload)
    assert first == second


def test_unconfigured_kind_raises() -> None:
    provider = FakePolicyProvider({
        RequestKind.PERMISSION: ChainPolicy(
            kind=RequestKind.PERMISSION,
            rules=(StepRule(level=Level.HR, required_roles=frozenset({Role.HR_MANAGER})),),
        )
    })
    with pytest.raises(PolicyNotConfigured):
        provider.for_kind(kind=RequestKind.REIMBURSEMENT)
