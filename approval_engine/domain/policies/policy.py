"""Approval chain policies.

Core principles:
- Each request kind owns an ordered table of step rules
- A rule contributes its step when its condition holds and the requester
  does not hold one of the rule's skip roles
- Resolution is pure: the same kind, roles and payload always give the same chain
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from approval_engine.domain.approval.entities import ApprovalStep, RequestKind
from approval_engine.domain.roles import Role


class Level:
    """Chain position labels. Distinct levels may share roles."""

    TEAM_LEADER = "TeamLeader"
    TEAM_MANAGER = "TeamManager"
    MANAGER = "Manager"
    HR = "HR"
    FINANCE = "Finance"
    VP_ADMIN = "VPAdmin"


@dataclass(frozen=True)
class ResolutionContext:
    kind: RequestKind
    requester_roles: frozenset[Role]
    payload: Mapping[str, Any]


Condition = Callable[[ResolutionContext], bool]


def always(ctx: ResolutionContext) -> bool:
    return True


def amount_above(threshold: float) -> Condition:
    def _check(ctx: ResolutionContext) -> bool:
        amount = ctx.payload.get("amount")
        if amount is None:
            return False
        return float(amount) > threshold
    return _check


def category_in(categories: Iterable[str]) -> Condition:
    wanted = frozenset(categories)

    def _check(ctx: ResolutionContext) -> bool:
        return ctx.payload.get("category") in wanted
    return _check


def request_type_in(types: Iterable[str]) -> Condition:
    wanted = frozenset(types)

    def _check(ctx: ResolutionContext) -> bool:
        return ctx.payload.get("request_type") in wanted
    return _check


def requester_in(roles: Iterable[Role]) -> Condition:
    wanted = frozenset(roles)

    def _check(ctx: ResolutionContext) -> bool:
        return bool(ctx.requester_roles & wanted)
    return _check


def any_of(*conditions: Condition) -> Condition:
    def _check(ctx: ResolutionContext) -> bool:
        return any(c(ctx) for c in conditions)
    return _check


def not_(condition: Condition) -> Condition:
    def _check(ctx: ResolutionContext) -> bool:
        return not condition(ctx)
    return _check


@dataclass(frozen=True)
class StepRule:
    level: str
    required_roles: frozenset[Role]
    when: Condition = always
    skip_for_roles: frozenset[Role] = frozenset()

    def applies(self, ctx: ResolutionContext) -> bool:
        if ctx.requester_roles & self.skip_for_roles:
            return False
        return self.when(ctx)

    def to_step(self) -> ApprovalStep:
        return ApprovalStep(level=self.level, required_roles=self.required_roles)


@dataclass(frozen=True)
class ChainPolicy:
    kind: RequestKind
    rules: tuple[StepRule, ...]
    supports_payout: bool = False
    payout_roles: frozenset[Role] = field(default_factory=frozenset)

    def resolve(self, requester_roles: Iterable[Role], payload: Mapping[str, Any]) -> list[ApprovalStep]:
        ctx = ResolutionContext(
            kind=self.kind,
            requester_roles=frozenset(requester_roles),
            payload=payload,
        )
        return [rule.to_step() for rule in self.rules if rule.applies(ctx)]


class PolicyNotConfigured(LookupError):
    def __init__(self, kind: RequestKind):
        self.kind = kind
        super().__init__(f"No approval policy configured for '{kind.value}' requests")
