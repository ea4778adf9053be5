from typing import Protocol

from .entities import Actor, GateDecision
from .record import ApprovalRequest


class ApprovalGate(Protocol):
    def evaluate(
        self,
        *,
        actor: Actor,
        request: ApprovalRequest,
        proposed_level: str,
    ) -> GateDecision:
        ...

    def can_act(
        self,
        *,
        actor: Actor,
        request: ApprovalRequest,
        proposed_level: str,
    ) -> bool:
        ...
