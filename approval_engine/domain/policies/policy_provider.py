from typing import Protocol

from approval_engine.domain.approval.entities import RequestKind
from .policy import ChainPolicy


class PolicyProvider(Protocol):
    def for_kind(self, *, kind: RequestKind) -> ChainPolicy:
        ...
