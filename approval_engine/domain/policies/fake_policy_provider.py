from approval_engine.domain.approval.entities import RequestKind

from .policy import ChainPolicy, PolicyNotConfigured


class FakePolicyProvider:
    def __init__(self, policies: dict[RequestKind, ChainPolicy]):
        self._policies = policies

    def for_kind(self, *, kind: RequestKind) -> ChainPolicy:
        if kind not in self._policies:
            raise PolicyNotConfigured(kind)
        return self._policies[kind]
