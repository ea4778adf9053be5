from typing import Protocol

from approval_engine.domain.roles import Role


class RoleProvider(Protocol):
    def roles_for(self, actor_id: str) -> frozenset[Role]:
        """Current roles of the actor; unknown actors hold no roles."""
        ...
