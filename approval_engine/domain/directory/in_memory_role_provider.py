import threading
from typing import Iterable, Mapping

from approval_engine.domain.roles import Role, parse_roles


class InMemoryRoleProvider:
    def __init__(self, directory: Mapping[str, Iterable[Role | str]] | None = None):
        self._directory = {
            actor_id: parse_roles(roles)
            for actor_id, roles in (directory or {}).items()
        }
        self._lock = threading.Lock()

    def roles_for(self, actor_id: str) -> frozenset[Role]:
        with self._lock:
            return self._directory.get(actor_id, frozenset())

    def assign(self, actor_id: str, *roles: Role | str) -> None:
        assigned = parse_roles(roles)
        with self._lock:
            self._directory[actor_id] = assigned
