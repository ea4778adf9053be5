import json
from pathlib import Path

from approval_engine.core.errors import DirectoryUnavailable
from approval_engine.domain.roles import Role, parse_roles


class FilesystemRoleProvider:
    """
    RoleProvider backed by a JSON file.

    Expected layout:
        {
          "<actor id>": ["TeamLeader"],
          "<actor id>": ["HRManager", "Admin"]
        }

    The file is re-read on every lookup so role changes apply immediately.
    It is validated once at construction so a broken directory fails at startup.

    Raises:
        DirectoryUnavailable: If the file is missing, is not a JSON object,
            or names an unknown role.
    """

    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._load()

    def roles_for(self, actor_id: str) -> frozenset[Role]:
        return self._load().get(actor_id, frozenset())

    def _load(self) -> dict[str, frozenset[Role]]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise DirectoryUnavailable(f"Role directory {self._path} is unreadable: {exc}") from exc

        if not isinstance(raw, dict):
            raise DirectoryUnavailable(f"Role directory {self._path} must map actor ids to role lists")

        directory: dict[str, frozenset[Role]] = {}
        for actor_id, roles in raw.items():
            try:
                directory[actor_id] = parse_roles(roles)
            except (TypeError, ValueError) as exc:
                raise DirectoryUnavailable(
                    f"Role directory {self._path} has invalid roles for '{actor_id}': {exc}"
                ) from exc
        return directory
