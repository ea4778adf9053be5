"""Role vocabulary shared by the chain policies and the authorization gate."""
from enum import Enum


class Role(str, Enum):
    EMPLOYEE = "Employee"
    TEAM_LEADER = "TeamLeader"
    TEAM_MANAGER = "TeamManager"
    HR_MANAGER = "HRManager"
    HR_BP = "HRBP"
    HR_EXECUTIVE = "HRExecutive"
    FINANCE = "Finance"
    VICE_PRESIDENT = "VicePresident"
    ADMIN = "Admin"


HR_ROLES = frozenset({Role.HR_MANAGER, Role.HR_BP, Role.HR_EXECUTIVE})
EXECUTIVE_ROLES = frozenset({Role.VICE_PRESIDENT, Role.ADMIN})


def parse_roles(values) -> frozenset[Role]:
    """Coerce role names (or Role members) into a frozenset of Role.

    Raises:
        ValueError: If a name is not a known role.
    """
    return frozenset(Role(v) for v in values)
