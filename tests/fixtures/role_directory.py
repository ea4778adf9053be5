from approval_engine.domain.directory import InMemoryRoleProvider
from approval_engine.domain.roles import Role

EMPLOYEE = "emp-1"
OTHER_EMPLOYEE = "emp-2"
TEAM_LEADER = "tl-1"
OTHER_TEAM_LEADER = "tl-2"
TEAM_MANAGER = "tm-1"
OTHER_TEAM_MANAGER = "tm-2"
HR_MANAGER = "hr-1"
HR_BP = "hrbp-1"
FINANCE = "fin-1"
VICE_PRESIDENT = "vp-1"
ADMIN = "admin-1"


def build_role_provider() -> InMemoryRoleProvider:
    return InMemoryRoleProvider({
        EMPLOYEE: [Role.EMPLOYEE],
        OTHER_EMPLOYEE: [Role.EMPLOYEE],
        TEAM_LEADER: [Role.TEAM_LEADER],
        OTHER_TEAM_LEADER: [Role.TEAM_LEADER],
        TEAM_MANAGER: [Role.TEAM_MANAGER],
        OTHER_TEAM_MANAGER: [Role.TEAM_MANAGER],
        HR_MANAGER: [Role.HR_MANAGER],
        HR_BP: [Role.HR_BP],
        FINANCE: [Role.FINANCE],
        VICE_PRESIDENT: [Role.VICE_PRESIDENT],
        ADMIN: [Role.ADMIN],
    })
