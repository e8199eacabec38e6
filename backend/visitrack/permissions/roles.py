# Overview: The closed set of user roles.

from enum import Enum


class Role(str, Enum):
    """
    User roles, most privileged first.

    ADMIN ⊇ MANAGER ⊇ SALES in terms of what each can see and change, but
    the containment is expressed by the decision table in definitions.py,
    not by any inheritance between roles.
    """
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SALES = "SALES"

    @property
    def description(self) -> str:
        return ROLE_DESCRIPTIONS[self]


ROLE_DESCRIPTIONS = {
    Role.ADMIN: "管理员",
    Role.MANAGER: "经理",
    Role.SALES: "销售",
}
