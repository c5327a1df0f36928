from pydantic import BaseModel
from typing import Optional
from enum import Enum

class MemberRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    FINANCE = "finance"
    IT = "it"

class MemberType(str, Enum):
    MEMBER = "member"
    CONSIGNMENT = "consignment"

# Rôles qui voient tout l'inventaire et gèrent l'archive
INVENTORY_ADMIN_ROLES = {MemberRole.ADMIN, MemberRole.IT}
# Rôles autorisés sur la page financière
FINANCE_ROLES = {MemberRole.ADMIN, MemberRole.FINANCE, MemberRole.IT}

class Member(BaseModel):
    id: str
    auth_user_id: Optional[str] = None
    email: str = ""
    full_name: str
    preferred_name: Optional[str] = None
    role: MemberRole = MemberRole.MEMBER
    member_type: MemberType = MemberType.MEMBER
    status: str = "active"

    @property
    def is_admin(self) -> bool:
        return self.role in INVENTORY_ADMIN_ROLES
