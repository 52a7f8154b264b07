from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

Action = Literal["read", "write", "delete"]


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    PRACTITIONER = "practitioner"
    PATIENT = "patient"
    RESEARCHER = "researcher"
    DEV = "dev"


ADMIN_ROLES = {UserRole.SUPER_ADMIN, UserRole.TENANT_ADMIN}


class GatewayUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None
    role: UserRole
    tenant_id: str
    # Row ids of the linked patients / practitioners entries, from user_mappings
    patient_id: UUID | None = None
    practitioner_id: UUID | None = None
    scopes: list[str] = Field(default_factory=list)


class AccessContext(BaseModel):
    """
    The identity a request runs under. Passed down to the database layer so
    visibility rules and row level security settings can be applied.
    """

    user: GatewayUser
    tenant_id: str

    @property
    def role(self) -> UserRole:
        return self.user.role
