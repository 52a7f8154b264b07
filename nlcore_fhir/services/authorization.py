import re
from typing import List, Mapping

from nlcore_fhir.models.auth import ADMIN_ROLES, Action, GatewayUser, UserRole
from nlcore_fhir.models.fhir.types import PatientLinkedResources


SCOPE_PATTERN = re.compile(r"^(system|user|patient)/(\*|[A-Za-z]+)\.(\*|read|write)$")

# Resource types holding clinical data for a patient, including the patient
CLINICAL_RESOURCES = ["Patient"] + [r.value for r in PatientLinkedResources]


def scopes_for_role(role: UserRole) -> List[str]:
    """
    SMART on FHIR scopes granted to a role.
    """
    if role in ADMIN_ROLES:
        return ["system/*.*"]
    if role == UserRole.PRACTITIONER:
        return [
            f"user/{resource}.{action}"
            for resource in CLINICAL_RESOURCES
            for action in ("read", "write")
        ]
    if role == UserRole.PATIENT:
        return [f"patient/{resource}.read" for resource in CLINICAL_RESOURCES]
    if role == UserRole.RESEARCHER:
        return ["user/Observation.read", "user/Condition.read"]
    return ["system/*.read"]


def has_scope(user: GatewayUser, resource_type: str, action: Action) -> bool:
    """
    Checks whether one of the scopes of the user permits the action on the
    resource type. Deleting requires a scope with a wildcard action.
    """
    if user.role in ADMIN_ROLES:
        return True

    for scope in user.scopes:
        match = SCOPE_PATTERN.match(scope)
        if match is None:
            continue
        context, resource, scope_action = match.groups()

        if resource not in ("*", resource_type):
            continue
        if action == "delete":
            if scope_action != "*":
                continue
        elif scope_action not in ("*", action):
            continue
        if context == "patient" and user.role != UserRole.PATIENT:
            continue
        return True

    return False


def extract_tenant_id(headers: Mapping[str, str], user: GatewayUser) -> str:
    """
    Super admins may target any tenant with the X-Tenant-ID header, other
    users are bound to their own tenant.
    """
    if user.role == UserRole.SUPER_ADMIN:
        tenant_id = headers.get("x-tenant-id")
        if tenant_id:
            return tenant_id
    return user.tenant_id
