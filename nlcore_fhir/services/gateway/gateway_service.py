import logging
from typing import Any, Dict, Mapping

from requests.exceptions import ConnectionError

from nlcore_fhir.db.db import Database
from nlcore_fhir.db.repositories.user_mapping_repository import UserMappingRepository
from nlcore_fhir.models.auth import AccessContext, GatewayUser, UserRole
from nlcore_fhir.services.authorization import scopes_for_role
from nlcore_fhir.services.gateway.api_service import HttpService

logger = logging.getLogger(__name__)

# Incoming header (lower case) to the name it is forwarded under
FORWARDED_HEADERS = {
    "cookie": "Cookie",
    "x-api-key": "X-Api-Key",
    "authorization": "Authorization",
    "x-tenant-id": "X-Tenant-ID",
}

CREDENTIAL_HEADERS = ("cookie", "x-api-key", "authorization")

ROLE_ALIASES = {
    "super_admin": UserRole.SUPER_ADMIN,
    "superadmin": UserRole.SUPER_ADMIN,
    "tenant_admin": UserRole.TENANT_ADMIN,
    "tenantadmin": UserRole.TENANT_ADMIN,
    "admin": UserRole.TENANT_ADMIN,
    "practitioner": UserRole.PRACTITIONER,
    "doctor": UserRole.PRACTITIONER,
    "nurse": UserRole.PRACTITIONER,
    "patient": UserRole.PATIENT,
    "researcher": UserRole.RESEARCHER,
    "dev": UserRole.DEV,
    "developer": UserRole.DEV,
}


def map_role(role: Any) -> UserRole:
    """
    Maps the role name used by the gateway onto a role. Unknown roles get
    patient, which sees nothing until a user mapping links a patient record.
    """
    if not isinstance(role, str):
        return UserRole.PATIENT
    return ROLE_ALIASES.get(role.strip().lower(), UserRole.PATIENT)


class GatewayService:
    def __init__(
        self, http_service: HttpService, user_info_path: str, database: Database
    ) -> None:
        self.__http_service = http_service
        self.__user_info_path = user_info_path
        self.__database = database

    def validate(self, headers: Mapping[str, str]) -> GatewayUser | None:
        """
        Validates the credentials of a request with the gateway. Returns None
        when the request is not authenticated.
        """
        incoming = {key.lower(): value for key, value in headers.items()}
        if not any(incoming.get(h) for h in CREDENTIAL_HEADERS):
            return None

        forwarded = {
            name: incoming[key]
            for key, name in FORWARDED_HEADERS.items()
            if incoming.get(key)
        }

        try:
            response = self.__http_service.do_request(
                "GET", self.__user_info_path, headers=forwarded
            )
        except ConnectionError as e:
            logger.error(f"Gateway is not reachable: {e}")
            return None

        if not 200 <= response.status_code < 300:
            logger.warning(f"Gateway rejected credentials with status {response.status_code}")
            return None

        try:
            data: Dict[str, Any] = response.json()
        except ValueError:
            logger.error("Gateway returned an invalid json response")
            return None

        user_id = data.get("id")
        tenant_id = data.get("tenantId") or incoming.get("x-tenant-id")
        if not user_id or not tenant_id:
            logger.error("Invalid gateway response, missing id or tenantId")
            return None

        role = map_role(data.get("role"))
        user = GatewayUser(
            id=str(user_id),
            email=data.get("email"),
            name=data.get("name"),
            role=role,
            tenant_id=str(tenant_id),
            scopes=scopes_for_role(role),
        )
        return self.__with_user_mapping(user)

    def __with_user_mapping(self, user: GatewayUser) -> GatewayUser:
        access = AccessContext(user=user, tenant_id=user.tenant_id)
        with self.__database.get_db_session(access) as session:
            mapping = session.get_repository(UserMappingRepository).get(
                user.tenant_id, user.id
            )

        if mapping is None:
            logger.debug(f"No user mapping found for gateway user {user.id}")
            return user

        if mapping.role != user.role.value:
            logger.warning(
                f"User mapping of gateway user {user.id} is for role {mapping.role}, "
                f"not {user.role.value}. Ignoring its links"
            )
            return user

        return user.model_copy(
            update={
                "patient_id": mapping.patient_id,
                "practitioner_id": mapping.practitioner_id,
            }
        )
