import logging
from typing import Any, Dict, Mapping

from sqlalchemy.exc import DatabaseError

from nlcore_fhir.db.db import Database
from nlcore_fhir.db.entities.audit_log import AuditLog
from nlcore_fhir.db.repositories.audit_log_repository import AuditLogRepository
from nlcore_fhir.models.auth import AccessContext

logger = logging.getLogger(__name__)


def outcome_for_status(status: int | None) -> str:
    if status is None or status < 400:
        return "success"
    if status in (401, 403):
        return "denied"
    if status >= 500:
        return "error"
    return "failure"


def client_ip(headers: Mapping[str, str]) -> str | None:
    forwarded = headers.get("x-forwarded-for")
    if not forwarded:
        return None
    return forwarded.split(",")[0].strip() or None


class AuditService:
    """
    Writes an audit trail entry for every handled FHIR request. Losing an
    audit entry never fails the request itself.
    """

    def __init__(self, database: Database) -> None:
        self.__database = database

    def log(
        self,
        action: str,
        access: AccessContext | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        method: str | None = None,
        url: str | None = None,
        headers: Mapping[str, str] | None = None,
        status: int | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        headers = headers or {}
        entry = AuditLog(
            tenant_id=access.tenant_id if access else None,
            gateway_user_id=access.user.id if access else None,
            user_role=access.role.value if access else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            request_method=method,
            request_url=url,
            ip_address=client_ip(headers),
            user_agent=headers.get("user-agent"),
            response_status=status,
            outcome=outcome_for_status(status),
            details=details or {},
        )

        try:
            with self.__database.get_db_session(access) as session:
                session.get_repository(AuditLogRepository).create(entry)
        except DatabaseError as e:
            logger.error(f"Failed to write audit log entry {action}: {e}")
