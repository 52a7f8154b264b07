import logging

from sqlalchemy.exc import DatabaseError

from nlcore_fhir.db.decorator import repository
from nlcore_fhir.db.entities.audit_log import AuditLog
from nlcore_fhir.db.repositories.repository_base import RepositoryBase

logger = logging.getLogger(__name__)


@repository(AuditLog)
class AuditLogRepository(RepositoryBase):
    def create(self, entry: AuditLog) -> AuditLog:
        try:
            self.db_session.add(entry)
            self.db_session.commit()
            return entry
        except DatabaseError as e:
            self.db_session.rollback()
            logging.error(f"Failed to add audit log entry {entry.action}: {e}")
            raise
