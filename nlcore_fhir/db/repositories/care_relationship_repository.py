from uuid import UUID

from sqlalchemy import select

from nlcore_fhir.db.access import active_care_relationship
from nlcore_fhir.db.decorator import repository
from nlcore_fhir.db.entities.care_relationship import CareRelationship
from nlcore_fhir.db.repositories.repository_base import RepositoryBase
from nlcore_fhir.models.auth import AccessContext


@repository(CareRelationship)
class CareRelationshipRepository(RepositoryBase):
    def has_active_relationship(self, access: AccessContext, patient_id: UUID) -> bool:
        stmt = select(active_care_relationship(patient_id, access))
        return bool(self.db_session.session.execute(stmt).scalar())
