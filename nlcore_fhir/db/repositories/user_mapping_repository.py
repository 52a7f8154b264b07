from sqlalchemy import select

from nlcore_fhir.db.decorator import repository
from nlcore_fhir.db.entities.user_mapping import UserMapping
from nlcore_fhir.db.repositories.repository_base import RepositoryBase


@repository(UserMapping)
class UserMappingRepository(RepositoryBase):
    def get(self, tenant_id: str, gateway_user_id: str) -> UserMapping | None:
        stmt = select(UserMapping).filter_by(
            tenant_id=tenant_id, gateway_user_id=gateway_user_id
        )
        return self.db_session.session.execute(stmt).scalars().first()
