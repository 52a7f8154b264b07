import logging
from typing import Any, Generic, Sequence, Tuple, Type, TypeVar

from sqlalchemy import ColumnElement, exists, func, select
from sqlalchemy.exc import DatabaseError

from nlcore_fhir.db.access import visibility_clause
from nlcore_fhir.db.decorator import repository
from nlcore_fhir.db.entities.allergy_intolerance import AllergyIntolerance
from nlcore_fhir.db.entities.condition import Condition
from nlcore_fhir.db.entities.encounter import Encounter
from nlcore_fhir.db.entities.medication_request import MedicationRequest
from nlcore_fhir.db.entities.observation import Observation
from nlcore_fhir.db.entities.organization import Organization
from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.db.entities.practitioner import Practitioner
from nlcore_fhir.db.repositories.repository_base import RepositoryBase
from nlcore_fhir.models.auth import Action

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Any)


class FhirResourceRepository(RepositoryBase, Generic[E]):
    """
    Storage of one FHIR resource type. All queries are limited to the tenant
    and visibility rules of the access context of the session.
    """

    entity: Type[E]

    def _conditions(self, action: Action = "read") -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [self.entity.active.is_(True)]
        access = self.db_session.access
        if access is not None:
            conditions.append(self.entity.tenant_id == access.tenant_id)
            conditions.append(visibility_clause(self.entity, access, action))
        return conditions

    def search(
        self,
        filters: Sequence[ColumnElement[bool]],
        count: int,
        offset: int = 0,
        sort_column: Any = None,
        descending: bool = True,
    ) -> Tuple[int, Sequence[E]]:
        conditions = self._conditions() + list(filters)

        total_stmt = select(func.count()).select_from(self.entity).where(*conditions)
        total = self.db_session.session.execute(total_stmt).scalar_one()

        if sort_column is None:
            sort_column = self.entity.last_updated
        order = sort_column.desc() if descending else sort_column.asc()
        stmt = (
            select(self.entity)
            .where(*conditions)
            .order_by(order, self.entity.resource_id)
            .limit(count)
            .offset(offset)
        )
        rows = self.db_session.session.execute(stmt).scalars().all()
        return total, rows

    def get(self, resource_id: str, action: Action = "read") -> E | None:
        stmt = select(self.entity).where(
            self.entity.resource_id == resource_id, *self._conditions(action)
        )
        return self.db_session.session.execute(stmt).scalars().first()

    def get_in_tenant(self, tenant_id: str, resource_id: str) -> E | None:
        """
        Looks up an active resource in the tenant without applying the role
        visibility rules, used to resolve references.
        """
        stmt = select(self.entity).where(
            self.entity.tenant_id == tenant_id,
            self.entity.resource_id == resource_id,
            self.entity.active.is_(True),
        )
        return self.db_session.session.execute(stmt).scalars().first()

    def resource_exists(self, tenant_id: str, resource_id: str) -> bool:
        """
        Checks the tenant for the resource id, including deactivated rows,
        since the id stays taken after a delete.
        """
        stmt = (
            exists(1)
            .where(
                self.entity.tenant_id == tenant_id,
                self.entity.resource_id == resource_id,
            )
            .select()
        )
        result = self.db_session.session.execute(stmt).scalar()
        if not isinstance(result, bool):
            raise TypeError("Incorrect return from sql statement")

        return result

    def create(self, data: E) -> E:
        try:
            self.db_session.add(data)
            self.db_session.commit()
            return data
        except DatabaseError as e:
            self.db_session.rollback()
            logging.error(
                f"Failed to add {self.entity.__tablename__} {data.resource_id}: {e}"
            )
            raise

    def update(self, data: E) -> E:
        try:
            self.db_session.add(data)
            self.db_session.commit()
            self.db_session.session.refresh(data)
            return data
        except DatabaseError as e:
            self.db_session.rollback()
            logging.error(
                f"Failed to update {self.entity.__tablename__} {data.resource_id}: {e}"
            )
            raise


@repository(Patient)
class PatientRepository(FhirResourceRepository[Patient]):
    entity = Patient


@repository(Practitioner)
class PractitionerRepository(FhirResourceRepository[Practitioner]):
    entity = Practitioner


@repository(Organization)
class OrganizationRepository(FhirResourceRepository[Organization]):
    entity = Organization


@repository(Observation)
class ObservationRepository(FhirResourceRepository[Observation]):
    entity = Observation


@repository(Condition)
class ConditionRepository(FhirResourceRepository[Condition]):
    entity = Condition


@repository(AllergyIntolerance)
class AllergyIntoleranceRepository(FhirResourceRepository[AllergyIntolerance]):
    entity = AllergyIntolerance


@repository(MedicationRequest)
class MedicationRequestRepository(FhirResourceRepository[MedicationRequest]):
    entity = MedicationRequest


@repository(Encounter)
class EncounterRepository(FhirResourceRepository[Encounter]):
    entity = Encounter
