"""
Query level counterpart of the row level security policies in sql/rls.sql.

Every repository query is narrowed with the clause returned by
``visibility_clause`` so that the same role rules hold on databases that do
not support RLS, like the sqlite database used in the tests.
"""

from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, and_, exists, false, or_, true

from nlcore_fhir.db.entities.care_relationship import CareRelationship
from nlcore_fhir.db.entities.organization import Organization
from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.db.entities.practitioner import Practitioner
from nlcore_fhir.models.auth import AccessContext, Action, UserRole

DIRECTORY_ENTITIES = (Practitioner, Organization)


def active_care_relationship(
    patient_column: Any, access: AccessContext
) -> ColumnElement[bool]:
    practitioner_id = access.user.practitioner_id
    if practitioner_id is None:
        return false()
    return exists().where(
        CareRelationship.patient_id == patient_column,
        CareRelationship.practitioner_id == practitioner_id,
        CareRelationship.tenant_id == access.tenant_id,
        CareRelationship.active.is_(True),
        or_(
            CareRelationship.end_date.is_(None),
            CareRelationship.end_date >= date.today(),
        ),
    )


def visibility_clause(
    entity: Any, access: AccessContext, action: Action = "read"
) -> ColumnElement[bool]:
    role = access.role
    if role == UserRole.SUPER_ADMIN:
        return true()

    in_tenant = entity.tenant_id == access.tenant_id
    if role == UserRole.TENANT_ADMIN:
        return in_tenant

    if entity in DIRECTORY_ENTITIES:
        return in_tenant if action == "read" else false()

    patient_column = entity.id if entity is Patient else entity.patient_id

    if role == UserRole.PRACTITIONER:
        return and_(in_tenant, active_care_relationship(patient_column, access))

    if role == UserRole.PATIENT:
        if action != "read" or access.user.patient_id is None:
            return false()
        return and_(in_tenant, patient_column == access.user.patient_id)

    # researcher and dev
    return in_tenant if action == "read" else false()
