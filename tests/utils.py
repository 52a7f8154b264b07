from datetime import date, timedelta
from typing import Any, Dict

from nlcore_fhir.db.db import Database
from nlcore_fhir.db.entities.care_relationship import CareRelationship
from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.db.entities.practitioner import Practitioner
from nlcore_fhir.db.entities.tenant import Tenant
from nlcore_fhir.db.entities.user_mapping import UserMapping
from nlcore_fhir.models.auth import AccessContext, GatewayUser, UserRole
from nlcore_fhir.services.authorization import scopes_for_role

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


def make_access(
    role: UserRole,
    tenant_id: str = TENANT_A,
    user_id: str = "user-1",
    **links: Any,
) -> AccessContext:
    user = GatewayUser(
        id=user_id,
        role=role,
        tenant_id=tenant_id,
        scopes=scopes_for_role(role),
        **links,
    )
    return AccessContext(user=user, tenant_id=tenant_id)


def insert_tenant(db: Database, tenant_id: str) -> None:
    with db.get_db_session() as session:
        session.add(Tenant(id=tenant_id, name=tenant_id.title(), slug=tenant_id))
        session.commit()


def patient_resource(resource_id: str, family: str = "Jansen", bsn: str = "999911120") -> Dict[str, Any]:
    return {
        "resourceType": "Patient",
        "id": resource_id,
        "identifier": [{"system": "http://fhir.nl/fhir/NamingSystem/bsn", "value": bsn}],
        "name": [{"use": "official", "family": family, "given": ["Jan"]}],
        "gender": "male",
        "birthDate": "1980-05-12",
    }


def practitioner_resource(resource_id: str) -> Dict[str, Any]:
    return {
        "resourceType": "Practitioner",
        "id": resource_id,
        "identifier": [{"system": "http://fhir.nl/fhir/NamingSystem/big", "value": "12345678901"}],
        "name": [{"family": "de Vries", "given": ["Anna"]}],
    }


def observation_resource(
    resource_id: str,
    patient_id: str,
    code: str = "29463-7",
    effective: str = "2024-03-01T09:30:00+00:00",
) -> Dict[str, Any]:
    return {
        "resourceType": "Observation",
        "id": resource_id,
        "status": "final",
        "category": [
            {
                "coding": [
                    {
                        "system": "http://terminology.hl7.org/CodeSystem/observation-category",
                        "code": "vital-signs",
                    }
                ]
            }
        ],
        "code": {"coding": [{"system": "http://loinc.org", "code": code}]},
        "subject": {"reference": f"Patient/{patient_id}"},
        "effectiveDateTime": effective,
        "valueQuantity": {"value": 72.5, "unit": "kg"},
    }


def get_patient_row(db: Database, resource_id: str, tenant_id: str = TENANT_A) -> Patient:
    with db.get_db_session() as session:
        return session.session.query(Patient).filter_by(
            tenant_id=tenant_id, resource_id=resource_id
        ).one()


def get_practitioner_row(db: Database, resource_id: str, tenant_id: str = TENANT_A) -> Practitioner:
    with db.get_db_session() as session:
        return session.session.query(Practitioner).filter_by(
            tenant_id=tenant_id, resource_id=resource_id
        ).one()


def insert_care_relationship(
    db: Database,
    patient: Patient,
    practitioner: Practitioner,
    tenant_id: str = TENANT_A,
    ended: bool = False,
) -> None:
    with db.get_db_session() as session:
        session.add(
            CareRelationship(
                tenant_id=tenant_id,
                patient_id=patient.id,
                practitioner_id=practitioner.id,
                end_date=date.today() - timedelta(days=1) if ended else None,
            )
        )
        session.commit()


def insert_user_mapping(
    db: Database,
    gateway_user_id: str,
    role: UserRole,
    tenant_id: str = TENANT_A,
    patient: Patient | None = None,
    practitioner: Practitioner | None = None,
) -> None:
    with db.get_db_session() as session:
        session.add(
            UserMapping(
                tenant_id=tenant_id,
                gateway_user_id=gateway_user_id,
                role=role.value,
                patient_id=patient.id if patient else None,
                practitioner_id=practitioner.id if practitioner else None,
            )
        )
        session.commit()


def gateway_user(role: UserRole, user_id: str = "gw-user-1", tenant_id: str = TENANT_A) -> Dict[str, Any]:
    """Body of the gateway user info response."""
    return {
        "id": user_id,
        "email": f"{user_id}@example.org",
        "name": "Test User",
        "role": role.value,
        "tenantId": tenant_id,
    }
