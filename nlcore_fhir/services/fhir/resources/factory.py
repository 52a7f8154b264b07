from typing import Dict

from nlcore_fhir.services.fhir.resources.allergy_intolerance import (
    AllergyIntoleranceMapper,
)
from nlcore_fhir.services.fhir.resources.base import ResourceMapper
from nlcore_fhir.services.fhir.resources.condition import ConditionMapper
from nlcore_fhir.services.fhir.resources.encounter import EncounterMapper
from nlcore_fhir.services.fhir.resources.medication_request import (
    MedicationRequestMapper,
)
from nlcore_fhir.services.fhir.resources.observation import ObservationMapper
from nlcore_fhir.services.fhir.resources.organization import OrganizationMapper
from nlcore_fhir.services.fhir.resources.patient import PatientMapper
from nlcore_fhir.services.fhir.resources.practitioner import PractitionerMapper


def create_mappers(bsn_hash_salt: str = "") -> Dict[str, ResourceMapper]:
    """
    Returns a mapper for every supported resource type, keyed by the FHIR
    resource type name.
    """
    mappers = [
        PatientMapper(bsn_hash_salt),
        PractitionerMapper(),
        OrganizationMapper(),
        ObservationMapper(),
        ConditionMapper(),
        AllergyIntoleranceMapper(),
        MedicationRequestMapper(),
        EncounterMapper(),
    ]
    return {mapper.resource_type: mapper for mapper in mappers}
