from typing import Any, Dict, List

from fhir.resources.R4B.allergyintolerance import (
    AllergyIntolerance as AllergyIntoleranceModel,
)
from sqlalchemy import ColumnElement

from nlcore_fhir.db.entities.allergy_intolerance import AllergyIntolerance
from nlcore_fhir.models.fhir.types import DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import (
    PatientLinkedMapper,
    SearchParameter,
    first_coding,
)
from nlcore_fhir.services.fhir.search_params import SearchParams


class AllergyIntoleranceMapper(PatientLinkedMapper):
    resource_type = "AllergyIntolerance"
    entity = AllergyIntolerance
    model = AllergyIntoleranceModel
    patient_element = "patient"
    description = "Allergies and intolerances (nl-core-AllergyIntolerance)"
    search_parameters = [
        SearchParameter("patient", "reference", "Who the sensitivity is for"),
        SearchParameter("code", "token", "Code of the substance, as system|code or code"),
        SearchParameter("clinical-status", "token", "active | inactive | resolved"),
        SearchParameter("verification-status", "token", "unconfirmed | confirmed | refuted | entered-in-error"),
        SearchParameter("type", "token", "allergy | intolerance"),
        SearchParameter("criticality", "token", "low | high | unable-to-assess"),
    ]
    example = {
        "resourceType": "AllergyIntolerance",
        "clinicalStatus": {
            "coding": [
                {
                    "system": "http://terminology.hl7.org/CodeSystem/allergyintolerance-clinical",
                    "code": "active",
                }
            ]
        },
        "type": "allergy",
        "criticality": "high",
        "code": {
            "coding": [
                {
                    "system": DutchCodeSystems.SNOMED_CT.value,
                    "code": "91936005",
                    "display": "Allergy to penicillin",
                }
            ]
        },
        "patient": {"reference": "Patient/example"},
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        coding = first_coding(resource.get("code"))
        return {
            "code_system": coding.get("system"),
            "code_code": coding.get("code"),
            "clinical_status": first_coding(resource.get("clinicalStatus")).get("code"),
            "verification_status": first_coding(
                resource.get("verificationStatus")
            ).get("code"),
            "type": resource.get("type"),
            "criticality": resource.get("criticality"),
        }

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.patient_filters(params, ("patient",))
        filters += self.token_filter(params, "code", "code_system", "code_code")
        filters += self.token_filter(params, "clinical-status", None, "clinical_status")
        filters += self.token_filter(
            params, "verification-status", None, "verification_status"
        )
        filters += self.token_filter(params, "type", None, "type")
        filters += self.token_filter(params, "criticality", None, "criticality")
        return filters
