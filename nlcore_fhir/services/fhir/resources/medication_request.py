from typing import Any, Dict, List

from fhir.resources.R4B.medicationrequest import (
    MedicationRequest as MedicationRequestModel,
)
from sqlalchemy import ColumnElement

from nlcore_fhir.db.entities.medication_request import MedicationRequest
from nlcore_fhir.services.fhir.resources.base import (
    PatientLinkedMapper,
    SearchParameter,
    first_coding,
    to_datetime,
)
from nlcore_fhir.services.fhir.search_params import SearchParams, date_clause


class MedicationRequestMapper(PatientLinkedMapper):
    resource_type = "MedicationRequest"
    entity = MedicationRequest
    model = MedicationRequestModel
    description = "Medication agreements (nl-core-MedicationAgreement)"
    search_parameters = [
        SearchParameter("patient", "reference", "The patient the prescription is for"),
        SearchParameter("subject", "reference", "The subject of the prescription"),
        SearchParameter("status", "token", "active | on-hold | cancelled | completed | stopped | draft"),
        SearchParameter("intent", "token", "proposal | plan | order | ..."),
        SearchParameter("medication", "token", "Medication code, as system|code or code"),
        SearchParameter("authoredon", "date", "When the prescription was written"),
    ]
    sort_columns = {"authoredon": "authored_on"}
    example = {
        "resourceType": "MedicationRequest",
        "status": "active",
        "intent": "order",
        "medicationCodeableConcept": {
            "coding": [
                {
                    "system": "urn:oid:2.16.840.1.113883.2.4.4.7",
                    "code": "2194",
                    "display": "METFORMINE TABLET 500MG",
                }
            ]
        },
        "subject": {"reference": "Patient/example"},
        "authoredOn": "2024-02-10",
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        coding = first_coding(resource.get("medicationCodeableConcept"))
        return {
            "medication_code_system": coding.get("system"),
            "medication_code_code": coding.get("code"),
            "status": resource.get("status"),
            "intent": resource.get("intent"),
            "authored_on": to_datetime(resource.get("authoredOn")),
        }

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.patient_filters(params)
        filters += self.token_filter(params, "status", None, "status")
        filters += self.token_filter(params, "intent", None, "intent")
        filters += self.token_filter(
            params, "medication", "medication_code_system", "medication_code_code"
        )
        filters += self.clauses(
            params,
            "authoredon",
            lambda v: date_clause(MedicationRequest.authored_on, v),
        )
        return filters
