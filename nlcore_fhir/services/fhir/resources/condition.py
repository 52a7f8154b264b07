from typing import Any, Dict, List

from fhir.resources.R4B.condition import Condition as ConditionModel
from sqlalchemy import ColumnElement

from nlcore_fhir.db.entities.condition import Condition
from nlcore_fhir.models.fhir.types import DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import (
    PatientLinkedMapper,
    SearchParameter,
    first_category_code,
    first_coding,
    to_date,
    to_datetime,
)
from nlcore_fhir.services.fhir.search_params import SearchParams, date_clause


class ConditionMapper(PatientLinkedMapper):
    resource_type = "Condition"
    entity = Condition
    model = ConditionModel
    description = "Problems and diagnoses (nl-core-Problem)"
    search_parameters = [
        SearchParameter("patient", "reference", "The patient with the condition"),
        SearchParameter("subject", "reference", "The subject of the condition"),
        SearchParameter("code", "token", "SNOMED CT code, as system|code or code"),
        SearchParameter("clinical-status", "token", "active | recurrence | relapse | inactive | remission | resolved"),
        SearchParameter("verification-status", "token", "unconfirmed | provisional | differential | confirmed | refuted"),
        SearchParameter("category", "token", "problem-list-item | encounter-diagnosis"),
        SearchParameter("onset-date", "date", "Date of onset, prefixes allowed"),
    ]
    sort_columns = {"onset-date": "onset_datetime"}
    example = {
        "resourceType": "Condition",
        "clinicalStatus": {
            "coding": [
                {
                    "system": "http://terminology.hl7.org/CodeSystem/condition-clinical",
                    "code": "active",
                }
            ]
        },
        "code": {
            "coding": [
                {
                    "system": DutchCodeSystems.SNOMED_CT.value,
                    "code": "44054006",
                    "display": "Diabetes mellitus type 2",
                }
            ]
        },
        "subject": {"reference": "Patient/example"},
        "onsetDateTime": "2019-06-01",
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        coding = first_coding(resource.get("code"))
        onset = resource.get("onsetDateTime") or (resource.get("onsetPeriod") or {}).get(
            "start"
        )
        return {
            "code_system": coding.get("system"),
            "code_code": coding.get("code"),
            "clinical_status": first_coding(resource.get("clinicalStatus")).get("code"),
            "verification_status": first_coding(
                resource.get("verificationStatus")
            ).get("code"),
            "category": first_category_code(resource),
            "onset_datetime": to_datetime(onset),
            "recorded_date": to_date(resource.get("recordedDate")),
        }

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.patient_filters(params)
        filters += self.token_filter(params, "code", "code_system", "code_code")
        filters += self.token_filter(params, "clinical-status", None, "clinical_status")
        filters += self.token_filter(
            params, "verification-status", None, "verification_status"
        )
        filters += self.token_filter(params, "category", None, "category")
        filters += self.clauses(
            params, "onset-date", lambda v: date_clause(Condition.onset_datetime, v)
        )
        return filters
