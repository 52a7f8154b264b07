from typing import Any, Dict, List

from fhir.resources.R4B.encounter import Encounter as EncounterModel
from sqlalchemy import ColumnElement

from nlcore_fhir.db.entities.encounter import Encounter
from nlcore_fhir.services.fhir.resources.base import (
    PatientLinkedMapper,
    SearchParameter,
    to_datetime,
)
from nlcore_fhir.services.fhir.search_params import SearchParams, date_clause


class EncounterMapper(PatientLinkedMapper):
    resource_type = "Encounter"
    entity = Encounter
    model = EncounterModel
    description = "Contacts between patient and healthcare provider (nl-core-Encounter)"
    search_parameters = [
        SearchParameter("patient", "reference", "The patient present at the encounter"),
        SearchParameter("subject", "reference", "The subject of the encounter"),
        SearchParameter("status", "token", "planned | arrived | in-progress | finished | cancelled"),
        SearchParameter("class", "token", "AMB | IMP | EMER | HH | ..."),
        SearchParameter("date", "date", "Start of the encounter period, prefixes allowed"),
    ]
    sort_columns = {"date": "period_start"}
    example = {
        "resourceType": "Encounter",
        "status": "finished",
        "class": {
            "system": "http://terminology.hl7.org/CodeSystem/v3-ActCode",
            "code": "AMB",
            "display": "ambulatory",
        },
        "subject": {"reference": "Patient/example"},
        "period": {"start": "2024-03-01T09:00:00+01:00", "end": "2024-03-01T09:20:00+01:00"},
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        period = resource.get("period") or {}
        return {
            "status": resource.get("status"),
            "class_code": (resource.get("class") or {}).get("code"),
            "period_start": to_datetime(period.get("start")),
            "period_end": to_datetime(period.get("end")),
        }

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.patient_filters(params)
        filters += self.token_filter(params, "status", None, "status")
        filters += self.token_filter(params, "class", None, "class_code")
        filters += self.clauses(
            params, "date", lambda v: date_clause(Encounter.period_start, v)
        )
        return filters
