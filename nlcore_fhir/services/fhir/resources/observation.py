from typing import Any, Dict, List

from fhir.resources.R4B.observation import Observation as ObservationModel
from sqlalchemy import ColumnElement

from nlcore_fhir.db.entities.observation import Observation
from nlcore_fhir.models.fhir.types import (
    NL_CORE_PROFILES,
    OBSERVATION_CATEGORY_SYSTEM,
    DutchCodeSystems,
    VitalSignsCodes,
)
from nlcore_fhir.services.fhir.resources.base import (
    PatientLinkedMapper,
    SearchParameter,
    first_category_code,
    first_coding,
    to_datetime,
)
from nlcore_fhir.services.fhir.search_params import SearchParams, date_clause

BLOOD_PRESSURE_CODES = (
    VitalSignsCodes.BLOOD_PRESSURE.value,
    VitalSignsCodes.SYSTOLIC.value,
    VitalSignsCodes.DIASTOLIC.value,
)


class ObservationMapper(PatientLinkedMapper):
    resource_type = "Observation"
    entity = Observation
    model = ObservationModel
    description = "Vital signs and laboratory results (nl-core BloodPressure, BodyWeight, BodyHeight, LaboratoryTestResult)"
    search_parameters = [
        SearchParameter("patient", "reference", "The patient the observation is about"),
        SearchParameter("subject", "reference", "The subject of the observation"),
        SearchParameter("code", "token", "LOINC code, as system|code or code"),
        SearchParameter("category", "token", "vital-signs | laboratory | ..."),
        SearchParameter("status", "token", "registered | preliminary | final | amended"),
        SearchParameter("date", "date", "Clinically relevant time, prefixes allowed"),
    ]
    sort_columns = {"date": "effective_datetime"}
    example = {
        "resourceType": "Observation",
        "status": "final",
        "category": [
            {
                "coding": [
                    {"system": OBSERVATION_CATEGORY_SYSTEM, "code": "vital-signs"}
                ]
            }
        ],
        "code": {
            "coding": [
                {
                    "system": DutchCodeSystems.LOINC.value,
                    "code": VitalSignsCodes.BODY_WEIGHT.value,
                    "display": "Body weight",
                }
            ]
        },
        "subject": {"reference": "Patient/example"},
        "effectiveDateTime": "2024-03-01T09:30:00+01:00",
        "valueQuantity": {
            "value": 72.5,
            "unit": "kg",
            "system": DutchCodeSystems.UCUM.value,
            "code": "kg",
        },
    }

    def profile(self, resource: Dict[str, Any]) -> str:
        code = first_coding(resource.get("code")).get("code")
        if code in BLOOD_PRESSURE_CODES:
            return NL_CORE_PROFILES["BloodPressure"]
        if code == VitalSignsCodes.BODY_WEIGHT.value:
            return NL_CORE_PROFILES["BodyWeight"]
        if code == VitalSignsCodes.BODY_HEIGHT.value:
            return NL_CORE_PROFILES["BodyHeight"]
        return NL_CORE_PROFILES["Observation"]

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        coding = first_coding(resource.get("code"))
        effective = resource.get("effectiveDateTime") or (
            resource.get("effectivePeriod") or {}
        ).get("start")
        quantity = resource.get("valueQuantity") or {}
        return {
            "code_system": coding.get("system"),
            "code_code": coding.get("code"),
            "code_display": coding.get("display"),
            "category": first_category_code(resource),
            "status": resource.get("status"),
            "effective_datetime": to_datetime(effective),
            "value_quantity_value": quantity.get("value"),
            "value_quantity_unit": quantity.get("unit"),
        }

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.patient_filters(params)
        filters += self.token_filter(params, "code", "code_system", "code_code")
        filters += self.token_filter(params, "category", None, "category")
        filters += self.token_filter(params, "status", None, "status")
        filters += self.clauses(
            params, "date", lambda v: date_clause(Observation.effective_datetime, v)
        )
        return filters
