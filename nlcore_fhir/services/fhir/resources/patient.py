import hashlib
from typing import Any, Dict, List

from fhir.resources.R4B.patient import Patient as PatientModel
from sqlalchemy import ColumnElement, false, or_

from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.models.fhir.types import DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import (
    ResourceMapper,
    SearchParameter,
    to_date,
)
from nlcore_fhir.services.fhir.search_params import (
    SearchParams,
    date_clause,
    parse_token,
    string_clause,
)


def hash_bsn(bsn: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}{bsn}".encode("utf-8")).hexdigest()


def official_name(resource: Dict[str, Any]) -> Dict[str, Any]:
    names = resource.get("name") or []
    for name in names:
        if name.get("use") == "official":
            return name  # type: ignore[no-any-return]
    return names[0] if names else {}


class PatientMapper(ResourceMapper):
    resource_type = "Patient"
    entity = Patient
    model = PatientModel
    description = "Patient demographics following the nl-core-Patient profile"
    search_parameters = [
        SearchParameter("identifier", "token", "BSN, as system|value"),
        SearchParameter("family", "string", "Family name (partial match)"),
        SearchParameter("given", "string", "Given name (partial match)"),
        SearchParameter("name", "string", "Family or given name (partial match)"),
        SearchParameter("birthdate", "date", "Date of birth"),
        SearchParameter("gender", "token", "male | female | other | unknown"),
        SearchParameter("active", "token", "Whether the patient record is in use"),
    ]
    sort_columns = {"birthdate": "birth_date", "family": "family_name"}
    example = {
        "resourceType": "Patient",
        "identifier": [{"system": DutchCodeSystems.BSN.value, "value": "999911120"}],
        "name": [{"use": "official", "family": "Jansen", "given": ["Jan"]}],
        "gender": "male",
        "birthDate": "1980-05-12",
    }

    def __init__(self, bsn_hash_salt: str = "") -> None:
        self.bsn_hash_salt = bsn_hash_salt

    def bsn(self, resource: Dict[str, Any]) -> str | None:
        for identifier in resource.get("identifier") or []:
            if identifier.get("system") == DutchCodeSystems.BSN.value:
                return identifier.get("value")  # type: ignore[no-any-return]
        return None

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        name = official_name(resource)
        bsn = self.bsn(resource)
        return {
            "bsn_hash": hash_bsn(bsn, self.bsn_hash_salt) if bsn else None,
            "family_name": name.get("family"),
            "given_name": " ".join(name.get("given") or []) or None,
            "birth_date": to_date(resource.get("birthDate")),
            "gender": resource.get("gender"),
            "deceased": bool(
                resource.get("deceasedBoolean") or resource.get("deceasedDateTime")
            ),
            "fhir_active": resource.get("active", True),
        }

    def identifier_clause(self, value: str) -> ColumnElement[bool]:
        system, code = parse_token(value)
        if code is None or system not in (None, DutchCodeSystems.BSN.value):
            return false()
        return Patient.bsn_hash == hash_bsn(code, self.bsn_hash_salt)

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.clauses(params, "identifier", self.identifier_clause)
        filters += self.clauses(
            params, "family", lambda v: string_clause(Patient.family_name, v)
        )
        filters += self.clauses(
            params, "given", lambda v: string_clause(Patient.given_name, v)
        )
        filters += self.clauses(
            params,
            "name",
            lambda v: or_(
                string_clause(Patient.family_name, v),
                string_clause(Patient.given_name, v),
            ),
        )
        filters += self.clauses(
            params, "birthdate", lambda v: date_clause(Patient.birth_date, v, True)
        )
        filters += self.token_filter(params, "gender", None, "gender")
        filters += self.clauses(
            params, "active", lambda v: Patient.fhir_active.is_(v.lower() == "true")
        )
        return filters
