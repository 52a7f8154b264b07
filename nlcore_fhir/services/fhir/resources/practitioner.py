from typing import Any, Dict, List

from fhir.resources.R4B.practitioner import Practitioner as PractitionerModel
from sqlalchemy import ColumnElement, false, or_

from nlcore_fhir.db.entities.practitioner import Practitioner
from nlcore_fhir.models.fhir.types import DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import (
    ResourceMapper,
    SearchParameter,
    first_coding,
)
from nlcore_fhir.services.fhir.resources.patient import official_name
from nlcore_fhir.services.fhir.search_params import (
    SearchParams,
    parse_token,
    string_clause,
)


def identifier_value(resource: Dict[str, Any], system: str) -> str | None:
    for identifier in resource.get("identifier") or []:
        if identifier.get("system") == system:
            return identifier.get("value")  # type: ignore[no-any-return]
    return None


class PractitionerMapper(ResourceMapper):
    resource_type = "Practitioner"
    entity = Practitioner
    model = PractitionerModel
    description = "Health professionals (nl-core-HealthProfessional-Practitioner)"
    search_parameters = [
        SearchParameter("identifier", "token", "AGB or BIG code, as system|value"),
        SearchParameter("name", "string", "Family or given name (partial match)"),
        SearchParameter("family", "string", "Family name (partial match)"),
    ]
    sort_columns = {"family": "family_name"}
    example = {
        "resourceType": "Practitioner",
        "identifier": [{"system": DutchCodeSystems.AGB.value, "value": "01234567"}],
        "name": [{"use": "official", "family": "de Vries", "given": ["Anna"]}],
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        name = official_name(resource)
        qualifications = resource.get("qualification") or [{}]
        return {
            "agb_code": identifier_value(resource, DutchCodeSystems.AGB.value),
            "big_code": identifier_value(resource, DutchCodeSystems.BIG.value),
            "family_name": name.get("family"),
            "given_name": " ".join(name.get("given") or []) or None,
            "specialty_code": first_coding(qualifications[0].get("code")).get("code"),
        }

    def identifier_clause(self, value: str) -> ColumnElement[bool]:
        system, code = parse_token(value)
        if system is None:
            return or_(Practitioner.agb_code == code, Practitioner.big_code == code)
        if system == DutchCodeSystems.AGB.value:
            return Practitioner.agb_code == code
        if system == DutchCodeSystems.BIG.value:
            return Practitioner.big_code == code
        return false()

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.clauses(params, "identifier", self.identifier_clause)
        filters += self.clauses(
            params,
            "name",
            lambda v: or_(
                string_clause(Practitioner.family_name, v),
                string_clause(Practitioner.given_name, v),
            ),
        )
        filters += self.clauses(
            params, "family", lambda v: string_clause(Practitioner.family_name, v)
        )
        return filters
