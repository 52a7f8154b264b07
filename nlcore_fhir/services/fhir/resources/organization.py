from typing import Any, Dict, List

from fhir.resources.R4B.organization import Organization as OrganizationModel
from sqlalchemy import ColumnElement, false, or_

from nlcore_fhir.db.entities.organization import Organization
from nlcore_fhir.models.fhir.types import DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import (
    ResourceMapper,
    SearchParameter,
    first_coding,
)
from nlcore_fhir.services.fhir.resources.practitioner import identifier_value
from nlcore_fhir.services.fhir.search_params import (
    SearchParams,
    parse_token,
    string_clause,
)


class OrganizationMapper(ResourceMapper):
    resource_type = "Organization"
    entity = Organization
    model = OrganizationModel
    description = "Healthcare providers (nl-core-HealthcareProvider-Organization)"
    search_parameters = [
        SearchParameter("identifier", "token", "URA or AGB code, as system|value"),
        SearchParameter("name", "string", "Name of the organization (partial match)"),
    ]
    sort_columns = {"name": "name"}
    example = {
        "resourceType": "Organization",
        "identifier": [{"system": DutchCodeSystems.URA.value, "value": "12345678"}],
        "name": "Huisartsenpraktijk Centrum",
    }

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        types = resource.get("type") or [{}]
        return {
            "ura_code": identifier_value(resource, DutchCodeSystems.URA.value),
            "agb_code": identifier_value(resource, DutchCodeSystems.AGB.value),
            "name": resource.get("name"),
            "type_code": first_coding(types[0]).get("code"),
        }

    def identifier_clause(self, value: str) -> ColumnElement[bool]:
        system, code = parse_token(value)
        if system is None:
            return or_(Organization.ura_code == code, Organization.agb_code == code)
        if system == DutchCodeSystems.URA.value:
            return Organization.ura_code == code
        if system == DutchCodeSystems.AGB.value:
            return Organization.agb_code == code
        return false()

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.clauses(params, "identifier", self.identifier_clause)
        filters += self.clauses(
            params, "name", lambda v: string_clause(Organization.name, v)
        )
        return filters
