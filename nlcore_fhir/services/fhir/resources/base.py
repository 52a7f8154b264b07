from datetime import date, datetime
from typing import Any, Callable, Dict, List, NamedTuple, Type
from uuid import UUID

from fhir.resources.R4B.domainresource import DomainResource
from pydantic import ValidationError
from sqlalchemy import ColumnElement, or_, select

from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.exceptions import InvalidRequestException
from nlcore_fhir.models.fhir.types import NL_CORE_PROFILES
from nlcore_fhir.services.fhir.response import format_instant
from nlcore_fhir.services.fhir.search_params import (
    SearchParams,
    date_clause,
    date_range,
    extract_reference_id,
    parse_datetime,
    token_clause,
)


class SearchParameter(NamedTuple):
    name: str
    type: str
    description: str


COMMON_SEARCH_PARAMETERS = [
    SearchParameter("_id", "token", "Logical id of the resource"),
    SearchParameter("_lastUpdated", "date", "When the resource last changed"),
]


def first_coding(concept: Dict[str, Any] | None) -> Dict[str, Any]:
    if not concept:
        return {}
    codings = concept.get("coding") or [{}]
    return codings[0]


def first_category_code(resource: Dict[str, Any]) -> str | None:
    categories = resource.get("category") or [{}]
    return first_coding(categories[0]).get("code")


def to_datetime(value: str | None) -> datetime | None:
    """
    Converts a FHIR date or dateTime into an UTC datetime. Partial dates
    resolve to the start of the period they cover.
    """
    if not value:
        return None
    if "T" in value:
        return parse_datetime(value)
    return date_range(value)[0]


def to_date(value: str | None) -> date | None:
    moment = to_datetime(value)
    return moment.date() if moment is not None else None


class ResourceMapper:
    """
    Translates between a FHIR resource (as json dict) and the row of the
    table holding that resource type.
    """

    resource_type: str
    entity: Type[Any]
    model: Type[DomainResource]
    description: str = ""
    search_parameters: List[SearchParameter] = []
    # Search parameter name to entity attribute usable in _sort
    sort_columns: Dict[str, str] = {}
    example: Dict[str, Any] = {}

    @property
    def all_search_parameters(self) -> List[SearchParameter]:
        return COMMON_SEARCH_PARAMETERS + self.search_parameters

    def profile(self, resource: Dict[str, Any]) -> str:
        return NL_CORE_PROFILES[self.resource_type]

    def validate(self, resource: Dict[str, Any]) -> None:
        try:
            self.model.model_validate(resource)
        except ValidationError as e:
            raise InvalidRequestException(
                f"Invalid {self.resource_type} resource", str(e)
            )

    def columns(self, resource: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def to_row(
        self, resource: Dict[str, Any], tenant_id: str, **extra: Any
    ) -> Any:
        return self.entity(
            tenant_id=tenant_id,
            resource_id=resource["id"],
            resource=resource,
            **self.columns(resource),
            **extra,
        )

    def apply(self, row: Any, resource: Dict[str, Any], **extra: Any) -> None:
        """Overwrites the stored resource and search columns of an existing row."""
        row.resource = resource
        for key, value in {**self.columns(resource), **extra}.items():
            setattr(row, key, value)

    def to_resource(self, row: Any) -> Dict[str, Any]:
        resource = dict(row.resource)
        meta = dict(resource.get("meta") or {})
        meta["versionId"] = str(row.version_id)
        meta["lastUpdated"] = format_instant(row.last_updated)
        meta["profile"] = [self.profile(resource)]
        resource["resourceType"] = self.resource_type
        resource["id"] = row.resource_id
        resource["meta"] = meta
        return resource

    def search_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        filters = self.clauses(params, "_id", lambda v: self.entity.resource_id == v)
        filters += self.clauses(
            params, "_lastUpdated", lambda v: date_clause(self.entity.last_updated, v)
        )
        return filters + self.resource_filters(params)

    def resource_filters(self, params: SearchParams) -> List[ColumnElement[bool]]:
        return []

    def sort_column(self, name: str) -> Any:
        if name == "_lastUpdated":
            return self.entity.last_updated
        attribute = self.sort_columns.get(name)
        return getattr(self.entity, attribute) if attribute else None

    @staticmethod
    def clauses(
        params: SearchParams,
        name: str,
        build: Callable[[str], ColumnElement[bool]],
    ) -> List[ColumnElement[bool]]:
        """
        Repeated parameters must all match, comma separated values within a
        parameter match any.
        """
        raw = params.get(name)
        if raw is None:
            return []
        values = raw if isinstance(raw, list) else [raw]
        result = []
        for value in values:
            options = [v for v in value.split(",") if v]
            if options:
                result.append(or_(*[build(v) for v in options]))
        return result

    def token_filter(
        self, params: SearchParams, name: str, system_column: str | None, code_column: str
    ) -> List[ColumnElement[bool]]:
        system = getattr(self.entity, system_column) if system_column else None
        code = getattr(self.entity, code_column)
        return self.clauses(params, name, lambda v: token_clause(system, code, v))


class PatientLinkedMapper(ResourceMapper):
    # Element holding the reference to the patient
    patient_element = "subject"

    def patient_reference(self, resource: Dict[str, Any]) -> str | None:
        reference = (resource.get(self.patient_element) or {}).get("reference")
        if not reference or "Patient/" not in f"/{reference}":
            return None
        return extract_reference_id(reference, "Patient")

    def patient_clause(self, value: str) -> ColumnElement[bool]:
        patient_ids = select(Patient.id).where(
            Patient.resource_id == extract_reference_id(value, "Patient"),
            Patient.tenant_id == self.entity.tenant_id,
        )
        return self.entity.patient_id.in_(patient_ids)

    def patient_filters(
        self, params: SearchParams, names: tuple[str, ...] = ("patient", "subject")
    ) -> List[ColumnElement[bool]]:
        filters = []
        for name in names:
            filters += self.clauses(params, name, self.patient_clause)
        return filters

    def to_row(
        self,
        resource: Dict[str, Any],
        tenant_id: str,
        patient_id: UUID | None = None,
        **extra: Any,
    ) -> Any:
        return super().to_row(resource, tenant_id, patient_id=patient_id, **extra)
