import logging
import re
import uuid
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from yarl import URL

from nlcore_fhir.db.db import Database
from nlcore_fhir.db.decorator import repository_registry
from nlcore_fhir.db.entities.fhir_resource import utc_now
from nlcore_fhir.db.entities.patient import Patient
from nlcore_fhir.db.repositories.care_relationship_repository import (
    CareRelationshipRepository,
)
from nlcore_fhir.db.repositories.fhir_resource_repository import (
    FhirResourceRepository,
    PatientRepository,
)
from nlcore_fhir.db.session import DbSession
from nlcore_fhir.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
    UnsupportedResourceException,
)
from nlcore_fhir.models.auth import ADMIN_ROLES, AccessContext, UserRole
from nlcore_fhir.services.fhir.resources.base import PatientLinkedMapper, ResourceMapper
from nlcore_fhir.services.fhir.response import build_search_bundle
from nlcore_fhir.services.fhir.search_params import (
    SearchParams,
    extract_pagination,
    parse_sort,
)

logger = logging.getLogger(__name__)

_ETAG_RE = re.compile(r'^(?:W/)?"?([^"]+)"?$')

# SQLSTATE of a unique_violation on postgres
UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    if getattr(error.orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(error.orig)


def parse_etag(value: str) -> int | None:
    match = _ETAG_RE.match(value.strip())
    if match is None:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        return None


class FhirResourceService:
    """
    CRUD operations on the supported FHIR resources. Every operation runs
    with the access context of the request, so the tenant and role
    visibility rules apply to all reads and writes.
    """

    def __init__(
        self,
        database: Database,
        mappers: Dict[str, ResourceMapper],
        default_count: int,
        max_count: int,
    ) -> None:
        self.__database = database
        self.__mappers = mappers
        self.__default_count = default_count
        self.__max_count = max_count

    def get_mapper(self, resource_type: str) -> ResourceMapper:
        mapper = self.__mappers.get(resource_type)
        if mapper is None:
            raise UnsupportedResourceException(resource_type)
        return mapper

    def search(
        self,
        access: AccessContext,
        resource_type: str,
        params: SearchParams,
        base_url: str,
    ) -> Dict[str, Any]:
        mapper = self.get_mapper(resource_type)
        count, offset = extract_pagination(
            params, self.__default_count, self.__max_count
        )
        sort_name, descending = parse_sort(params)

        with self.__database.get_db_session(access) as session:
            repository = self.__repository(session, mapper)
            total, rows = repository.search(
                mapper.search_filters(params),
                count=count,
                offset=offset,
                sort_column=mapper.sort_column(sort_name),
                descending=descending,
            )
            resources = [mapper.to_resource(row) for row in rows]

        resource_url = f"{base_url}/{resource_type}"
        query = {k: v for k, v in params.items() if k not in ("_count", "_offset")}
        next_url = None
        if offset + count < total:
            next_url = self.__page_url(resource_url, query, count, offset + count)
        previous_url = None
        if offset > 0:
            previous_url = self.__page_url(
                resource_url, query, count, max(offset - count, 0)
            )

        return build_search_bundle(
            resources,
            total,
            self_url=str(URL(resource_url).with_query(params)),
            resource_url=resource_url,
            next_url=next_url,
            previous_url=previous_url,
        )

    def read(
        self, access: AccessContext, resource_type: str, resource_id: str
    ) -> Dict[str, Any]:
        mapper = self.get_mapper(resource_type)
        with self.__database.get_db_session(access) as session:
            row = self.__repository(session, mapper).get(resource_id)
            if row is None:
                raise NotFoundException(f"{resource_type}/{resource_id} not found")
            return mapper.to_resource(row)

    def create(
        self, access: AccessContext, resource_type: str, body: Any
    ) -> Dict[str, Any]:
        mapper = self.get_mapper(resource_type)
        resource = self.__prepare(mapper, body)
        if not resource.get("id"):
            resource["id"] = str(uuid.uuid4())
        mapper.validate(resource)

        with self.__database.get_db_session(access) as session:
            repository = self.__repository(session, mapper)
            if repository.resource_exists(access.tenant_id, resource["id"]):
                raise ConflictException(
                    f"{resource_type} with id '{resource['id']}' already exists"
                )

            extra = self.__patient_columns(session, access, mapper, resource)
            row = mapper.to_row(resource, access.tenant_id, **extra)
            try:
                repository.create(row)
            except IntegrityError as e:
                if not is_unique_violation(e):
                    raise
                raise ConflictException(
                    f"{resource_type} with id '{resource['id']}' already exists"
                )
            logger.info(f"Created {resource_type}/{row.resource_id}")
            return mapper.to_resource(row)

    def update(
        self,
        access: AccessContext,
        resource_type: str,
        resource_id: str,
        body: Any,
        if_match: str | None = None,
    ) -> Dict[str, Any]:
        mapper = self.get_mapper(resource_type)
        resource = self.__prepare(mapper, body)
        if resource.get("id") and resource["id"] != resource_id:
            raise InvalidRequestException(
                "ID mismatch", "Resource id in body does not match the url"
            )
        resource["id"] = resource_id
        mapper.validate(resource)

        with self.__database.get_db_session(access) as session:
            repository = self.__repository(session, mapper)
            row = self.__get_writable(repository, resource_type, resource_id)

            if if_match is not None and parse_etag(if_match) != row.version_id:
                raise ConflictException(
                    f"Version conflict, {resource_type}/{resource_id} is at version {row.version_id}"
                )

            extra = self.__patient_columns(session, access, mapper, resource)
            mapper.apply(row, resource, **extra)
            row.version_id = row.version_id + 1
            row.last_updated = utc_now()
            repository.update(row)
            logger.info(f"Updated {resource_type}/{resource_id} to version {row.version_id}")
            return mapper.to_resource(row)

    def delete(
        self, access: AccessContext, resource_type: str, resource_id: str
    ) -> None:
        mapper = self.get_mapper(resource_type)
        with self.__database.get_db_session(access) as session:
            repository = self.__repository(session, mapper)
            row = self.__get_writable(repository, resource_type, resource_id)

            row.active = False
            row.version_id = row.version_id + 1
            row.last_updated = utc_now()
            repository.update(row)
            logger.info(f"Deactivated {resource_type}/{resource_id}")

    @staticmethod
    def __repository(session: DbSession, mapper: ResourceMapper) -> FhirResourceRepository[Any]:
        return session.get_repository(repository_registry[mapper.entity])

    @staticmethod
    def __get_writable(
        repository: FhirResourceRepository[Any], resource_type: str, resource_id: str
    ) -> Any:
        row = repository.get(resource_id)
        if row is None:
            raise NotFoundException(f"{resource_type}/{resource_id} not found")
        if repository.get(resource_id, action="write") is None:
            raise ForbiddenException(
                f"You do not have permission to modify {resource_type}/{resource_id}"
            )
        return row

    @staticmethod
    def __prepare(mapper: ResourceMapper, body: Any) -> Dict[str, Any]:
        if not isinstance(body, dict) or body.get("resourceType") != mapper.resource_type:
            raise InvalidRequestException(
                "Invalid resource",
                f"Request body must be a {mapper.resource_type} resource",
            )
        resource = dict(body)
        meta = dict(resource.get("meta") or {})
        meta["profile"] = [mapper.profile(resource)]
        resource["meta"] = meta
        return resource

    @staticmethod
    def __patient_columns(
        session: DbSession,
        access: AccessContext,
        mapper: ResourceMapper,
        resource: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Resolves the patient a patient linked resource refers to and checks
        the user may write data for that patient.
        """
        if not isinstance(mapper, PatientLinkedMapper):
            return {}

        reference = mapper.patient_reference(resource)
        patient: Patient | None = None
        if reference is not None:
            patient = session.get_repository(PatientRepository).get_in_tenant(
                access.tenant_id, reference
            )
        if patient is None:
            raise InvalidRequestException(
                "Invalid patient reference",
                f"{mapper.resource_type}.{mapper.patient_element} must reference an existing Patient",
            )

        if access.role not in ADMIN_ROLES:
            allowed = access.role == UserRole.PRACTITIONER and session.get_repository(
                CareRelationshipRepository
            ).has_active_relationship(access, patient.id)
            if not allowed:
                raise ForbiddenException(
                    f"You do not have permission to write {mapper.resource_type} data for this patient"
                )

        return {"patient_id": patient.id}

    @staticmethod
    def __page_url(resource_url: str, query: SearchParams, count: int, offset: int) -> str:
        page_query: Dict[str, Any] = dict(query)
        page_query["_count"] = str(count)
        page_query["_offset"] = str(offset)
        return str(URL(resource_url).with_query(page_query))
