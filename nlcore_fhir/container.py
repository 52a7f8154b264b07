import inject

from nlcore_fhir.config import get_config
from nlcore_fhir.db.db import Database
from nlcore_fhir.services.audit_service import AuditService
from nlcore_fhir.services.fhir.capability import CapabilityService
from nlcore_fhir.services.fhir.resource_service import FhirResourceService
from nlcore_fhir.services.fhir.resources.factory import create_mappers
from nlcore_fhir.services.gateway.api_service import HttpService
from nlcore_fhir.services.gateway.gateway_service import GatewayService
from nlcore_fhir.services.openapi_service import OpenApiService


def container_config(binder: inject.Binder) -> None:
    config = get_config()

    db = Database(
        dsn=config.database.dsn,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_pre_ping=config.database.pool_pre_ping,
        pool_recycle=config.database.pool_recycle,
    )
    binder.bind(Database, db)

    http_service = HttpService(
        base_url=config.gateway.url,
        timeout=config.gateway.timeout,
        retries=config.gateway.retries,
        backoff=config.gateway.backoff,
    )
    gateway_service = GatewayService(
        http_service=http_service,
        user_info_path=config.gateway.user_info_path,
        database=db,
    )
    binder.bind(GatewayService, gateway_service)

    binder.bind(AuditService, AuditService(db))

    mappers = create_mappers(config.fhir.bsn_hash_salt)
    resource_service = FhirResourceService(
        database=db,
        mappers=mappers,
        default_count=config.fhir.default_count,
        max_count=config.fhir.max_count,
    )
    binder.bind(FhirResourceService, resource_service)

    capability_service = CapabilityService(
        mappers=mappers,
        server_name=config.fhir.server_name,
        publisher=config.fhir.publisher,
        publisher_url=config.fhir.publisher_url,
    )
    binder.bind(CapabilityService, capability_service)

    binder.bind(
        OpenApiService,
        OpenApiService(mappers=mappers, server_name=config.fhir.server_name),
    )


def get_database() -> Database:
    return inject.instance(Database)


def get_gateway_service() -> GatewayService:
    return inject.instance(GatewayService)


def get_audit_service() -> AuditService:
    return inject.instance(AuditService)


def get_resource_service() -> FhirResourceService:
    return inject.instance(FhirResourceService)


def get_capability_service() -> CapabilityService:
    return inject.instance(CapabilityService)


def get_openapi_service() -> OpenApiService:
    return inject.instance(OpenApiService)


def setup_container() -> None:
    inject.configure(container_config, once=True)
