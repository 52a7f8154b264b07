import json
import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import DatabaseError

from nlcore_fhir.container import (
    get_audit_service,
    get_capability_service,
    get_gateway_service,
    get_resource_service,
)
from nlcore_fhir.exceptions import (
    AuthenticationException,
    FhirException,
    ForbiddenException,
    InvalidRequestException,
    MethodNotAllowedException,
    UnsupportedResourceException,
)
from nlcore_fhir.models.auth import AccessContext, Action
from nlcore_fhir.models.fhir.types import SUPPORTED_VERSIONS, is_supported_resource
from nlcore_fhir.services.audit_service import AuditService
from nlcore_fhir.services.authorization import extract_tenant_id, has_scope
from nlcore_fhir.services.fhir.capability import CapabilityService
from nlcore_fhir.services.fhir.resource_service import FhirResourceService
from nlcore_fhir.services.fhir.response import (
    created_response,
    error_response,
    fhir_response,
    no_content_response,
)
from nlcore_fhir.services.fhir.search_params import parse_query
from nlcore_fhir.services.gateway.gateway_service import GatewayService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["FHIR"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Api-Key, X-Tenant-ID",
    "Access-Control-Max-Age": "86400",
}

METADATA_PATHS = ("metadata", "CapabilityStatement")

SCOPE_ACTIONS: dict[str, Action] = {
    "GET": "read",
    "POST": "write",
    "PUT": "write",
    "DELETE": "delete",
}


async def get_request_body(request: Request) -> bytes:
    return await request.body()


def fhir_base_url(request: Request, version: str) -> str:
    return f"{str(request.base_url).rstrip('/')}/api/fhir/{version}"


def interaction_name(method: str, resource_id: str | None) -> str:
    if method == "GET":
        return "search" if resource_id is None else "read"
    return {"POST": "create", "PUT": "update", "DELETE": "delete"}.get(
        method, method.lower()
    )


def parse_body(body: bytes) -> Any:
    if not body:
        raise InvalidRequestException("Request body is required")
    try:
        return json.loads(body)
    except ValueError as e:
        raise InvalidRequestException("Invalid JSON in request body", str(e))


def preflight_response() -> Response:
    return Response(status_code=204, headers=CORS_HEADERS)


@router.get("/metadata", summary="CapabilityStatement of the default FHIR version")
def metadata(
    request: Request,
    capability_service: CapabilityService = Depends(get_capability_service),
) -> Response:
    version = SUPPORTED_VERSIONS[0]
    return fhir_response(
        capability_service.get_capability_statement(fhir_base_url(request, version))
    )


@router.options("/api/fhir/{version}/{path:path}", include_in_schema=False)
def fhir_preflight() -> Response:
    return preflight_response()


@router.api_route(
    "/api/fhir/{version}/{path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
    summary="FHIR REST interactions",
)
def handle_fhir_request(
    version: str,
    path: str,
    request: Request,
    body: bytes = Depends(get_request_body),
    gateway_service: GatewayService = Depends(get_gateway_service),
    audit_service: AuditService = Depends(get_audit_service),
    resource_service: FhirResourceService = Depends(get_resource_service),
    capability_service: CapabilityService = Depends(get_capability_service),
) -> Response:
    method = request.method
    if version not in SUPPORTED_VERSIONS:
        raise InvalidRequestException(
            f"Unsupported FHIR version '{version}'",
            f"Supported versions are {', '.join(SUPPORTED_VERSIONS)}",
        )

    segments = [s for s in path.split("/") if s]
    if len(segments) == 0 or len(segments) > 2:
        raise InvalidRequestException(
            "Invalid FHIR path", "Expected [ResourceType] or [ResourceType]/[id]"
        )
    resource_type = segments[0]
    resource_id = segments[1] if len(segments) == 2 else None
    base_url = fhir_base_url(request, version)

    if resource_type in METADATA_PATHS:
        if method != "GET":
            raise MethodNotAllowedException(method)
        return fhir_response(
            capability_service.get_capability_statement(base_url)
        )

    if method not in SCOPE_ACTIONS:
        raise MethodNotAllowedException(method)

    user = gateway_service.validate(request.headers)
    if user is None:
        audit_service.log(
            "authentication_failed",
            resource_type=resource_type,
            resource_id=resource_id,
            method=method,
            url=str(request.url),
            headers=request.headers,
            status=401,
        )
        raise AuthenticationException()

    access = AccessContext(user=user, tenant_id=extract_tenant_id(request.headers, user))
    action = f"{interaction_name(method, resource_id)}_{resource_type.lower()}"
    start_time = time.monotonic()

    def audit(name: str, status: int, **details: Any) -> None:
        details["duration_ms"] = int((time.monotonic() - start_time) * 1000)
        audit_service.log(
            name,
            access=access,
            resource_type=resource_type,
            resource_id=resource_id,
            method=method,
            url=str(request.url),
            headers=request.headers,
            status=status,
            details=details,
        )

    if not is_supported_resource(resource_type):
        audit(action, 404, error="unsupported resource type")
        raise UnsupportedResourceException(resource_type)
    if not has_scope(user, resource_type, SCOPE_ACTIONS[method]):
        audit("access_denied", 403, attempted_action=action)
        raise ForbiddenException()

    try:
        response = dispatch(
            request, method, resource_type, resource_id, body, access, base_url, resource_service
        )
    except FhirException as e:
        audit(action, e.status_code, error=e.message)
        raise
    except DatabaseError as e:
        logger.error(f"Database error while handling {method} {request.url.path}: {e}")
        audit(action, 500, error="database error")
        return error_response(500, "Internal server error")
    except Exception as e:
        logger.exception(f"Unhandled error while handling {method} {request.url.path}")
        audit(action, 500, error=str(e))
        return error_response(500, "Internal server error")

    audit(action, response.status_code)
    return response


def dispatch(
    request: Request,
    method: str,
    resource_type: str,
    resource_id: str | None,
    body: bytes,
    access: AccessContext,
    base_url: str,
    resource_service: FhirResourceService,
) -> Response:
    if method == "GET":
        if resource_id is None:
            params = parse_query(request.query_params.multi_items())
            return fhir_response(
                resource_service.search(access, resource_type, params, base_url)
            )
        return fhir_response(resource_service.read(access, resource_type, resource_id))

    if method == "POST":
        if resource_id is not None:
            raise InvalidRequestException(
                "Resource id not allowed", "Use PUT to update an existing resource"
            )
        created = resource_service.create(access, resource_type, parse_body(body))
        return created_response(created, f"{base_url}/{resource_type}/{created['id']}")

    if resource_id is None:
        raise InvalidRequestException(
            "Resource id required", f"{method} requires [ResourceType]/[id]"
        )

    if method == "PUT":
        updated = resource_service.update(
            access,
            resource_type,
            resource_id,
            parse_body(body),
            if_match=request.headers.get("if-match"),
        )
        return fhir_response(updated)

    resource_service.delete(access, resource_type, resource_id)
    return no_content_response()
