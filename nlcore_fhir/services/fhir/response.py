import uuid
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, List, Sequence

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from nlcore_fhir.exceptions import FhirException
from nlcore_fhir.models.fhir.types import FHIR_CONTENT_TYPE, FHIR_VERSION

ISSUE_CODES = {
    400: "invalid",
    401: "login",
    403: "forbidden",
    404: "not-found",
    405: "not-supported",
    409: "conflict",
    410: "deleted",
    412: "conflict",
    422: "processing",
    500: "exception",
    501: "not-supported",
    503: "transient",
}


def fhir_headers(extra: Dict[str, str] | None = None) -> Dict[str, str]:
    headers = {
        "Content-Type": FHIR_CONTENT_TYPE,
        "X-FHIR-Version": FHIR_VERSION,
        "X-Request-Id": str(uuid.uuid4()),
    }
    if extra:
        headers.update(extra)
    return headers


def build_operation_outcome(
    status_code: int,
    message: str,
    diagnostics: str | None = None,
    code: str | None = None,
) -> Dict[str, Any]:
    issue: Dict[str, Any] = {
        "severity": "fatal" if status_code >= 500 else "error",
        "code": code or ISSUE_CODES.get(status_code, "exception"),
        "details": {"text": message},
    }
    if diagnostics:
        issue["diagnostics"] = diagnostics

    return {
        "resourceType": "OperationOutcome",
        "id": str(uuid.uuid4()),
        "issue": [issue],
    }


def build_search_bundle(
    resources: Sequence[Dict[str, Any]],
    total: int,
    self_url: str,
    resource_url: str,
    next_url: str | None = None,
    previous_url: str | None = None,
) -> Dict[str, Any]:
    links: List[Dict[str, str]] = [{"relation": "self", "url": self_url}]
    if next_url is not None:
        links.append({"relation": "next", "url": next_url})
    if previous_url is not None:
        links.append({"relation": "previous", "url": previous_url})

    return {
        "resourceType": "Bundle",
        "id": str(uuid.uuid4()),
        "meta": {"lastUpdated": format_instant(datetime.now(timezone.utc))},
        "type": "searchset",
        "total": total,
        "link": links,
        "entry": [
            {
                "fullUrl": f"{resource_url}/{resource['id']}",
                "resource": resource,
                "search": {"mode": "match"},
            }
            for resource in resources
        ],
    }


def format_instant(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def version_headers(resource: Dict[str, Any]) -> Dict[str, str]:
    meta = resource.get("meta", {})
    headers = {}
    if "versionId" in meta:
        headers["ETag"] = f'W/"{meta["versionId"]}"'
    if "lastUpdated" in meta:
        last_updated = datetime.fromisoformat(meta["lastUpdated"])
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        headers["Last-Modified"] = format_datetime(
            last_updated.astimezone(timezone.utc), usegmt=True
        )
    return headers


def fhir_response(
    content: Dict[str, Any],
    status_code: int = 200,
    headers: Dict[str, str] | None = None,
) -> JSONResponse:
    all_headers = version_headers(content)
    if headers:
        all_headers.update(headers)
    return JSONResponse(
        content=content,
        status_code=status_code,
        headers=fhir_headers(all_headers),
        media_type=FHIR_CONTENT_TYPE,
    )


def created_response(content: Dict[str, Any], location: str) -> JSONResponse:
    return fhir_response(content, 201, {"Location": location})


def no_content_response() -> Response:
    return Response(status_code=204, headers=fhir_headers())


def error_response(
    status_code: int,
    message: str,
    diagnostics: str | None = None,
    code: str | None = None,
) -> JSONResponse:
    return JSONResponse(
        content=build_operation_outcome(status_code, message, diagnostics, code),
        status_code=status_code,
        headers=fhir_headers(),
        media_type=FHIR_CONTENT_TYPE,
    )


async def fhir_exception_handler(request: Request, exc: FhirException) -> Response:
    return error_response(exc.status_code, exc.message, exc.diagnostics, exc.code)
