import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse, JSONResponse

from nlcore_fhir.container import get_openapi_service
from nlcore_fhir.routers.fhir_router import preflight_response
from nlcore_fhir.services.openapi_service import OpenApiService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["OpenAPI"])

OPENAPI_URL = "/api/openapi"


@router.get(OPENAPI_URL, summary="OpenAPI document of the FHIR API")
def openapi(
    request: Request,
    openapi_service: OpenApiService = Depends(get_openapi_service),
) -> Response:
    base_url = str(request.base_url).rstrip("/")
    return JSONResponse(
        content=openapi_service.get_openapi(base_url),
        headers={
            "Cache-Control": "public, max-age=3600",
            "Access-Control-Allow-Origin": "*",
        },
    )


@router.options(OPENAPI_URL, include_in_schema=False)
def openapi_preflight() -> Response:
    return preflight_response()


def swagger_ui() -> HTMLResponse:
    return get_swagger_ui_html(openapi_url=OPENAPI_URL, title="FHIR R4 API documentation")
