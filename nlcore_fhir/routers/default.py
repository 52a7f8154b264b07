from fastapi import APIRouter

from nlcore_fhir.config import get_config
from nlcore_fhir.models.fhir.types import FHIR_VERSION, SUPPORTED_VERSIONS

router = APIRouter()


@router.get("/")
def index() -> dict[str, object]:
    config = get_config()
    return {
        "name": config.fhir.server_name,
        "fhirVersion": FHIR_VERSION,
        "endpoints": {
            "fhir": [f"/api/fhir/{version}" for version in SUPPORTED_VERSIONS],
            "metadata": "/metadata",
            "openapi": "/api/openapi",
            "docs": config.uvicorn.docs_url,
        },
    }
