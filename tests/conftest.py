from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient
import inject
import pytest

from nlcore_fhir.application import create_fastapi_app
from nlcore_fhir.config import set_config
from nlcore_fhir.container import get_database
from nlcore_fhir.db.db import Database
from nlcore_fhir.models.auth import UserRole
from nlcore_fhir.services.fhir.resource_service import FhirResourceService
from nlcore_fhir.services.fhir.resources.factory import create_mappers
from tests.test_config import get_test_config
from tests.utils import TENANT_A, TENANT_B, gateway_user, insert_tenant

PATCHED_GATEWAY = "nlcore_fhir.services.gateway.api_service.request"


@pytest.fixture
def database() -> Generator[Database, Any, None]:
    try:
        db = Database("sqlite:///:memory:")
        db.generate_tables()
        insert_tenant(db, TENANT_A)
        insert_tenant(db, TENANT_B)
        yield db
    except Exception as e:
        raise e


@pytest.fixture
def resource_service(database: Database) -> FhirResourceService:
    return FhirResourceService(
        database=database,
        mappers=create_mappers("test-salt"),
        default_count=20,
        max_count=50,
    )


@pytest.fixture
def fastapi_app() -> Generator[FastAPI, None, None]:
    set_config(get_test_config())
    app = create_fastapi_app()
    db = get_database()
    insert_tenant(db, TENANT_A)
    insert_tenant(db, TENANT_B)
    yield app
    inject.clear()


@pytest.fixture
def api_client(fastapi_app: FastAPI) -> TestClient:
    return TestClient(fastapi_app)


@pytest.fixture
def mock_gateway() -> Generator[MagicMock, None, None]:
    """
    Patches the http call to the gateway. Tests set the user the gateway
    answers with through mock_gateway.return_value.json.return_value.
    """
    with patch(PATCHED_GATEWAY) as mock_request:
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = gateway_user(UserRole.TENANT_ADMIN)
        mock_request.return_value = response
        yield mock_request
