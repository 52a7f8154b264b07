from typing import Any, Dict
from unittest.mock import MagicMock, patch

import pytest
from requests.exceptions import ConnectionError

from nlcore_fhir.db.db import Database
from nlcore_fhir.models.auth import AccessContext, UserRole
from nlcore_fhir.services.fhir.resource_service import FhirResourceService
from nlcore_fhir.services.gateway.api_service import HttpService
from nlcore_fhir.services.gateway.gateway_service import GatewayService, map_role
from tests.utils import (
    get_patient_row,
    insert_user_mapping,
    make_access,
    patient_resource,
)

PATCHED_MODULE = "nlcore_fhir.services.gateway.api_service.request"


@pytest.fixture()
def gateway_service(database: Database) -> GatewayService:
    http_service = HttpService(base_url="http://gateway.test", timeout=1, retries=1, backoff=0)
    return GatewayService(http_service, "/api/user/me", database)


def gateway_response(data: Dict[str, Any], status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    return response


@pytest.mark.parametrize(
    "role, expected",
    [
        ("super_admin", UserRole.SUPER_ADMIN),
        ("Tenant_Admin", UserRole.TENANT_ADMIN),
        ("doctor", UserRole.PRACTITIONER),
        ("patient", UserRole.PATIENT),
        ("researcher", UserRole.RESEARCHER),
        ("something-else", UserRole.PATIENT),
        ("receptionist", UserRole.PATIENT),
        (None, UserRole.PATIENT),
    ],
)
def test_map_role(role: Any, expected: UserRole) -> None:
    assert map_role(role) == expected


@patch(PATCHED_MODULE)
def test_no_credentials(mock_request: MagicMock, gateway_service: GatewayService) -> None:
    assert gateway_service.validate({"x-tenant-id": "tenant-a"}) is None
    mock_request.assert_not_called()


@patch(PATCHED_MODULE)
def test_valid_user(mock_request: MagicMock, gateway_service: GatewayService) -> None:
    mock_request.return_value = gateway_response(
        {"id": "u1", "email": "u1@example.org", "role": "practitioner", "tenantId": "tenant-a"}
    )

    user = gateway_service.validate({"X-Api-Key": "secret", "User-Agent": "test"})

    assert user is not None
    assert user.id == "u1"
    assert user.role == UserRole.PRACTITIONER
    assert user.tenant_id == "tenant-a"
    assert "user/Observation.write" in user.scopes
    assert user.practitioner_id is None

    forwarded = mock_request.call_args.kwargs["headers"]
    assert forwarded["X-Api-Key"] == "secret"
    assert "User-Agent" not in forwarded


@patch(PATCHED_MODULE)
def test_tenant_from_header(mock_request: MagicMock, gateway_service: GatewayService) -> None:
    mock_request.return_value = gateway_response({"id": "u1", "role": "dev"})

    user = gateway_service.validate({"authorization": "Bearer token", "x-tenant-id": "tenant-b"})

    assert user is not None
    assert user.tenant_id == "tenant-b"


@pytest.mark.parametrize(
    "data, status_code",
    [
        ({"id": "u1", "tenantId": "tenant-a"}, 401),
        ({"id": "u1", "tenantId": "tenant-a"}, 302),
        ({"tenantId": "tenant-a"}, 200),
        ({"id": "u1"}, 200),
    ],
)
@patch(PATCHED_MODULE)
def test_rejected(
    mock_request: MagicMock, data: Dict[str, Any], status_code: int, gateway_service: GatewayService
) -> None:
    mock_request.return_value = gateway_response(data, status_code)

    assert gateway_service.validate({"cookie": "session=abc"}) is None


@patch(PATCHED_MODULE)
def test_invalid_json(mock_request: MagicMock, gateway_service: GatewayService) -> None:
    response = gateway_response({})
    response.json.side_effect = ValueError("no json")
    mock_request.return_value = response

    assert gateway_service.validate({"cookie": "session=abc"}) is None


@patch(PATCHED_MODULE)
def test_gateway_unreachable(mock_request: MagicMock, gateway_service: GatewayService) -> None:
    mock_request.side_effect = ConnectionError("down")

    assert gateway_service.validate({"cookie": "session=abc"}) is None


@patch(PATCHED_MODULE)
def test_user_mapping_links_patient(
    mock_request: MagicMock,
    gateway_service: GatewayService,
    resource_service: FhirResourceService,
    database: Database,
) -> None:
    resource_service.create(make_access(UserRole.TENANT_ADMIN), "Patient", patient_resource("p1"))
    patient = get_patient_row(database, "p1")
    insert_user_mapping(database, "u1", UserRole.PATIENT, patient=patient)
    mock_request.return_value = gateway_response({"id": "u1", "role": "patient", "tenantId": "tenant-a"})

    user = gateway_service.validate({"cookie": "session=abc"})

    assert user is not None
    assert user.patient_id == patient.id


@patch(PATCHED_MODULE)
def test_unknown_role_sees_no_data(
    mock_request: MagicMock,
    gateway_service: GatewayService,
    resource_service: FhirResourceService,
) -> None:
    admin = make_access(UserRole.TENANT_ADMIN)
    resource_service.create(admin, "Patient", patient_resource("p1"))
    resource_service.create(admin, "Patient", patient_resource("p2", family="Bakker", bsn="999911132"))
    mock_request.return_value = gateway_response(
        {"id": "u2", "role": "receptionist", "tenantId": "tenant-a"}
    )

    user = gateway_service.validate({"cookie": "session=abc"})

    assert user is not None
    assert user.role == UserRole.PATIENT
    assert user.patient_id is None
    access = AccessContext(user=user, tenant_id=user.tenant_id)
    bundle = resource_service.search(access, "Patient", {}, "http://testserver/api/fhir/R4")
    assert bundle["total"] == 0


@patch(PATCHED_MODULE)
def test_user_mapping_for_other_role_is_ignored(
    mock_request: MagicMock,
    gateway_service: GatewayService,
    resource_service: FhirResourceService,
    database: Database,
) -> None:
    resource_service.create(make_access(UserRole.TENANT_ADMIN), "Patient", patient_resource("p1"))
    patient = get_patient_row(database, "p1")
    insert_user_mapping(database, "u1", UserRole.PATIENT, patient=patient)
    mock_request.return_value = gateway_response({"id": "u1", "role": "researcher", "tenantId": "tenant-a"})

    user = gateway_service.validate({"cookie": "session=abc"})

    assert user is not None
    assert user.role == UserRole.RESEARCHER
    assert user.patient_id is None
