from typing import Any, Dict
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from nlcore_fhir.container import get_database
from nlcore_fhir.db.entities.audit_log import AuditLog
from nlcore_fhir.models.auth import UserRole
from tests.utils import (
    TENANT_B,
    gateway_user,
    get_patient_row,
    insert_user_mapping,
    observation_resource,
    patient_resource,
)

FHIR_URL = "/api/fhir/R4"
AUTH = {"X-Api-Key": "test-key"}


def as_user(mock_gateway: MagicMock, role: UserRole, user_id: str = "gw-user-1", tenant_id: str = "tenant-a") -> None:
    mock_gateway.return_value.json.return_value = gateway_user(role, user_id, tenant_id)


def audit_entries() -> list[AuditLog]:
    with get_database().get_db_session() as session:
        return session.session.query(AuditLog).order_by(AuditLog.timestamp).all()


def create_patient(api_client: TestClient, resource_id: str = "p1", headers: Dict[str, str] | None = None) -> Any:
    return api_client.post(
        f"{FHIR_URL}/Patient",
        json=patient_resource(resource_id),
        headers={**AUTH, **(headers or {})},
    )


def test_metadata_without_authentication(api_client: TestClient, mock_gateway: MagicMock) -> None:
    for url in (f"{FHIR_URL}/metadata", "/api/fhir/4_0_1/CapabilityStatement", "/metadata"):
        response = api_client.get(url)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/fhir+json")
        assert response.headers["x-fhir-version"] == "4.0.1"
        assert response.json()["resourceType"] == "CapabilityStatement"
    mock_gateway.assert_not_called()


def test_unsupported_version(api_client: TestClient, mock_gateway: MagicMock) -> None:
    response = api_client.get("/api/fhir/R5/Patient", headers=AUTH)

    assert response.status_code == 400
    assert response.json()["resourceType"] == "OperationOutcome"
    assert response.json()["issue"][0]["code"] == "invalid"


def test_missing_credentials(api_client: TestClient) -> None:
    response = api_client.get(f"{FHIR_URL}/Patient")

    assert response.status_code == 401
    assert response.json()["issue"][0]["code"] == "login"
    entries = audit_entries()
    assert entries[-1].action == "authentication_failed"
    assert entries[-1].tenant_id is None
    assert entries[-1].outcome == "denied"


def test_gateway_rejects(api_client: TestClient, mock_gateway: MagicMock) -> None:
    mock_gateway.return_value.status_code = 401

    response = api_client.get(f"{FHIR_URL}/Patient", headers=AUTH)

    assert response.status_code == 401


def test_unknown_resource_type(api_client: TestClient, mock_gateway: MagicMock) -> None:
    response = api_client.get(f"{FHIR_URL}/Medication", headers=AUTH)

    assert response.status_code == 404
    assert response.json()["issue"][0]["code"] == "not-supported"


def test_put_and_delete_require_id(api_client: TestClient, mock_gateway: MagicMock) -> None:
    assert api_client.put(f"{FHIR_URL}/Patient", json=patient_resource("p1"), headers=AUTH).status_code == 400
    assert api_client.delete(f"{FHIR_URL}/Patient", headers=AUTH).status_code == 400


def test_method_not_allowed(api_client: TestClient, mock_gateway: MagicMock) -> None:
    response = api_client.patch(f"{FHIR_URL}/Patient/p1", json={}, headers=AUTH)

    assert response.status_code == 405
    assert response.json()["issue"][0]["code"] == "not-supported"


def test_invalid_json(api_client: TestClient, mock_gateway: MagicMock) -> None:
    response = api_client.post(
        f"{FHIR_URL}/Patient",
        content=b"{not json",
        headers={**AUTH, "Content-Type": "application/fhir+json"},
    )

    assert response.status_code == 400
    assert response.json()["issue"][0]["code"] == "invalid"


def test_crud_flow(api_client: TestClient, mock_gateway: MagicMock) -> None:
    response = create_patient(api_client)
    assert response.status_code == 201
    assert response.headers["location"] == f"http://testserver{FHIR_URL}/Patient/p1"
    assert response.headers["etag"] == 'W/"1"'
    assert "last-modified" in response.headers

    response = api_client.get(f"{FHIR_URL}/Patient/p1", headers=AUTH)
    assert response.status_code == 200
    assert response.json()["meta"]["versionId"] == "1"

    updated = patient_resource("p1")
    updated["gender"] = "female"
    response = api_client.put(
        f"{FHIR_URL}/Patient/p1", json=updated, headers={**AUTH, "If-Match": 'W/"1"'}
    )
    assert response.status_code == 200
    assert response.headers["etag"] == 'W/"2"'
    assert response.json()["gender"] == "female"

    response = api_client.put(
        f"{FHIR_URL}/Patient/p1", json=updated, headers={**AUTH, "If-Match": 'W/"1"'}
    )
    assert response.status_code == 409

    response = api_client.get(f"{FHIR_URL}/Patient", params={"gender": "female"}, headers=AUTH)
    assert response.status_code == 200
    assert response.json()["total"] == 1

    response = api_client.delete(f"{FHIR_URL}/Patient/p1", headers=AUTH)
    assert response.status_code == 204

    response = api_client.get(f"{FHIR_URL}/Patient/p1", headers=AUTH)
    assert response.status_code == 404
    assert response.json()["issue"][0]["code"] == "not-found"


def test_create_conflict(api_client: TestClient, mock_gateway: MagicMock) -> None:
    assert create_patient(api_client).status_code == 201
    assert create_patient(api_client).status_code == 409


def test_search_bundle_links(api_client: TestClient, mock_gateway: MagicMock) -> None:
    for i in range(3):
        api_client.post(
            f"{FHIR_URL}/Patient",
            json=patient_resource(f"p{i}", bsn=f"99991112{i}"),
            headers=AUTH,
        )

    response = api_client.get(f"{FHIR_URL}/Patient", params={"_count": "2"}, headers=AUTH)
    bundle = response.json()

    assert bundle["type"] == "searchset"
    assert bundle["total"] == 3
    assert len(bundle["entry"]) == 2
    links = {link["relation"]: link["url"] for link in bundle["link"]}
    assert links["next"].startswith(f"http://testserver{FHIR_URL}/Patient?")


def test_scope_failure_is_audited(api_client: TestClient, mock_gateway: MagicMock) -> None:
    as_user(mock_gateway, UserRole.RESEARCHER)

    response = api_client.post(f"{FHIR_URL}/Observation", json=observation_resource("o1", "p1"), headers=AUTH)

    assert response.status_code == 403
    assert response.json()["issue"][0]["code"] == "forbidden"
    entry = audit_entries()[-1]
    assert entry.action == "access_denied"
    assert entry.response_status == 403
    assert entry.details["attempted_action"] == "create_observation"


def test_requests_are_audited(api_client: TestClient, mock_gateway: MagicMock) -> None:
    create_patient(api_client, headers={"X-Forwarded-For": "10.0.0.1, 10.0.0.2"})
    api_client.get(f"{FHIR_URL}/Patient/p1", headers=AUTH)

    entries = {entry.action: entry for entry in audit_entries()}
    create, read = entries["create_patient"], entries["read_patient"]
    assert create.response_status == 201
    assert create.ip_address == "10.0.0.1"
    assert create.tenant_id == "tenant-a"
    assert read.resource_id == "p1"
    assert "duration_ms" in read.details


def test_super_admin_selects_tenant(api_client: TestClient, mock_gateway: MagicMock) -> None:
    as_user(mock_gateway, UserRole.SUPER_ADMIN)
    create_patient(api_client, headers={"X-Tenant-ID": TENANT_B})

    in_b = api_client.get(f"{FHIR_URL}/Patient", headers={**AUTH, "X-Tenant-ID": TENANT_B})
    in_a = api_client.get(f"{FHIR_URL}/Patient", headers=AUTH)

    assert in_b.json()["total"] == 1
    assert in_a.json()["total"] == 0


def test_patient_user_sees_own_record(api_client: TestClient, mock_gateway: MagicMock) -> None:
    create_patient(api_client, "p1")
    api_client.post(f"{FHIR_URL}/Patient", json=patient_resource("p2", bsn="999911132"), headers=AUTH)
    insert_user_mapping(get_database(), "patient-user", UserRole.PATIENT, patient=get_patient_row(get_database(), "p1"))

    as_user(mock_gateway, UserRole.PATIENT, user_id="patient-user")
    response = api_client.get(f"{FHIR_URL}/Patient", headers=AUTH)

    assert response.status_code == 200
    assert [e["resource"]["id"] for e in response.json()["entry"]] == ["p1"]
    assert api_client.get(f"{FHIR_URL}/Patient/p2", headers=AUTH).status_code == 404


def test_preflight(api_client: TestClient) -> None:
    response = api_client.options(f"{FHIR_URL}/Patient")

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert "X-Tenant-ID" in response.headers["access-control-allow-headers"]
    assert response.headers["access-control-max-age"] == "86400"
