from fastapi.testclient import TestClient


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "components": {"database": "ok"}}


def test_index(api_client: TestClient) -> None:
    response = api_client.get("/")

    assert response.status_code == 200
    assert response.json()["fhirVersion"] == "4.0.1"
    assert "/api/fhir/R4" in response.json()["endpoints"]["fhir"]
