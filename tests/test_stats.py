from fastapi.testclient import TestClient

from nlcore_fhir.stats import MemoryClient, Statsd, get_stats, stats_key


def test_stats_key_collapses_resource_ids() -> None:
    assert stats_key("/api/fhir/R4/Patient/123") == "api.fhir.R4.Patient.id"
    assert stats_key("/api/fhir/R4/Patient") == "api.fhir.R4.Patient"
    assert stats_key("/health") == "health"
    assert stats_key("/") == "root"


def test_memory_client() -> None:
    stats = Statsd(MemoryClient())

    stats.inc("requests")
    stats.inc("requests", 2)
    stats.timing("response_time", 12)

    assert isinstance(stats.client, MemoryClient)
    assert stats.client.get_memory() == {"requests": 3, "response_time": [12]}


def test_middleware_records_requests(api_client: TestClient) -> None:
    api_client.get("/health")

    stats = get_stats()
    assert isinstance(stats, Statsd)
    assert isinstance(stats.client, MemoryClient)
    memory = stats.client.get_memory()
    assert memory["fhir.http.request.get.health"] >= 1
    assert "fhir.http.response_time" in memory
