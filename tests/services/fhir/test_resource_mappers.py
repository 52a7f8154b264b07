import copy
from datetime import datetime
from typing import Any, Dict

import pytest

from nlcore_fhir.exceptions import InvalidRequestException
from nlcore_fhir.models.fhir.types import NL_CORE_PROFILES, FhirResources
from nlcore_fhir.services.fhir.resources.base import PatientLinkedMapper, ResourceMapper
from nlcore_fhir.services.fhir.resources.factory import create_mappers
from nlcore_fhir.services.fhir.resources.patient import PatientMapper, hash_bsn

MAPPERS = create_mappers("test-salt")


def test_factory_covers_all_resources() -> None:
    assert set(MAPPERS.keys()) == {r.value for r in FhirResources}


@pytest.mark.parametrize("resource_type", sorted(MAPPERS.keys()))
def test_examples_are_valid(resource_type: str) -> None:
    mapper = MAPPERS[resource_type]
    example = copy.deepcopy(mapper.example)
    example["id"] = "example-id"

    mapper.validate(example)
    assert mapper.profile(example) in NL_CORE_PROFILES.values()


@pytest.mark.parametrize("resource_type", sorted(MAPPERS.keys()))
def test_example_columns(resource_type: str) -> None:
    mapper = MAPPERS[resource_type]
    example = copy.deepcopy(mapper.example)
    example["id"] = "example-id"

    row = mapper.to_row(example, "tenant-a")

    assert row.tenant_id == "tenant-a"
    assert row.resource_id == "example-id"
    assert row.resource == example
    if isinstance(mapper, PatientLinkedMapper):
        assert mapper.patient_reference(example) == "example"


def test_validate_rejects_invalid() -> None:
    with pytest.raises(InvalidRequestException):
        MAPPERS["Observation"].validate({"resourceType": "Observation", "id": "o1"})


def test_patient_columns() -> None:
    mapper = PatientMapper("salt")
    resource: Dict[str, Any] = {
        "resourceType": "Patient",
        "id": "p1",
        "identifier": [{"system": "http://fhir.nl/fhir/NamingSystem/bsn", "value": "999911120"}],
        "name": [
            {"use": "usual", "family": "Jantje"},
            {"use": "official", "family": "Jansen", "given": ["Jan", "Piet"]},
        ],
        "birthDate": "1980-05-12",
        "deceasedDateTime": "2020-01-01",
        "active": False,
    }

    columns = mapper.columns(resource)

    assert columns["bsn_hash"] == hash_bsn("999911120", "salt")
    assert columns["bsn_hash"] != "999911120"
    assert columns["family_name"] == "Jansen"
    assert columns["given_name"] == "Jan Piet"
    assert str(columns["birth_date"]) == "1980-05-12"
    assert columns["deceased"] is True
    assert columns["fhir_active"] is False


def test_bsn_hash_depends_on_salt() -> None:
    assert hash_bsn("999911120", "a") != hash_bsn("999911120", "b")


def test_observation_columns_in_utc() -> None:
    mapper = MAPPERS["Observation"]
    columns = mapper.columns(mapper.example)

    assert columns["code_code"] == "29463-7"
    assert columns["category"] == "vital-signs"
    assert columns["value_quantity_value"] == 72.5
    assert columns["effective_datetime"].hour == 8


def test_to_resource_sets_meta() -> None:
    mapper: ResourceMapper = MAPPERS["Organization"]
    example = copy.deepcopy(mapper.example)
    example["id"] = "org-1"
    row = mapper.to_row(example, "tenant-a")
    row.version_id = 3
    row.last_updated = datetime(2024, 1, 1, 12, 0, 0)

    resource = mapper.to_resource(row)

    assert resource["id"] == "org-1"
    assert resource["meta"]["versionId"] == "3"
    assert resource["meta"]["lastUpdated"] == "2024-01-01T12:00:00+00:00"
    assert resource["meta"]["profile"] == [NL_CORE_PROFILES["Organization"]]


def test_sort_column() -> None:
    mapper = MAPPERS["Patient"]

    assert mapper.sort_column("_lastUpdated") is mapper.entity.last_updated
    assert mapper.sort_column("birthdate") is mapper.entity.birth_date
    assert mapper.sort_column("unknown") is None
