from datetime import datetime, timezone

import pytest

from nlcore_fhir.exceptions import InvalidRequestException
from nlcore_fhir.services.fhir.search_params import (
    date_range,
    extract_pagination,
    extract_reference_id,
    first_value,
    parse_date,
    parse_query,
    parse_sort,
    parse_token,
)


def test_parse_query_collects_repeated_keys() -> None:
    params = parse_query([("date", "ge2024"), ("code", "1234-5"), ("date", "lt2025")])

    assert params == {"date": ["ge2024", "lt2025"], "code": "1234-5"}
    assert first_value(params, "date") == "ge2024"
    assert first_value(params, "missing") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("http://loinc.org|8302-2", ("http://loinc.org", "8302-2")),
        ("8302-2", (None, "8302-2")),
        ("|8302-2", (None, "8302-2")),
        ("http://loinc.org|", ("http://loinc.org", None)),
    ],
)
def test_parse_token(value: str, expected: tuple[str | None, str | None]) -> None:
    assert parse_token(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-01", ("eq", "2024-01-01")),
        ("ge2024-01-01", ("ge", "2024-01-01")),
        ("sa2024", ("gt", "2024")),
        ("eb2024-03", ("lt", "2024-03")),
        ("ne2024", ("ne", "2024")),
    ],
)
def test_parse_date_prefixes(value: str, expected: tuple[str, str]) -> None:
    assert parse_date(value) == expected


def test_date_range_by_precision() -> None:
    utc = timezone.utc
    assert date_range("2024") == (datetime(2024, 1, 1, tzinfo=utc), datetime(2025, 1, 1, tzinfo=utc))
    assert date_range("2024-12") == (datetime(2024, 12, 1, tzinfo=utc), datetime(2025, 1, 1, tzinfo=utc))
    assert date_range("2024-02-28") == (datetime(2024, 2, 28, tzinfo=utc), datetime(2024, 2, 29, tzinfo=utc))

    start, end = date_range("2024-03-01T10:00:00+01:00")
    assert start == datetime(2024, 3, 1, 9, 0, 0, tzinfo=utc)
    assert (end - start).total_seconds() == 1


def test_date_range_invalid() -> None:
    with pytest.raises(InvalidRequestException):
        date_range("yesterday")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Patient/123", "123"),
        ("http://example.org/fhir/Patient/abc", "abc"),
        ("abc", "abc"),
    ],
)
def test_extract_reference_id(value: str, expected: str) -> None:
    assert extract_reference_id(value, "Patient") == expected


@pytest.mark.parametrize(
    "params, expected",
    [
        ({}, (20, 0)),
        ({"_count": "5", "_offset": "10"}, (5, 10)),
        ({"_count": "5000"}, (100, 0)),
        ({"_count": "0", "_offset": "-3"}, (1, 0)),
        ({"_count": "-5"}, (1, 0)),
        ({"_count": "many", "_offset": "x"}, (20, 0)),
    ],
)
def test_extract_pagination(params: dict[str, str], expected: tuple[int, int]) -> None:
    assert tuple(extract_pagination(params, default_count=20, max_count=100)) == expected  # type: ignore[arg-type]


def test_parse_sort() -> None:
    assert parse_sort({}) == ("_lastUpdated", True)
    assert parse_sort({"_sort": "birthdate"}) == ("birthdate", False)
    assert parse_sort({"_sort": "-date"}) == ("date", True)
