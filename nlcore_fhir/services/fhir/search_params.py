"""
Parsing of FHIR search parameters and their translation into SQLAlchemy
where clauses.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, NamedTuple, Tuple

from sqlalchemy import ColumnElement, and_, or_, true

from nlcore_fhir.exceptions import InvalidRequestException

SearchParams = Dict[str, str | List[str]]

DATE_PREFIXES = ("eq", "ne", "lt", "le", "gt", "ge", "sa", "eb")

_DATE_RE = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")


class Pagination(NamedTuple):
    count: int
    offset: int


def parse_query(items: Iterable[Tuple[str, str]]) -> SearchParams:
    """
    Collects the query string into a dict. Repeated keys become a list of
    values in the order they were given.
    """
    params: SearchParams = {}
    for key, value in items:
        if key not in params:
            params[key] = value
            continue
        existing = params[key]
        if isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


def first_value(params: SearchParams, name: str) -> str | None:
    value = params.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def parse_token(value: str) -> Tuple[str | None, str | None]:
    if "|" not in value:
        return None, value or None
    system, code = value.split("|", 1)
    return system or None, code or None


def parse_date(value: str) -> Tuple[str, str]:
    prefix = value[:2]
    if prefix in DATE_PREFIXES:
        value = value[2:]
    else:
        prefix = "eq"

    if prefix == "sa":
        prefix = "gt"
    elif prefix == "eb":
        prefix = "lt"
    return prefix, value


def date_range(value: str) -> Tuple[datetime, datetime]:
    """
    Returns the half open UTC interval [start, end) covered by a FHIR date
    or dateTime, based on the precision of the given value.
    """
    try:
        if _DATE_RE.match(value):
            parts = [int(p) for p in value.split("-")]
            if len(parts) == 1:
                start = datetime(parts[0], 1, 1, tzinfo=timezone.utc)
                end = datetime(parts[0] + 1, 1, 1, tzinfo=timezone.utc)
            elif len(parts) == 2:
                start = datetime(parts[0], parts[1], 1, tzinfo=timezone.utc)
                end = (
                    datetime(parts[0] + 1, 1, 1, tzinfo=timezone.utc)
                    if parts[1] == 12
                    else datetime(parts[0], parts[1] + 1, 1, tzinfo=timezone.utc)
                )
            else:
                start = datetime(parts[0], parts[1], parts[2], tzinfo=timezone.utc)
                end = start + timedelta(days=1)
            return start, end

        moment = parse_datetime(value)
        return moment, moment + timedelta(seconds=1)
    except ValueError as e:
        raise InvalidRequestException(
            "Invalid date parameter", f"Cannot parse '{value}': {e}"
        )


def parse_datetime(value: str) -> datetime:
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def date_clause(column: Any, value: str, date_only: bool = False) -> ColumnElement[bool]:
    prefix, raw = parse_date(value)
    start, end = date_range(raw)
    lower: date | datetime = start.date() if date_only else start
    upper: date | datetime = end.date() if date_only else end

    if prefix == "ne":
        return or_(column < lower, column >= upper)
    if prefix == "lt":
        return column < lower
    if prefix == "le":
        return column < upper
    if prefix == "gt":
        return column >= upper
    if prefix == "ge":
        return column >= lower
    return and_(column >= lower, column < upper)


def token_clause(
    system_column: Any, code_column: Any, value: str
) -> ColumnElement[bool]:
    system, code = parse_token(value)
    conditions = []
    if system is not None and system_column is not None:
        conditions.append(system_column == system)
    if code is not None:
        conditions.append(code_column == code)
    return and_(true(), *conditions)


def string_clause(column: Any, value: str) -> ColumnElement[bool]:
    return column.ilike(f"%{value}%")


def extract_reference_id(value: str, resource_type: str) -> str:
    """
    Returns the logical id from 'Type/id', an absolute url ending in
    'Type/id' or a bare id.
    """
    match = re.search(rf"{resource_type}/([^/]+)$", value)
    if match:
        return match.group(1)
    return value.rsplit("/", 1)[-1]


def extract_pagination(
    params: SearchParams, default_count: int, max_count: int
) -> Pagination:
    try:
        count = int(first_value(params, "_count") or default_count)
    except ValueError:
        count = default_count
    if count < 1:
        count = 1

    try:
        offset = int(first_value(params, "_offset") or 0)
    except ValueError:
        offset = 0

    return Pagination(count=min(count, max_count), offset=max(offset, 0))


def parse_sort(params: SearchParams) -> Tuple[str, bool]:
    """
    Returns the sort parameter name and whether it sorts descending. Without
    a _sort the newest resources come first.
    """
    value = first_value(params, "_sort")
    if not value:
        return "_lastUpdated", True
    if value.startswith("-"):
        return value[1:], True
    return value, False
