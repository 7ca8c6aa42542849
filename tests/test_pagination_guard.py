import pytest
from starlette.datastructures import QueryParams

from xcom_validator.errors import ErrorType, PaginationExclusivityError, PaginationRangeError, RequestPart, SchemaViolation
from xcom_validator.schema.pagination import DEFAULT_LIMIT, PaginationGuard, PaginationWindow
from xcom_validator.server.controllers.pagination import get_pagination_result
from xcom_validator.utils.numbers import parse_int

ITEMS = [{"id": str(i)} for i in range(1, 8)]


@pytest.fixture
def books(contract):
    return contract.get("GET", "/trading/books")


def test_non_paginated_operation_is_ignored(contract):
    assert PaginationGuard().check(contract.get("GET", "/trading/books/{id}"), {"limit": "-1"}) is None


def test_defaults(books):
    assert PaginationGuard().check(books, {}) == PaginationWindow(limit=DEFAULT_LIMIT)


@pytest.mark.parametrize("limit", ["1", "200"])
def test_limit_bounds_are_inclusive(books, limit):
    assert PaginationGuard().check(books, {"limit": limit}).limit == int(limit)


@pytest.mark.parametrize("limit", ["-1", "0", "201", "ten", "1.5"])
def test_limit_out_of_range(books, limit):
    with pytest.raises(PaginationRangeError) as e:
        PaginationGuard().check(books, {"limit": limit})
    wire = e.value.to_wire()
    assert e.value.status_code == 400
    assert wire["errorType"] == ErrorType.SCHEMA_PROPERTY_ERROR.value
    assert wire["requestPart"] == RequestPart.QUERYSTRING.value
    assert wire["propertyName"] == "/limit"


def test_cursors_are_mutually_exclusive(books):
    with pytest.raises(PaginationExclusivityError) as e:
        PaginationGuard().check(books, {"startingAfter": "a", "endingBefore": "b"})
    wire = e.value.to_wire()
    assert wire["errorType"] == "schema-error"
    assert wire["requestPart"] == "querystring"
    assert "propertyName" not in wire


def test_page_after_and_before_cursor():
    assert [i["id"] for i in get_pagination_result(PaginationWindow(limit=2, starting_after="3"), ITEMS)] == ["4", "5"]
    assert [i["id"] for i in get_pagination_result(PaginationWindow(limit=2, ending_before="3"), ITEMS)] == ["1", "2"]
    assert [i["id"] for i in get_pagination_result(PaginationWindow(limit=5, ending_before="2"), ITEMS)] == ["1"]
    assert [i["id"] for i in get_pagination_result(PaginationWindow(limit=3), ITEMS)] == ["1", "2", "3"]
    assert get_pagination_result(PaginationWindow(starting_after="missing"), ITEMS) == []
    assert len(get_pagination_result(None, ITEMS)) == 7


@pytest.mark.parametrize("query", ["limit=500&limit=5", "limit=5&limit=500", "startingAfter=1&startingAfter=2"])
def test_repeated_pagination_params_are_rejected(books, query):
    name = query.split("=", 1)[0]
    with pytest.raises(SchemaViolation) as e:
        PaginationGuard().check(books, QueryParams(query))
    wire = e.value.to_wire()
    assert wire["errorType"] == "schema-property-error"
    assert wire["requestPart"] == "querystring"
    assert wire["propertyName"] == f"/{name}"


@pytest.mark.parametrize(
    "text,signed,expected",
    [("42", True, 42), ("-3", True, -3), ("-3", False, None), ("+3", True, None), (" 3", True, None), ("1e3", True, None), ("", True, None), ("7\n", True, None)],
)
def test_parse_int(text, signed, expected):
    assert parse_int(text, signed=signed) == expected
