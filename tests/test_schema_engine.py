import pytest

from xcom_validator.errors import (
    ContentTypeError,
    ErrorType,
    RequestPart,
    ResponseSchemaViolation,
    SchemaCompilationError,
    SchemaViolation,
)
from xcom_validator.schema.ambiguity import AMBIGUOUS_PROPERTIES, expected_variants, union_equivalence_sets
from xcom_validator.schema.engine import SchemaEngine, coerce_value
from xcom_validator.schema.loader import parse_contract

AUTH = {
    "x-fbapi-key": "k",
    "x-fbapi-nonce": "n",
    "x-fbapi-timestamp": "1700000000000",
    "x-fbapi-signature": "sig",
}
QUOTES = "/accounts/{accountId}/liquidity/quotes"
ORDERS = "/accounts/{accountId}/trading/orders"


@pytest.fixture(scope="module")
def engine(contract):
    return SchemaEngine.from_contract(contract)


def _validate(engine, method, url, *, params=None, query=None, body=b"", content_type="application/json", headers=None):
    op = engine.operation(method, url)
    return engine.validate_request(
        op,
        headers=AUTH if headers is None else headers,
        path_params=params or {},
        query=query or {},
        content_type=content_type,
        raw_body=body,
    )


def test_contract_loads_every_operation(contract):
    assert len(contract) == 28
    op = contract.get("post", QUOTES + "/")
    assert op.operation_id == "createQuote"
    assert op.params["required"] == ["accountId"]
    assert set(op.headers["properties"]) == set(AUTH)
    assert {o.url for o in contract.paginated_operations()} >= {"/accounts", "/trading/books", QUOTES}


def test_valid_request_is_coerced(engine):
    req = _validate(engine, "GET", "/accounts", query={"limit": "5", "balances": "true"})
    assert req.query == {"limit": 5, "balances": True}
    assert req.headers["x-fbapi-timestamp"] == 1700000000000


def test_missing_header_is_property_error(engine):
    headers = dict(AUTH)
    del headers["x-fbapi-nonce"]
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "GET", "/accounts", headers=headers)
    assert e.value.request_part is RequestPart.HEADERS
    assert e.value.property_name == "/x-fbapi-nonce"
    assert e.value.error_type is ErrorType.SCHEMA_PROPERTY_ERROR


def test_query_type_error_names_the_property(engine):
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "GET", "/accounts", query={"balances": "maybe"})
    assert e.value.request_part is RequestPart.QUERYSTRING
    assert e.value.property_name == "/balances"


def test_body_missing_required_property(engine):
    body = b'{"fromAsset": {"nationalCurrencyCode": "USD"}, "fromAmount": "10"}'
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=body)
    assert e.value.request_part is RequestPart.BODY
    assert e.value.property_name == "/toAsset"
    assert e.value.to_wire()["errorType"] == "schema-property-error"


def test_union_failure_reports_first_branch(engine):
    body = b'{"fromAsset": {"nationalCurrencyCode": "USD"}, "toAsset": {"cryptocurrencySymbol": "BTC"}}'
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=body)
    assert e.value.property_name == "/fromAmount"


def test_nested_union_failure(engine):
    body = b'{"fromAsset": {}, "toAsset": {"cryptocurrencySymbol": "BTC"}, "toAmount": "1"}'
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=body)
    assert e.value.property_name == "/fromAsset/nationalCurrencyCode"


def test_non_object_body_is_schema_error(engine):
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=b"[]")
    assert e.value.property_name is None
    assert e.value.error_type is ErrorType.SCHEMA_ERROR
    assert e.value.to_wire() == {
        "message": e.value.message,
        "errorType": "schema-error",
        "requestPart": "body",
    }


def test_invalid_json_is_body_schema_error(engine):
    with pytest.raises(SchemaViolation) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=b"{nope")
    assert e.value.request_part is RequestPart.BODY
    assert e.value.error_type is ErrorType.SCHEMA_ERROR


def test_wrong_content_type(engine):
    with pytest.raises(ContentTypeError) as e:
        _validate(engine, "POST", QUOTES, params={"accountId": "1"}, body=b"a=b", content_type="application/x-www-form-urlencoded")
    assert e.value.status_code == 400
    assert e.value.request_part is RequestPart.HEADERS


def test_response_validation(engine):
    op = engine.operation("GET", "/trading/books/{id}")
    engine.validate_response(op, 200, {"id": "x", "baseAsset": {"assetId": "a"}, "quoteAsset": {"nationalCurrencyCode": "USD"}})
    with pytest.raises(ResponseSchemaViolation) as e:
        engine.validate_response(op, 200, {"id": "x"})
    assert e.value.status_code == 500
    assert "/baseAsset" in e.value.detail
    # undeclared statuses are not checked
    engine.validate_response(op, 500, {"anything": True})


def test_broken_schema_fails_compilation():
    doc = {
        "paths": {
            "/x": {
                "post": {
                    "requestBody": {"content": {"application/json": {"schema": {"type": "nonsense"}}}},
                    "responses": {"200": {"description": "ok"}},
                }
            }
        }
    }
    with pytest.raises(SchemaCompilationError):
        SchemaEngine.from_contract(parse_contract(doc))


def test_nullable_and_refs_are_resolved():
    doc = {
        "paths": {
            "/x/{id}": {
                "get": {
                    "parameters": [{"name": "id", "in": "path", "schema": {"$ref": "#/components/schemas/Id"}}],
                    "responses": {"200": {"description": "ok"}},
                }
            }
        },
        "components": {"schemas": {"Id": {"type": "string", "nullable": True}}},
    }
    op = parse_contract(doc).get("GET", "/x/{id}")
    assert op.params == {"type": "object", "properties": {"id": {"type": ["string", "null"]}}, "required": ["id"]}


@pytest.mark.parametrize(
    "schema,value,expected",
    [
        ({"type": "integer"}, "42", 42),
        ({"type": "integer"}, "4.2", "4.2"),
        ({"type": "number"}, "4.5", 4.5),
        ({"type": "boolean"}, "false", False),
        ({"type": "string"}, "42", "42"),
        (None, "42", "42"),
    ],
)
def test_coerce_value(schema, value, expected):
    assert coerce_value(schema, value) == expected


def test_equivalence_sets_derived_from_contract(contract):
    quote = contract.get("POST", QUOTES).body
    derived = union_equivalence_sets(quote)
    assert ["/fromAmount", "/toAmount"] in derived
    assert ["/fromAsset/nationalCurrencyCode", "/fromAsset/cryptocurrencySymbol", "/fromAsset/assetId"] in derived
    order = contract.get("POST", ORDERS).body
    assert union_equivalence_sets(order) == AMBIGUOUS_PROPERTIES[ORDERS]


def test_expected_variants():
    assert "/fromAmount" in expected_variants(QUOTES, "/toAmount")
    assert expected_variants(QUOTES, "/fromAsset") == ["/fromAsset"]
    assert expected_variants("/unknown", "/a", body_schema={"oneOf": [{"required": ["a"]}, {"required": ["b"]}]}) == ["/a", "/b"]


def test_fiat_destination_union_is_one_equivalence_set(contract):
    fiat = contract.get("POST", "/accounts/{accountId}/transfers/withdrawals/fiat").body
    derived = union_equivalence_sets(fiat)
    assert [
        "/destination/transferMethod",
        "/destination/accountHolder",
        "/destination/iban",
        "/destination/swiftCode",
        "/destination/routingNumber",
    ] in derived
    fiat_url = "/accounts/{accountId}/transfers/withdrawals/fiat"
    assert "/destination/iban" in expected_variants(fiat_url, "/destination/accountHolder/name")
    assert expected_variants(fiat_url, "/balanceAmount") == ["/balanceAmount"]
