import pytest

from xcom_validator.client import ApiError

WITHDRAWALS = "/accounts/1/transfers/withdrawals"
USD = {"nationalCurrencyCode": "USD"}
BTC = {"cryptocurrencySymbol": "BTC"}
ETH = {"cryptocurrencySymbol": "ETH"}


def _withdrawal(key, destination, amount="100", balance_asset=USD):
    return {"idempotencyKey": key, "balanceAmount": amount, "balanceAsset": balance_asset, "destination": destination}


def _internal(account_id, asset=USD):
    return {"transferMethod": "InternalTransfer", "accountId": account_id, "asset": asset}


def _peer(asset=USD):
    return {"transferMethod": "PeerAccountTransfer", "accountId": "peer-7", "asset": asset}


def _balance(api, account_id, balance_id):
    balances = api.request("GET", f"/accounts/{account_id}/balances")["balances"]
    return next(b["availableAmount"] for b in balances if b["id"] == balance_id)


def test_sub_account_transfer_moves_funds(api):
    withdrawal = api.request("POST", f"{WITHDRAWALS}/subaccount", body=_withdrawal("w-1", _internal("2"), "1000"))
    assert withdrawal["status"] == "succeeded"
    assert withdrawal["balanceAmount"] == "1000"
    assert _balance(api, "1", "1-usd") == "249000"
    assert _balance(api, "2", "2-usd") == "1001000"
    assert api.request("GET", f"{WITHDRAWALS}/{withdrawal['id']}") == withdrawal


def test_sub_account_transfer_creates_missing_balance(api):
    api.request("POST", f"{WITHDRAWALS}/subaccount", body=_withdrawal("w-2", _internal("3", BTC), "0.5", BTC))
    assert _balance(api, "3", "3-btc") == "0.5"
    assert _balance(api, "1", "1-btc") == "3"


def test_unknown_destination_sub_account_is_not_found(api):
    with pytest.raises(ApiError) as e:
        api.request("POST", f"{WITHDRAWALS}/subaccount", body=_withdrawal("w-3", _internal("999")))
    assert e.value.status == 404


def test_insufficient_funds(api):
    with pytest.raises(ApiError) as e:
        api.request("POST", f"{WITHDRAWALS}/peeraccount", body=_withdrawal("w-4", _peer(), "5000000"))
    assert e.value.status == 400
    assert e.value.body == {
        "message": "Insufficient funds",
        "errorType": "insufficient-funds",
        "requestPart": "body",
        "propertyName": "/balanceAmount",
    }
    assert _balance(api, "1", "1-usd") == "250000"


def test_unknown_balance_asset(api):
    with pytest.raises(ApiError) as e:
        api.request("POST", f"{WITHDRAWALS}/peeraccount", body=_withdrawal("w-5", _peer(), balance_asset={"assetId": "doge"}))
    assert e.value.body["errorType"] == "unknown-asset"
    assert e.value.body["propertyName"] == "/balanceAsset"


def test_blockchain_and_fiat_withdrawals_are_pending_and_listed_by_kind(api):
    chain_destination = {"transferMethod": "PublicBlockchain", "asset": ETH, "address": "0xabc"}
    chain = api.request("POST", f"{WITHDRAWALS}/blockchain", body=_withdrawal("w-6", chain_destination, "1", ETH))
    swift = {"transferMethod": "Swift", "accountHolder": {"name": "Ada"}, "swiftCode": "BANKUS33", "routingNumber": "021000021"}
    fiat = api.request("POST", f"{WITHDRAWALS}/fiat", body=_withdrawal("w-7", swift, "10"))
    assert chain["status"] == fiat["status"] == "pending"
    assert _balance(api, "1", "1-eth") == "39"
    assert [w["id"] for w in api.request("GET", f"{WITHDRAWALS}/blockchain")["withdrawals"]] == [chain["id"]]
    assert [w["id"] for w in api.request("GET", f"{WITHDRAWALS}/fiat")["withdrawals"]] == [fiat["id"]]
    assert api.request("GET", f"{WITHDRAWALS}/subaccount")["withdrawals"] == []
    newest_first = api.request("GET", WITHDRAWALS)["withdrawals"]
    assert [w["id"] for w in newest_first] == [fiat["id"], chain["id"]]
    oldest_first = api.request("GET", WITHDRAWALS, query={"order": "asc", "limit": 1})["withdrawals"]
    assert [w["id"] for w in oldest_first] == [chain["id"]]


def test_withdrawal_idempotency(api):
    body = _withdrawal("w-8", _peer(), "5")
    first = api.request("POST", f"{WITHDRAWALS}/peeraccount", body=body)
    assert api.request("POST", f"{WITHDRAWALS}/peeraccount", body=body)["id"] == first["id"]
    assert _balance(api, "1", "1-usd") == "249995"
    with pytest.raises(ApiError) as e:
        api.request("POST", f"{WITHDRAWALS}/peeraccount", body=dict(body, balanceAmount="6"))
    assert e.value.body["errorType"] == "idempotency-key-reuse"


def test_iban_destination_missing_holder_name(api):
    iban = {"transferMethod": "Iban", "accountHolder": {}, "iban": "DE89370400440532013000"}
    r = api.send("POST", f"{WITHDRAWALS}/fiat", body=_withdrawal("w-9", iban))
    assert r.status_code == 400
    assert r.json()["errorType"] == "schema-property-error"
    assert r.json()["propertyName"] == "/destination/accountHolder/name"


def test_invalid_list_order_is_rejected(api):
    r = api.send("GET", WITHDRAWALS, query={"order": "sideways"})
    assert r.status_code == 400
    assert r.json()["propertyName"] == "/order"


def test_unknown_withdrawal_is_not_found(api):
    r = api.send("GET", f"{WITHDRAWALS}/nope")
    assert r.status_code == 404
