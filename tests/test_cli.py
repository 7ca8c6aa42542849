import json

from xcom_validator.auth.canonical import build_canonical_request
from xcom_validator.cli import main
from xcom_validator.crypto.alg_registry import SigningAlgorithmSpec
from xcom_validator.crypto.signers import decode_signature, verify


def test_sign_prints_verifiable_headers(capsys):
    rc = main([
        "sign", "POST", "/accounts/1/liquidity/quotes",
        "--body", '{"a":1}', "--timestamp", "1700000000000", "--nonce", "n-1",
        "--api-key", "desk", "--alg", "hmac", "--hash", "sha512", "--key", "secret", "--encoding", "hex",
        "--show-canonical",
    ])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    headers = out["headers"]
    assert headers["X-FBAPI-KEY"] == "desk"
    assert headers["X-FBAPI-TIMESTAMP"] == "1700000000000"
    assert out["canonical"] == '1700000000000n-1POST/accounts/1/liquidity/quotes{"a":1}'
    message = build_canonical_request("1700000000000", "n-1", "POST", "/accounts/1/liquidity/quotes", b'{"a":1}')
    verify(message, "secret", decode_signature(headers["X-FBAPI-SIGNATURE"], "hex"), SigningAlgorithmSpec.parse("hmac", "sha512"))


def test_sign_with_unsupported_algorithm_exits_2(capsys):
    rc = main(["sign", "GET", "/accounts", "--alg", "ecdsa", "--hash", "sha512", "--key", "x"])
    assert rc == 2
    assert "not supported" in capsys.readouterr().err
