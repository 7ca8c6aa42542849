from __future__ import annotations

import argparse
import json
import sys

from .auth.canonical import build_canonical_request
from .client import ApiClient, RequestSigner
from .config import load_config
from .crypto.alg_registry import SigningAlgorithmSpec, SigningError
from .crypto.keyloader import resolve_key_material
from .crypto.signers import SIGNATURE_ENCODINGS
from .schema.loader import load_contract


def _signer_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--api-key", help="X-FBAPI-KEY value (default FBAPI_API_KEY)")
    p.add_argument("--alg", help="hmac|rsa|ecdsa (default FBAPI_SIGNING_ALG)")
    p.add_argument("--hash", dest="hash_alg", help="sha256|sha512|sha3-256 (default FBAPI_SIGNING_HASH)")
    p.add_argument("--curve", help="ECDSA curve (default secp256k1)")
    p.add_argument("--key", help="HMAC secret or private key PEM; @path reads a file (default FBAPI_VERIFICATION_KEY)")
    p.add_argument("--encoding", choices=SIGNATURE_ENCODINGS, help="signature encoding (default base64)")


def _build_signer(args) -> RequestSigner:
    cfg = load_config()
    spec = SigningAlgorithmSpec.parse(args.alg or cfg.signing_alg, args.hash_alg or cfg.signing_hash, args.curve or cfg.signing_curve)
    key = resolve_key_material(args.key or cfg.verification_key)
    return RequestSigner(args.api_key or cfg.api_key, key, spec, args.encoding or cfg.signature_encoding)


def cmd_serve(args) -> int:
    import uvicorn

    from .server.app import create_app

    overrides = {}
    if args.port:
        overrides["port"] = args.port
    if args.openapi:
        overrides["openapi_path"] = args.openapi
    cfg = load_config(**overrides)
    uvicorn.run(create_app(cfg), host=args.host, port=cfg.port, log_level=cfg.log_level.lower())
    return 0


def cmd_sign(args) -> int:
    signer = _build_signer(args)
    body = args.body.encode("utf-8") if args.body else b""
    headers = signer.headers(args.method, args.target, body, timestamp_ms=args.timestamp, nonce=args.nonce)
    out = {"headers": headers}
    if args.show_canonical:
        ts = headers["X-FBAPI-TIMESTAMP"]
        nonce = headers["X-FBAPI-NONCE"]
        out["canonical"] = build_canonical_request(ts, nonce, args.method, args.target, body).decode("utf-8", "replace")
    print(json.dumps(out, indent=2))
    return 0


def cmd_conformance(args) -> int:
    from .conformance.suite import check_missing_body_properties, check_pagination_params

    cfg = load_config()
    contract = load_contract(args.openapi or cfg.openapi_path)
    ops = contract.all_operations()
    findings = []
    with ApiClient(args.base_url, _build_signer(args)) as client:
        if args.check in ("all", "pagination"):
            findings += check_pagination_params(client, ops, seed=args.seed)
        if args.check in ("all", "body"):
            findings += check_missing_body_properties(client, ops, attempts=args.attempts, seed=args.seed)
    print(json.dumps({"findings": [f.to_dict() for f in findings], "count": len(findings)}, indent=2))
    return 1 if findings else 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="xcom-validator", description="Exchange connectivity API reference server and conformance tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="Run the reference server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, help="default SERVER_PORT or 8000")
    p.add_argument("--openapi", help="OpenAPI contract path (default bundled contract)")
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("sign", help="Print the X-FBAPI-* headers for a request")
    p.add_argument("method")
    p.add_argument("target", help="path including query string, e.g. /accounts?limit=5")
    p.add_argument("--body", help="raw request body")
    p.add_argument("--timestamp", type=int, help="milliseconds since epoch (default now)")
    p.add_argument("--nonce")
    p.add_argument("--show-canonical", action="store_true")
    _signer_args(p)
    p.set_defaults(func=cmd_sign)

    p = sub.add_parser("conformance", help="Run conformance checks against a server")
    p.add_argument("--base-url", required=True)
    p.add_argument("--openapi", help="OpenAPI contract path (default bundled contract)")
    p.add_argument("--check", choices=("all", "pagination", "body"), default="all")
    p.add_argument("--attempts", type=int, default=3)
    p.add_argument("--seed", type=int)
    _signer_args(p)
    p.set_defaults(func=cmd_conformance)

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return args.func(args)
    except (SigningError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
