import textwrap

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from xcom_validator.crypto.alg_registry import (
    AlgorithmNotSupported,
    InvalidSignature,
    InvalidSigningKey,
    SigningAlgorithmSpec,
)
from xcom_validator.crypto.signers import decode_signature, encode_signature, sign, verify

MESSAGE = b"1700000000000abcGET/accounts?limit=5"


def _pem_pair(sk):
    private = sk.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public = sk.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private, public


@pytest.mark.parametrize("digest", ["sha256", "sha512", "sha3-256"])
def test_hmac_round_trip(digest):
    spec = SigningAlgorithmSpec.parse("hmac", digest)
    sig = sign(MESSAGE, "secret", spec)
    verify(MESSAGE, "secret", sig, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE, "other-secret", sig, spec)


@pytest.mark.parametrize("digest", ["sha256", "sha512", "sha3-256"])
def test_rsa_round_trip(rsa_keys, digest):
    private, public = rsa_keys
    spec = SigningAlgorithmSpec.parse("rsa", digest)
    sig = sign(MESSAGE, private, spec)
    verify(MESSAGE, public, sig, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE + b"x", public, sig, spec)


def test_ecdsa_sha256_round_trip(ec_keys):
    private, public = ec_keys
    spec = SigningAlgorithmSpec.parse("ecdsa", "sha256")
    assert spec.curve == "secp256k1"
    sig = sign(MESSAGE, private, spec)
    verify(MESSAGE, public, sig, spec)


@pytest.mark.parametrize("digest", ["sha512", "sha3-256"])
def test_ecdsa_rejects_other_digests_on_both_sides(ec_keys, digest):
    private, public = ec_keys
    spec = SigningAlgorithmSpec.parse("ecdsa", digest)
    with pytest.raises(AlgorithmNotSupported):
        sign(MESSAGE, private, spec)
    with pytest.raises(AlgorithmNotSupported):
        verify(MESSAGE, public, b"\x00" * 64, spec)


def test_ecdsa_with_rsa_public_key_is_invalid_signature(ec_keys, rsa_keys):
    private, _ = ec_keys
    spec = SigningAlgorithmSpec.parse("ecdsa", "sha256")
    sig = sign(MESSAGE, private, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE, rsa_keys[1], sig, spec)


def test_ecdsa_curve_mismatch(ec_keys):
    private, public = ec_keys
    spec = SigningAlgorithmSpec.parse("ecdsa", "sha256", "secp384r1")
    with pytest.raises(InvalidSigningKey):
        sign(MESSAGE, private, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE, public, b"\x00" * 64, spec)


def test_rsa_sign_with_garbage_key():
    with pytest.raises(InvalidSigningKey):
        sign(MESSAGE, "not a pem", SigningAlgorithmSpec.parse("rsa", "sha256"))


def test_indented_pem_is_accepted(rsa_keys):
    private, public = rsa_keys
    spec = SigningAlgorithmSpec.parse("rsa", "sha256")
    indented = textwrap.indent(public, "        ")
    verify(MESSAGE, indented, sign(MESSAGE, textwrap.indent(private, "    "), spec), spec)


@pytest.mark.parametrize("family,digest", [("dsa", "sha256"), ("hmac", "md5"), ("", "sha256")])
def test_unknown_names_are_not_supported(family, digest):
    with pytest.raises(AlgorithmNotSupported):
        SigningAlgorithmSpec.parse(family, digest)


@pytest.mark.parametrize("encoding", ["base64", "hex"])
def test_signature_encodings(encoding):
    raw = bytes(range(32))
    assert decode_signature(encode_signature(raw, encoding), encoding) == raw


def test_undecodable_signature_is_invalid_signature():
    with pytest.raises(InvalidSignature):
        decode_signature("***not base64***", "base64")
    with pytest.raises(InvalidSignature):
        decode_signature("zz", "hex")


def _flip(data: bytes, index: int) -> bytes:
    out = bytearray(data)
    out[index] ^= 0x01
    return bytes(out)


@pytest.fixture
def signing_material(rsa_keys, ec_keys):
    return {
        "hmac": ("secret", "secret"),
        "rsa": rsa_keys,
        "ecdsa": ec_keys,
    }


@pytest.mark.parametrize("family", ["hmac", "rsa", "ecdsa"])
@pytest.mark.parametrize("index", [0, -1])
def test_single_byte_mutation_fails_verification(signing_material, family, index):
    private, public = signing_material[family]
    spec = SigningAlgorithmSpec.parse(family, "sha256")
    sig = sign(MESSAGE, private, spec)
    with pytest.raises(InvalidSignature):
        verify(_flip(MESSAGE, index), public, sig, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE, public, _flip(sig, index), spec)


def test_rsa_with_ec_public_key_is_invalid_signature(rsa_keys, ec_keys):
    spec = SigningAlgorithmSpec.parse("rsa", "sha256")
    sig = sign(MESSAGE, rsa_keys[0], spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE, ec_keys[1], sig, spec)


@pytest.mark.parametrize("curve_name,curve", [("secp224r1", ec.SECP224R1()), ("brainpoolP256r1", ec.BrainpoolP256R1())])
def test_ecdsa_on_caller_supplied_curve(curve_name, curve):
    private, public = _pem_pair(ec.generate_private_key(curve))
    spec = SigningAlgorithmSpec.parse("ecdsa", "sha256", curve_name)
    sig = sign(MESSAGE, private, spec)
    verify(MESSAGE, public, sig, spec)
    with pytest.raises(InvalidSignature):
        verify(MESSAGE + b"x", public, sig, spec)


def test_ecdsa_unknown_curve_is_not_supported(ec_keys):
    spec = SigningAlgorithmSpec.parse("ecdsa", "sha256", "curve25519")
    with pytest.raises(AlgorithmNotSupported):
        sign(MESSAGE, ec_keys[0], spec)
