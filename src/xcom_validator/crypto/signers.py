"""Sign/verify over the three supported signature families.

Pure cryptography: no knowledge of HTTP. Keys are HMAC secrets (str/bytes)
or PEM-encoded RSA/EC keys.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Dict, Protocol, Type, runtime_checkable

from cryptography import exceptions as crypto_exceptions
from cryptography.hazmat.primitives import hmac
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from .alg_registry import (
    Family,
    InvalidSignature,
    InvalidSigningKey,
    SigningAlgorithmSpec,
)
from .keyloader import KeyMaterial, as_bytes, load_private_key, load_public_key

# Errors raised by cryptography while parsing key material
_KEY_PARSE_ERRORS = (ValueError, TypeError, crypto_exceptions.UnsupportedAlgorithm)


@runtime_checkable
class Signer(Protocol):
    spec: SigningAlgorithmSpec

    def sign(self, message: bytes, key: KeyMaterial) -> bytes: ...
    def verify(self, message: bytes, key: KeyMaterial, signature: bytes) -> None: ...


@dataclass(frozen=True)
class HmacSigner:
    spec: SigningAlgorithmSpec

    def _mac(self, key: KeyMaterial) -> hmac.HMAC:
        return hmac.HMAC(as_bytes(key), self.spec.hash_algorithm())

    def sign(self, message: bytes, key: KeyMaterial) -> bytes:
        mac = self._mac(key)
        mac.update(message)
        return mac.finalize()

    def verify(self, message: bytes, key: KeyMaterial, signature: bytes) -> None:
        mac = self._mac(key)
        mac.update(message)
        try:
            mac.verify(signature)  # constant-time compare
        except crypto_exceptions.InvalidSignature:
            raise InvalidSignature("HMAC mismatch") from None


@dataclass(frozen=True)
class RsaSigner:
    spec: SigningAlgorithmSpec

    def sign(self, message: bytes, key: KeyMaterial) -> bytes:
        try:
            sk = load_private_key(key)
        except _KEY_PARSE_ERRORS as e:
            raise InvalidSigningKey(f"cannot load RSA private key: {e}") from e
        if not isinstance(sk, rsa.RSAPrivateKey):
            raise InvalidSigningKey("expected an RSA private key")
        return sk.sign(message, padding.PKCS1v15(), self.spec.hash_algorithm())

    def verify(self, message: bytes, key: KeyMaterial, signature: bytes) -> None:
        try:
            pk = load_public_key(key)
        except _KEY_PARSE_ERRORS:
            raise InvalidSignature("verification key is not a valid public key") from None
        if not isinstance(pk, rsa.RSAPublicKey):
            raise InvalidSignature("verification key is not an RSA public key")
        try:
            pk.verify(signature, message, padding.PKCS1v15(), self.spec.hash_algorithm())
        except crypto_exceptions.InvalidSignature:
            raise InvalidSignature("RSA signature mismatch") from None


@dataclass(frozen=True)
class EcdsaSigner:
    spec: SigningAlgorithmSpec

    def _curve_matches(self, key) -> bool:
        return isinstance(key.curve, self.spec.curve_class())

    def sign(self, message: bytes, key: KeyMaterial) -> bytes:
        try:
            sk = load_private_key(key)
        except _KEY_PARSE_ERRORS as e:
            raise InvalidSigningKey(f"cannot load EC private key: {e}") from e
        if not isinstance(sk, ec.EllipticCurvePrivateKey):
            raise InvalidSigningKey("expected an EC private key")
        if not self._curve_matches(sk):
            raise InvalidSigningKey(f"private key is on {sk.curve.name}, expected {self.spec.curve}")
        return sk.sign(message, ec.ECDSA(self.spec.hash_algorithm()))

    def verify(self, message: bytes, key: KeyMaterial, signature: bytes) -> None:
        try:
            pk = load_public_key(key)
        except _KEY_PARSE_ERRORS:
            raise InvalidSignature("verification key is not a valid public key") from None
        if not isinstance(pk, ec.EllipticCurvePublicKey):
            raise InvalidSignature("verification key is not an EC public key")
        if not self._curve_matches(pk):
            raise InvalidSignature(f"public key is on {pk.curve.name}, expected {self.spec.curve}")
        try:
            pk.verify(signature, message, ec.ECDSA(self.spec.hash_algorithm()))
        except crypto_exceptions.InvalidSignature:
            raise InvalidSignature("ECDSA signature mismatch") from None


_SIGNERS: Dict[Family, Type] = {
    Family.HMAC: HmacSigner,
    Family.RSA: RsaSigner,
    Family.ECDSA: EcdsaSigner,
}


def resolve_signer(spec: SigningAlgorithmSpec) -> Signer:
    spec.check_supported()
    return _SIGNERS[spec.family](spec)


def sign(message: bytes, key: KeyMaterial, spec: SigningAlgorithmSpec) -> bytes:
    return resolve_signer(spec).sign(message, key)


def verify(message: bytes, key: KeyMaterial, signature: bytes, spec: SigningAlgorithmSpec) -> None:
    resolve_signer(spec).verify(message, key, signature)


SIGNATURE_ENCODINGS = ("base64", "hex")


def encode_signature(raw: bytes, encoding: str = "base64") -> str:
    if encoding == "base64":
        return base64.b64encode(raw).decode()
    if encoding == "hex":
        return raw.hex()
    raise ValueError(f"unknown signature encoding: {encoding}")


def decode_signature(text: str, encoding: str = "base64") -> bytes:
    try:
        if encoding == "base64":
            return base64.b64decode(text, validate=True)
        if encoding == "hex":
            return bytes.fromhex(text)
    except (binascii.Error, ValueError):
        raise InvalidSignature(f"signature is not valid {encoding}") from None
    raise ValueError(f"unknown signature encoding: {encoding}")


__all__ = [
    "Signer",
    "HmacSigner",
    "RsaSigner",
    "EcdsaSigner",
    "resolve_signer",
    "sign",
    "verify",
    "SIGNATURE_ENCODINGS",
    "encode_signature",
    "decode_signature",
]
