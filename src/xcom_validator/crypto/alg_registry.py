"""Algorithm registry for request signing.

Supported combinations:

  family   digests                       curve
  hmac     sha256, sha512, sha3-256      -
  rsa      sha256, sha512, sha3-256      -        (PKCS#1 v1.5 over PEM keys)
  ecdsa    sha256                        secp256k1 (default) or another named curve

Runtime strings ("hmac", "sha3-256", ...) are parsed once into a
SigningAlgorithmSpec; everything downstream works with the enums.
Combinations outside the table raise AlgorithmNotSupported before any
cryptographic operation takes place.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Type

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec


class SigningError(Exception):
    """Base class for signature engine failures."""


class AlgorithmNotSupported(SigningError):
    """The (family, digest[, curve]) combination is not in the support table."""


class InvalidSignature(SigningError):
    """The cryptographic check failed (wrong key, tampered message or signature)."""


class InvalidSigningKey(SigningError):
    """Sign-side key material cannot be used with the requested algorithm."""


class Family(str, Enum):
    HMAC = "hmac"
    RSA = "rsa"
    ECDSA = "ecdsa"


class Digest(str, Enum):
    SHA256 = "sha256"
    SHA512 = "sha512"
    SHA3_256 = "sha3-256"


DEFAULT_CURVE = "secp256k1"

_NAMED_CURVES = (
    ec.SECP192R1,
    ec.SECP224R1,
    ec.SECP256K1,
    ec.SECP256R1,
    ec.SECP384R1,
    ec.SECP521R1,
    ec.SECT163K1,
    ec.SECT163R2,
    ec.SECT233K1,
    ec.SECT233R1,
    ec.SECT283K1,
    ec.SECT283R1,
    ec.SECT409K1,
    ec.SECT409R1,
    ec.SECT571K1,
    ec.SECT571R1,
    ec.BrainpoolP256R1,
    ec.BrainpoolP384R1,
    ec.BrainpoolP512R1,
)

# Every named curve cryptography implements, keyed by lower-cased name, plus the X9.62 aliases
CURVES: Dict[str, Type[ec.EllipticCurve]] = {c.name.lower(): c for c in _NAMED_CURVES}
CURVES.update({"prime192v1": ec.SECP192R1, "prime256v1": ec.SECP256R1})

SUPPORTED_DIGESTS: Dict[Family, FrozenSet[Digest]] = {
    Family.HMAC: frozenset({Digest.SHA256, Digest.SHA512, Digest.SHA3_256}),
    Family.RSA: frozenset({Digest.SHA256, Digest.SHA512, Digest.SHA3_256}),
    Family.ECDSA: frozenset({Digest.SHA256}),
}

_HASHES = {
    Digest.SHA256: hashes.SHA256,
    Digest.SHA512: hashes.SHA512,
    Digest.SHA3_256: hashes.SHA3_256,
}


@dataclass(frozen=True)
class SigningAlgorithmSpec:
    family: Family
    digest: Digest
    curve: Optional[str] = None

    @classmethod
    def parse(cls, family: str, digest: str, curve: Optional[str] = None) -> "SigningAlgorithmSpec":
        try:
            fam = Family((family or "").lower())
        except ValueError:
            raise AlgorithmNotSupported(f"unknown signing algorithm family: {family!r}") from None
        try:
            dig = Digest((digest or "").lower())
        except ValueError:
            raise AlgorithmNotSupported(f"unknown digest: {digest!r}") from None
        if fam is Family.ECDSA:
            curve = (curve or DEFAULT_CURVE).lower()
        return cls(family=fam, digest=dig, curve=curve)

    @property
    def label(self) -> str:
        if self.family is Family.ECDSA:
            return f"{self.family.value}/{self.digest.value}/{self.curve or DEFAULT_CURVE}"
        return f"{self.family.value}/{self.digest.value}"

    def check_supported(self) -> None:
        allowed = SUPPORTED_DIGESTS.get(self.family)
        if allowed is None or self.digest not in allowed:
            raise AlgorithmNotSupported(f"{self.label} is not supported")
        if self.family is Family.ECDSA and (self.curve or DEFAULT_CURVE) not in CURVES:
            raise AlgorithmNotSupported(f"curve {self.curve!r} is not supported")

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        return _HASHES[self.digest]()

    def curve_class(self) -> Type[ec.EllipticCurve]:
        return CURVES[self.curve or DEFAULT_CURVE]


__all__ = [
    "SigningError",
    "AlgorithmNotSupported",
    "InvalidSignature",
    "InvalidSigningKey",
    "Family",
    "Digest",
    "DEFAULT_CURVE",
    "CURVES",
    "SUPPORTED_DIGESTS",
    "SigningAlgorithmSpec",
]
