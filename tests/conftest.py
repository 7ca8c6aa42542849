import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from starlette.testclient import TestClient

from xcom_validator.auth.nonce_store import InMemoryNonceStore
from xcom_validator.auth.pipeline import ClientCredential, ClientRegistry
from xcom_validator.client import ApiClient, RequestSigner
from xcom_validator.config import ServerConfig
from xcom_validator.crypto.alg_registry import SigningAlgorithmSpec
from xcom_validator.schema.loader import load_contract
from xcom_validator.server.app import WebApp

HMAC_KEY = "test-api-key"
HMAC_SECRET = "s3cr3t"


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


@pytest.fixture(scope="session")
def rsa_keys():
    return _pem_pair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def ec_keys():
    return _pem_pair(ec.generate_private_key(ec.SECP256K1()))


@pytest.fixture(scope="session")
def contract():
    return load_contract(ServerConfig().openapi_path)


@pytest.fixture
def hmac_spec():
    return SigningAlgorithmSpec.parse("hmac", "sha256")


@pytest.fixture
def clients(hmac_spec):
    registry = ClientRegistry()
    registry.add(ClientCredential(api_key=HMAC_KEY, spec=hmac_spec, verification_key=HMAC_SECRET))
    return registry


@pytest.fixture
def webapp(contract, clients):
    cfg = ServerConfig(api_key="")
    return WebApp(contract, cfg, nonce_store=InMemoryNonceStore(ttl_seconds=60), clients=clients)


@pytest.fixture
def http(webapp):
    with TestClient(webapp.app) as client:
        yield client


@pytest.fixture
def signer(hmac_spec):
    return RequestSigner(HMAC_KEY, HMAC_SECRET, hmac_spec)


@pytest.fixture
def api(http, signer):
    return ApiClient(http=http, signer=signer)
