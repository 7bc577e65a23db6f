import os

import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from attestgate.attestation.signing import public_key_pem_from_private
from attestgate.attestation.types import KeyType, PublicKey


def pytest_configure(config):
    os.environ.setdefault("ATTESTGATE_LOG_FORMAT", "text")
    os.environ.setdefault("ATTESTGATE_LOG_LEVEL", "DEBUG")


@pytest.fixture(autouse=True)
def _clean_attestgate_env(monkeypatch):
    monkeypatch.delenv("ATTESTGATE_STRICT_KEY_IDS", raising=False)
    monkeypatch.delenv("ATTESTGATE_DISABLED_KEY_TYPES", raising=False)
    monkeypatch.delenv("ATTESTGATE_PUBLIC_KEYS", raising=False)
    yield


@pytest.fixture(scope="session")
def ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def other_ec_private_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ed25519_private_key():
    return Ed25519PrivateKey.generate()


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def pkix_key(ec_private_key) -> PublicKey:
    return PublicKey(
        key_type=KeyType.PKIX,
        key_data=public_key_pem_from_private(ec_private_key),
        id="k1",
    )
