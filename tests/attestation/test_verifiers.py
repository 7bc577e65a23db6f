from __future__ import annotations

import datetime

import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.x509.oid import NameOID

from attestgate.attestation.errors import (
    InvalidPublicKeyError,
    SignatureInvalidError,
    VerifierNotImplementedError,
)
from attestgate.attestation.signing import public_key_pem_from_private, sign_jwt, sign_pkix
from attestgate.attestation.types import KeyType
from attestgate.attestation.verifiers import (
    JwtVerifier,
    PgpVerifier,
    PkixVerifier,
    UnavailableVerifier,
    default_verifiers,
)


PAYLOAD = b'{"critical":{"image":{"docker-manifest-digest":"sha256:abc"},"type":"atomic container signature"}}'


def _self_signed_certificate_pem(private_key) -> bytes:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "attestor.example")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.mark.parametrize("key_fixture", ["ec_private_key", "ed25519_private_key", "rsa_private_key"])
def test_pkix_verifies_detached_signature(request, key_fixture):
    private_key = request.getfixturevalue(key_fixture)
    signature = sign_pkix(PAYLOAD, private_key)

    PkixVerifier().verify(signature, PAYLOAD, public_key_pem_from_private(private_key))


def test_pkix_accepts_rsa_pss_signature(rsa_private_key):
    signature = rsa_private_key.sign(
        PAYLOAD,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.MAX_LENGTH),
        hashes.SHA256(),
    )
    PkixVerifier().verify(signature, PAYLOAD, public_key_pem_from_private(rsa_private_key))


def test_pkix_accepts_raw_and_der_key_material(ed25519_private_key, ec_private_key):
    raw = ed25519_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    PkixVerifier().verify(sign_pkix(PAYLOAD, ed25519_private_key), PAYLOAD, raw)
    PkixVerifier().verify(sign_pkix(PAYLOAD, ed25519_private_key), PAYLOAD, raw.hex().encode("ascii"))

    der = ec_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    PkixVerifier().verify(sign_pkix(PAYLOAD, ec_private_key), PAYLOAD, der)


def test_pkix_accepts_certificate_key_material(ec_private_key):
    certificate_pem = _self_signed_certificate_pem(ec_private_key)
    PkixVerifier().verify(sign_pkix(PAYLOAD, ec_private_key), PAYLOAD, certificate_pem)


def test_pkix_rejects_signature_from_other_key(ec_private_key, other_ec_private_key):
    signature = sign_pkix(PAYLOAD, other_ec_private_key)
    with pytest.raises(SignatureInvalidError) as excinfo:
        PkixVerifier().verify(signature, PAYLOAD, public_key_pem_from_private(ec_private_key))
    assert excinfo.value.code == "SIGNATURE_INVALID"


def test_pkix_rejects_tampered_payload(ed25519_private_key):
    signature = sign_pkix(PAYLOAD, ed25519_private_key)
    with pytest.raises(SignatureInvalidError):
        PkixVerifier().verify(signature, PAYLOAD + b" ", public_key_pem_from_private(ed25519_private_key))


def test_pkix_rejects_unparseable_key_material():
    with pytest.raises(InvalidPublicKeyError) as excinfo:
        PkixVerifier().verify(b"sig", PAYLOAD, b"-----BEGIN PUBLIC KEY-----\nnot a key\n-----END PUBLIC KEY-----\n")
    assert isinstance(excinfo.value, SignatureInvalidError)
    assert excinfo.value.code == "INVALID_PUBLIC_KEY"


@pytest.mark.parametrize("key_fixture", ["ec_private_key", "ed25519_private_key", "rsa_private_key"])
def test_jwt_recovers_embedded_payload(request, key_fixture):
    private_key = request.getfixturevalue(key_fixture)
    token = sign_jwt(PAYLOAD, private_key)

    recovered = JwtVerifier().recover(token, public_key_pem_from_private(private_key))
    assert recovered == PAYLOAD


def test_jwt_rejects_token_from_other_key(ec_private_key, other_ec_private_key):
    token = sign_jwt(PAYLOAD, other_ec_private_key)
    with pytest.raises(SignatureInvalidError):
        JwtVerifier().recover(token, public_key_pem_from_private(ec_private_key))


def test_jwt_rejects_symmetric_algorithms(ec_private_key):
    token = jwt.PyJWS().encode(PAYLOAD, "shared-secret-0123456789abcdef0123456789", algorithm="HS256").encode("ascii")
    with pytest.raises(SignatureInvalidError):
        JwtVerifier().recover(token, public_key_pem_from_private(ec_private_key))


@pytest.mark.parametrize("token", [b"not-a-token", b"\xff\xfe", b""])
def test_jwt_rejects_malformed_tokens(ec_private_key, token):
    with pytest.raises(SignatureInvalidError):
        JwtVerifier().recover(token, public_key_pem_from_private(ec_private_key))


def test_pgp_reports_not_implemented_rather_than_invalid():
    with pytest.raises(VerifierNotImplementedError) as excinfo:
        PgpVerifier().recover(b"-----BEGIN PGP SIGNED MESSAGE-----", b"pgp-key")
    assert not isinstance(excinfo.value, SignatureInvalidError)
    assert excinfo.value.code == "NOT_IMPLEMENTED"


def test_default_verifiers_cover_every_family():
    verifiers = default_verifiers(disabled=[])
    assert set(verifiers) == set(KeyType)
    assert isinstance(verifiers[KeyType.PKIX], PkixVerifier)
    assert isinstance(verifiers[KeyType.JWT], JwtVerifier)
    assert isinstance(verifiers[KeyType.PGP], PgpVerifier)


def test_disabled_families_report_not_implemented(monkeypatch, ec_private_key):
    monkeypatch.setenv("ATTESTGATE_DISABLED_KEY_TYPES", "JWT, pgp")
    verifiers = default_verifiers()

    assert isinstance(verifiers[KeyType.JWT], UnavailableVerifier)
    assert isinstance(verifiers[KeyType.PGP], UnavailableVerifier)
    assert isinstance(verifiers[KeyType.PKIX], PkixVerifier)

    token = sign_jwt(PAYLOAD, ec_private_key)
    with pytest.raises(VerifierNotImplementedError):
        verifiers[KeyType.JWT].verified_payload(token, b"", public_key_pem_from_private(ec_private_key))


@pytest.fixture(scope="module", params=[ec.SECP384R1, ec.SECP521R1], ids=["p384", "p521"])
def wide_curve_private_key(request):
    return ec.generate_private_key(request.param())


def test_pkix_uses_curve_sized_hash(wide_curve_private_key):
    public_pem = public_key_pem_from_private(wide_curve_private_key)
    expected_hash = {"secp384r1": hashes.SHA384, "secp521r1": hashes.SHA512}[wide_curve_private_key.curve.name]

    PkixVerifier().verify(sign_pkix(PAYLOAD, wide_curve_private_key), PAYLOAD, public_pem)

    sha256_signature = wide_curve_private_key.sign(PAYLOAD, ec.ECDSA(hashes.SHA256()))
    with pytest.raises(SignatureInvalidError):
        PkixVerifier().verify(sha256_signature, PAYLOAD, public_pem)
    explicit = wide_curve_private_key.sign(PAYLOAD, ec.ECDSA(expected_hash()))
    PkixVerifier().verify(explicit, PAYLOAD, public_pem)


def test_jwt_recovers_payload_on_wide_curves(wide_curve_private_key):
    token = sign_jwt(PAYLOAD, wide_curve_private_key)
    assert JwtVerifier().recover(token, public_key_pem_from_private(wide_curve_private_key)) == PAYLOAD


def test_jwt_rejects_unsigned_tokens(ec_private_key):
    token = jwt.PyJWS().encode(PAYLOAD, None, algorithm="none").encode("ascii")
    with pytest.raises(SignatureInvalidError):
        JwtVerifier().recover(token, public_key_pem_from_private(ec_private_key))


def test_pkix_rejects_unsupported_curve():
    private_key = ec.generate_private_key(ec.SECP256K1())
    signature = private_key.sign(PAYLOAD, ec.ECDSA(hashes.SHA256()))

    with pytest.raises(InvalidPublicKeyError) as excinfo:
        PkixVerifier().verify(signature, PAYLOAD, public_key_pem_from_private(private_key))
    assert excinfo.value.code == "INVALID_PUBLIC_KEY"
    assert "secp256k1" in excinfo.value.message
