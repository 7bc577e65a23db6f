from __future__ import annotations

import base64
import binascii
from typing import List, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from attestgate.attestation.errors import InvalidPublicKeyError


SupportedPublicKey = Union[ec.EllipticCurvePublicKey, rsa.RSAPublicKey, Ed25519PublicKey]

_EC_HASHES = {
    "secp256r1": hashes.SHA256,
    "secp384r1": hashes.SHA384,
    "secp521r1": hashes.SHA512,
}
_EC_JWT_ALGORITHMS = {
    "secp256r1": "ES256",
    "secp384r1": "ES384",
    "secp521r1": "ES512",
}
_RSA_JWT_ALGORITHMS = ["RS256", "RS384", "RS512", "PS256", "PS384", "PS512"]


def ecdsa_hash_for_curve(curve: ec.EllipticCurve) -> hashes.HashAlgorithm:
    try:
        return _EC_HASHES[curve.name]()
    except KeyError:
        raise InvalidPublicKeyError(f"unsupported elliptic curve: {curve.name}") from None


def _decode_key_material(raw_value: bytes) -> bytes:
    raw = bytes(raw_value or b"")
    value = raw.strip()
    if not value:
        raise InvalidPublicKeyError("empty key material")

    if len(value) == 64:
        try:
            return bytes.fromhex(value.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            pass

    try:
        decoded = base64.b64decode(value, validate=True)
        if decoded:
            return decoded
    except (binascii.Error, ValueError):
        pass

    # Binary material is returned untouched.
    return raw


def _load_public_key(value: bytes):
    text = value.strip()
    if text.startswith(b"-----BEGIN CERTIFICATE"):
        return x509.load_pem_x509_certificate(text).public_key()
    if text.startswith(b"-----BEGIN"):
        return serialization.load_pem_public_key(text)
    material = _decode_key_material(value)
    if len(material) == 32:
        return Ed25519PublicKey.from_public_bytes(material)
    return serialization.load_der_public_key(material)


def parse_public_key(key_data: bytes) -> SupportedPublicKey:
    """
    Load PKIX key material: PEM or DER SubjectPublicKeyInfo, a PEM certificate,
    or a raw 32-byte Ed25519 key (binary, hex or base64).
    """
    try:
        loaded = _load_public_key(bytes(key_data or b""))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidPublicKeyError(f"unable to load public key: {exc}") from exc

    if isinstance(loaded, ec.EllipticCurvePublicKey):
        if loaded.curve.name not in _EC_HASHES:
            raise InvalidPublicKeyError(f"unsupported elliptic curve: {loaded.curve.name}")
        return loaded
    if isinstance(loaded, (rsa.RSAPublicKey, Ed25519PublicKey)):
        return loaded
    raise InvalidPublicKeyError(f"unsupported public key algorithm: {type(loaded).__name__}")


def _verify_rsa(public_key: rsa.RSAPublicKey, signature: bytes, payload: bytes) -> None:
    try:
        public_key.verify(signature, payload, padding.PKCS1v15(), hashes.SHA256())
        return
    except InvalidSignature:
        pass
    public_key.verify(
        signature,
        payload,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO),
        hashes.SHA256(),
    )


def verify_detached_signature(public_key: SupportedPublicKey, signature: bytes, payload: bytes) -> None:
    """Raises cryptography's InvalidSignature when `signature` does not cover `payload`."""
    if isinstance(public_key, Ed25519PublicKey):
        public_key.verify(signature, payload)
    elif isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key.verify(signature, payload, ec.ECDSA(ecdsa_hash_for_curve(public_key.curve)))
    else:
        _verify_rsa(public_key, signature, payload)


def jwt_algorithms_for_key(public_key: SupportedPublicKey) -> List[str]:
    # Asymmetric algorithms only; HMAC and "none" are never accepted.
    if isinstance(public_key, Ed25519PublicKey):
        return ["EdDSA"]
    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return [_EC_JWT_ALGORITHMS[public_key.curve.name]]
    return list(_RSA_JWT_ALGORITHMS)
