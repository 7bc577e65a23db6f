from __future__ import annotations

from typing import Any, Dict, Optional, Union

import jwt
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from attestgate.attestation.crypto import ecdsa_hash_for_curve, jwt_algorithms_for_key
from attestgate.attestation.types import (
    Attestation,
    KeyType,
    SimpleSigningCritical,
    SimpleSigningIdentity,
    SimpleSigningImage,
    SimpleSigningPayload,
)
from attestgate.utils.canonical import canonical_json


SigningKey = Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey, Ed25519PrivateKey]

SIMPLE_SIGNING_TYPE = "atomic container signature"


def build_simple_signing_payload(
    image_digest: str,
    *,
    docker_reference: Optional[str] = None,
    optional: Optional[Dict[str, Any]] = None,
) -> bytes:
    document = SimpleSigningPayload(
        critical=SimpleSigningCritical(
            identity=SimpleSigningIdentity(docker_reference=docker_reference) if docker_reference else None,
            image=SimpleSigningImage(docker_manifest_digest=image_digest),
            type=SIMPLE_SIGNING_TYPE,
        ),
        optional=optional,
    )
    return canonical_json(document.model_dump(mode="json", by_alias=True, exclude_none=True)).encode("utf-8")


def sign_pkix(payload: bytes, private_key: SigningKey) -> bytes:
    if isinstance(private_key, Ed25519PrivateKey):
        return private_key.sign(payload)
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return private_key.sign(payload, ec.ECDSA(ecdsa_hash_for_curve(private_key.curve)))
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key.sign(payload, padding.PKCS1v15(), hashes.SHA256())
    raise ValueError(f"unsupported signing key: {type(private_key).__name__}")


def sign_jwt(payload: bytes, private_key: SigningKey) -> bytes:
    algorithm = jwt_algorithms_for_key(private_key.public_key())[0]
    token = jwt.PyJWS().encode(payload, private_key, algorithm=algorithm)
    return token.encode("ascii")


def create_attestation(
    key_id: str,
    private_key: SigningKey,
    image_digest: str,
    *,
    mode: KeyType = KeyType.PKIX,
    docker_reference: Optional[str] = None,
    optional: Optional[Dict[str, Any]] = None,
) -> Attestation:
    effective_key_id = str(key_id or "").strip()
    if not effective_key_id:
        raise ValueError("key_id is required")

    payload = build_simple_signing_payload(
        image_digest,
        docker_reference=docker_reference,
        optional=optional,
    )
    if mode == KeyType.PKIX:
        return Attestation(
            public_key_id=effective_key_id,
            signature=sign_pkix(payload, private_key),
            serialized_payload=payload,
        )
    if mode == KeyType.JWT:
        # The token embeds its payload; nothing travels alongside it.
        return Attestation(public_key_id=effective_key_id, signature=sign_jwt(payload, private_key))
    raise ValueError(f"signing is not supported for key type {mode!r}")


def load_private_key_pem(data: bytes) -> SigningKey:
    loaded = serialization.load_pem_private_key(bytes(data), password=None)
    if not isinstance(loaded, (ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey, Ed25519PrivateKey)):
        raise ValueError(f"unsupported signing key: {type(loaded).__name__}")
    return loaded


def public_key_pem_from_private(private_key: SigningKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
