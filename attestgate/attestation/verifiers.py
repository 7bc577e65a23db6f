from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Mapping, Optional

import jwt
from cryptography.exceptions import InvalidSignature

from attestgate.attestation.crypto import (
    jwt_algorithms_for_key,
    parse_public_key,
    verify_detached_signature,
)
from attestgate.attestation.errors import SignatureInvalidError, VerifierNotImplementedError
from attestgate.attestation.types import KeyType
from attestgate.config import disabled_key_types

logger = logging.getLogger(__name__)


class SignatureVerifier(ABC):
    """Proves authenticity of an attestation signature for one key family."""

    key_type: KeyType

    @abstractmethod
    def verified_payload(self, signature: bytes, serialized_payload: bytes, key_data: bytes) -> bytes:
        """Return the payload bytes the signature vouches for, or raise a VerificationError."""
        raise NotImplementedError


class DetachedSignatureVerifier(SignatureVerifier):
    """Signature and payload travel separately; the payload is trusted as supplied."""

    @abstractmethod
    def verify(self, signature: bytes, payload: bytes, key_data: bytes) -> None:
        raise NotImplementedError

    def verified_payload(self, signature: bytes, serialized_payload: bytes, key_data: bytes) -> bytes:
        self.verify(signature, serialized_payload, key_data)
        return serialized_payload


class PayloadRecoveringVerifier(SignatureVerifier):
    """The signed object embeds its payload; verification recovers it."""

    @abstractmethod
    def recover(self, signature: bytes, key_data: bytes) -> bytes:
        raise NotImplementedError

    def verified_payload(self, signature: bytes, serialized_payload: bytes, key_data: bytes) -> bytes:
        return self.recover(signature, key_data)


class PkixVerifier(DetachedSignatureVerifier):
    key_type = KeyType.PKIX

    def verify(self, signature: bytes, payload: bytes, key_data: bytes) -> None:
        public_key = parse_public_key(key_data)
        try:
            verify_detached_signature(public_key, bytes(signature), bytes(payload))
        except (InvalidSignature, ValueError) as exc:
            raise SignatureInvalidError("pkix signature did not verify against the payload") from exc


class JwtVerifier(PayloadRecoveringVerifier):
    key_type = KeyType.JWT

    def __init__(self) -> None:
        self._jws = jwt.PyJWS()

    def recover(self, signature: bytes, key_data: bytes) -> bytes:
        public_key = parse_public_key(key_data)
        try:
            token = bytes(signature).decode("ascii").strip()
        except UnicodeDecodeError as exc:
            raise SignatureInvalidError("jwt signature is not a compact JWS token") from exc

        try:
            decoded = self._jws.decode_complete(
                token,
                key=public_key,
                algorithms=jwt_algorithms_for_key(public_key),
            )
        except jwt.PyJWTError as exc:
            raise SignatureInvalidError(f"jwt signature did not verify: {exc}") from exc
        return decoded["payload"]


class PgpVerifier(PayloadRecoveringVerifier):
    """OpenPGP attestations are clearsigned; no OpenPGP backend is wired in yet."""

    key_type = KeyType.PGP

    def recover(self, signature: bytes, key_data: bytes) -> bytes:
        raise VerifierNotImplementedError(self.key_type)


class UnavailableVerifier(SignatureVerifier):
    """Stands in for a recognised family whose backend has been switched off."""

    def __init__(self, key_type: KeyType) -> None:
        self.key_type = key_type

    def verified_payload(self, signature: bytes, serialized_payload: bytes, key_data: bytes) -> bytes:
        raise VerifierNotImplementedError(self.key_type)


def default_verifiers(disabled: Optional[Iterable[str]] = None) -> Dict[KeyType, SignatureVerifier]:
    """
    Build the family -> verifier registry.
    Families named in `disabled` (default: ATTESTGATE_DISABLED_KEY_TYPES) report
    NOT_IMPLEMENTED instead of verifying.
    """
    switched_off = disabled_key_types() if disabled is None else {str(d).strip().lower() for d in disabled}
    verifiers: Dict[KeyType, SignatureVerifier] = {
        KeyType.PKIX: PkixVerifier(),
        KeyType.PGP: PgpVerifier(),
        KeyType.JWT: JwtVerifier(),
    }
    for key_type in list(verifiers):
        if key_type.value in switched_off:
            logger.info("Verification backend disabled for key type %s", key_type.value)
            verifiers[key_type] = UnavailableVerifier(key_type)
    return verifiers


def with_overrides(
    base: Mapping[KeyType, SignatureVerifier],
    overrides: Mapping[KeyType, SignatureVerifier],
) -> Dict[KeyType, SignatureVerifier]:
    merged = dict(base)
    merged.update(overrides)
    return merged
