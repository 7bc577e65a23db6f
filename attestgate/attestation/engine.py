from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from attestgate.attestation.errors import (
    NoValidAttestationError,
    UnknownKeyIDError,
    UnsupportedKeyModeError,
    VerificationError,
    VerifierNotImplementedError,
)
from attestgate.attestation.keys import KeyRegistry
from attestgate.attestation.trust import (
    check_authenticated_attestation,
    extract_authenticated_attestation,
)
from attestgate.attestation.types import (
    Attestation,
    AuthenticatedAttestation,
    KeyType,
    PublicKey,
    VerificationReport,
    VerifiedPayload,
)
from attestgate.attestation.verifiers import SignatureVerifier, default_verifiers, with_overrides

logger = logging.getLogger(__name__)


class AttestationVerifier:
    """
    Verifies attestations for one image digest against one key set.

    `image_digest` is the digest of the image that was signed over. It must be
    provided directly by the policy evaluator, NOT taken from the attestation.
    `verifiers` replaces the verifier for the given families; all other
    families keep the default backends.
    """

    def __init__(
        self,
        image_digest: str,
        public_keys: Iterable[PublicKey],
        *,
        verifiers: Optional[Mapping[KeyType, SignatureVerifier]] = None,
        strict_key_ids: Optional[bool] = None,
    ) -> None:
        self.image_digest = image_digest
        self.registry = KeyRegistry.build(public_keys, strict=strict_key_ids)
        self._verifiers = with_overrides(default_verifiers(), verifiers or {})

    @property
    def warnings(self) -> Tuple[str, ...]:
        return self.registry.warnings

    def _verified_payload(self, attestation: Attestation, public_key: PublicKey) -> VerifiedPayload:
        if not isinstance(public_key.key_type, KeyType):
            raise UnsupportedKeyModeError(public_key.key_type)
        verifier = self._verifiers.get(public_key.key_type)
        if verifier is None:
            raise VerifierNotImplementedError(public_key.key_type)

        payload = verifier.verified_payload(
            attestation.signature,
            attestation.serialized_payload,
            public_key.key_data,
        )
        return VerifiedPayload(data=bytes(payload), key_id=public_key.id, key_type=public_key.key_type)

    def authenticate(self, attestation: Attestation) -> AuthenticatedAttestation:
        """Verify `attestation` and return its trusted claim; raises VerificationError."""
        public_key = self.registry.lookup(attestation.public_key_id)
        if public_key is None:
            raise UnknownKeyIDError(attestation.public_key_id)

        verified = self._verified_payload(attestation, public_key)

        # Extract the payload into an AuthenticatedAttestation, whose contents we can trust.
        actual = extract_authenticated_attestation(verified)
        check_authenticated_attestation(actual, self.image_digest)
        return actual

    def verify_attestation(self, attestation: Attestation) -> None:
        try:
            self.authenticate(attestation)
        except VerificationError as exc:
            logger.info(
                "Attestation rejected: key_id=%s error_code=%s",
                attestation.public_key_id,
                exc.code,
                extra={
                    "key_id": attestation.public_key_id,
                    "error_code": exc.code,
                    "image_digest": self.image_digest,
                },
            )
            raise
        logger.debug("Attestation verified: key_id=%s", attestation.public_key_id)

    def verify_any(self, attestations: Iterable[Attestation]) -> AuthenticatedAttestation:
        """
        Return the trusted claim of the first attestation that validates.
        Raises NoValidAttestationError carrying every failure when none does.
        """
        failures: List[Tuple[str, VerificationError]] = []
        for attestation in attestations:
            try:
                claim = self.authenticate(attestation)
            except VerificationError as exc:
                failures.append((attestation.public_key_id, exc))
                continue
            logger.debug("Attestation verified: key_id=%s", attestation.public_key_id)
            return claim
        logger.info("No valid attestation for image digest %s (%d rejected)", self.image_digest, len(failures))
        raise NoValidAttestationError(failures)

    def report(self, attestation: Attestation) -> Dict[str, Any]:
        public_key = self.registry.lookup(attestation.public_key_id)
        key_type = getattr(public_key.key_type, "value", public_key.key_type) if public_key else None
        try:
            self.verify_attestation(attestation)
        except VerificationError as exc:
            result = VerificationReport(
                ok=False,
                image_digest=self.image_digest,
                error_code=exc.code,
                message=exc.message,
                key_id=attestation.public_key_id,
                key_type=key_type,
                warnings=list(self.warnings),
            )
        else:
            result = VerificationReport(
                ok=True,
                image_digest=self.image_digest,
                key_id=attestation.public_key_id,
                key_type=key_type,
                warnings=list(self.warnings),
            )
        return result.model_dump(mode="json")


def verify_attestation(
    attestation: Attestation,
    expected_digest: str,
    public_keys: Iterable[PublicKey],
    *,
    verifiers: Optional[Mapping[KeyType, SignatureVerifier]] = None,
    strict_key_ids: Optional[bool] = None,
) -> None:
    """
    Verify one attestation over `expected_digest` using `public_keys`.
    Returns None on success and raises a VerificationError subclass otherwise.
    """
    AttestationVerifier(
        expected_digest,
        public_keys,
        verifiers=verifiers,
        strict_key_ids=strict_key_ids,
    ).verify_attestation(attestation)


def verification_report(
    attestation: Attestation,
    expected_digest: str,
    public_keys: Iterable[PublicKey],
    **kwargs: Any,
) -> Dict[str, Any]:
    return AttestationVerifier(expected_digest, public_keys, **kwargs).report(attestation)
