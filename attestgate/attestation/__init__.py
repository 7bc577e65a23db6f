from attestgate.attestation.engine import AttestationVerifier, verification_report, verify_attestation
from attestgate.attestation.errors import (
    AttestationFormatError,
    DuplicateKeyIDError,
    InvalidPublicKeyError,
    NoValidAttestationError,
    PayloadExtractionFailedError,
    SignatureInvalidError,
    TrustMismatchError,
    UnknownKeyIDError,
    UnsupportedKeyModeError,
    VerificationError,
    VerifierNotImplementedError,
)
from attestgate.attestation.keys import KeyRegistry
from attestgate.attestation.types import Attestation, AuthenticatedAttestation, KeyType, PublicKey

__all__ = [
    "AttestationVerifier",
    "verification_report",
    "verify_attestation",
    "KeyRegistry",
    "Attestation",
    "AuthenticatedAttestation",
    "KeyType",
    "PublicKey",
    "AttestationFormatError",
    "DuplicateKeyIDError",
    "InvalidPublicKeyError",
    "NoValidAttestationError",
    "PayloadExtractionFailedError",
    "SignatureInvalidError",
    "TrustMismatchError",
    "UnknownKeyIDError",
    "UnsupportedKeyModeError",
    "VerificationError",
    "VerifierNotImplementedError",
]
