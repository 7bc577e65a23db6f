from __future__ import annotations

from typing import List, Tuple


class VerificationError(RuntimeError):
    """Base class for every reason an attestation fails to verify."""

    code = "VERIFICATION_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class UnknownKeyIDError(VerificationError):
    """The attestation names a key ID that is not in the key set."""

    code = "UNKNOWN_KEY_ID"

    def __init__(self, key_id: str) -> None:
        super().__init__(f"no public key with ID {key_id!r} found")
        self.key_id = key_id


class UnsupportedKeyModeError(VerificationError):
    code = "UNSUPPORTED_KEY_MODE"

    def __init__(self, key_type: object) -> None:
        super().__init__(f"signature uses an unsupported key mode: {key_type!r}")
        self.key_type = key_type


class VerifierNotImplementedError(VerificationError):
    """
    The key family is recognised but no verification backend is wired in.
    Kept apart from SignatureInvalidError so operators can tell
    "unsupported" from "attack or corruption detected".
    """

    code = "NOT_IMPLEMENTED"

    def __init__(self, key_type: object) -> None:
        label = getattr(key_type, "value", key_type)
        super().__init__(f"verify {label} not implemented")
        self.key_type = key_type


class SignatureInvalidError(VerificationError):
    code = "SIGNATURE_INVALID"


class InvalidPublicKeyError(SignatureInvalidError):
    """Key material could not be loaded for the declared family."""

    code = "INVALID_PUBLIC_KEY"


class TrustMismatchError(VerificationError):
    code = "TRUST_MISMATCH"


class PayloadExtractionFailedError(TrustMismatchError):
    """The verified payload could not be parsed into a trusted claim."""

    code = "PAYLOAD_EXTRACTION_FAILED"


class DuplicateKeyIDError(VerificationError):
    """Raised only when strict key-ID handling is enabled."""

    code = "DUPLICATE_KEY_ID"

    def __init__(self, key_id: str) -> None:
        super().__init__(f"key with ID {key_id!r} appears more than once in the key set")
        self.key_id = key_id


class NoValidAttestationError(VerificationError):
    code = "NO_VALID_ATTESTATION"

    def __init__(self, failures: List[Tuple[str, VerificationError]]) -> None:
        if failures:
            detail = "; ".join(f"{key_id}: {exc.code}" for key_id, exc in failures)
            message = f"no attestation validated ({detail})"
        else:
            message = "no attestations supplied"
        super().__init__(message)
        self.failures = list(failures)


class AttestationFormatError(ValueError):
    """Raised when a key set or attestation document is malformed."""
