from __future__ import annotations

import json

from pydantic import ValidationError

from attestgate.attestation.errors import PayloadExtractionFailedError, TrustMismatchError
from attestgate.attestation.types import (
    AuthenticatedAttestation,
    SimpleSigningPayload,
    VerifiedPayload,
)


def _failed(reason: str) -> AuthenticatedAttestation:
    return AuthenticatedAttestation(extraction_error=reason)


def extract_authenticated_attestation(verified: VerifiedPayload) -> AuthenticatedAttestation:
    """
    Turn a verified payload into a trusted claim.

    Parse failures never raise; they produce a claim with an empty digest and an
    `extraction_error`, which the trust checker then rejects.
    """
    if not isinstance(verified, VerifiedPayload):
        raise TypeError("only verified payloads can be extracted into an authenticated attestation")

    try:
        document = json.loads(verified.data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        return _failed(f"payload is not JSON: {exc}")
    if not isinstance(document, dict):
        return _failed("payload is not a JSON object")

    try:
        payload = SimpleSigningPayload.model_validate(document)
    except ValidationError as exc:
        return _failed(f"payload is not a simple signing document: {exc.error_count()} error(s)")

    critical = payload.critical
    return AuthenticatedAttestation(
        image_digest=critical.image.docker_manifest_digest,
        docker_reference=critical.identity.docker_reference if critical.identity else None,
        optional=dict(payload.optional or {}),
    )


def check_authenticated_attestation(actual: AuthenticatedAttestation, image_digest: str) -> None:
    """
    Check that the data within the attestation payload matches what we expect.
    Plain attestations compare the image digest only, by exact string equality.
    """
    if actual.extraction_error:
        raise PayloadExtractionFailedError(actual.extraction_error)
    if not actual.image_digest or actual.image_digest != image_digest:
        raise TrustMismatchError(
            f"attested digest {actual.image_digest!r} does not match expected digest {image_digest!r}"
        )
