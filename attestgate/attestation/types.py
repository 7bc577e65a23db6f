from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainValidator, field_serializer


class KeyType(str, Enum):
    PKIX = "pkix"
    PGP = "pgp"
    JWT = "jwt"


def _coerce_key_type(value: Any) -> Union[KeyType, str]:
    # Unknown families stay representable so the engine can reject them.
    if isinstance(value, KeyType):
        return value
    text = str(getattr(value, "value", value) or "").strip()
    try:
        return KeyType(text.lower())
    except ValueError:
        return text


class PublicKey(BaseModel):
    """
    Public key material for any supported family.
    For PGP, `id` should be the OpenPGP RFC4880 v4 fingerprint of the key.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    key_type: Annotated[Union[KeyType, str], PlainValidator(_coerce_key_type)]
    key_data: bytes
    id: str


class Attestation(BaseModel):
    """
    A signature asserted over an image digest, as supplied by the attestation fetcher.
    `serialized_payload` is untrusted until the signature over it has been verified.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    public_key_id: str
    signature: bytes
    serialized_payload: bytes = b""


@dataclass(frozen=True)
class VerifiedPayload:
    """
    Payload bytes that have just passed signature verification.
    Only the verification engine creates these; the trust extractor accepts nothing else.
    """

    data: bytes
    key_id: str
    key_type: KeyType


def _read_only(value: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value))


class AuthenticatedAttestation(BaseModel):
    """
    Data extracted from an attestation payload only after its signature has been
    verified. Payload contents are never analyzed directly; they are extracted
    into this model and analyzed from here.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    image_digest: str = ""
    docker_reference: Optional[str] = None
    optional: Annotated[Mapping[str, Any], AfterValidator(_read_only)] = Field(
        default_factory=lambda: MappingProxyType({})
    )
    extraction_error: Optional[str] = None

    @field_serializer("optional")
    def serialize_optional(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(value)


class SimpleSigningIdentity(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    docker_reference: str = Field(alias="docker-reference")


class SimpleSigningImage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    docker_manifest_digest: str = Field(alias="docker-manifest-digest", min_length=1)


class SimpleSigningCritical(BaseModel):
    identity: Optional[SimpleSigningIdentity] = None
    image: SimpleSigningImage
    type: Literal["atomic container signature", "cosign container image signature"]


class SimpleSigningPayload(BaseModel):
    """Container "simple signing" document carried inside attestation payloads."""

    critical: SimpleSigningCritical
    optional: Optional[Dict[str, Any]] = None


class VerificationReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    image_digest: str
    error_code: Optional[str] = None
    message: Optional[str] = None
    key_id: Optional[str] = None
    key_type: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
