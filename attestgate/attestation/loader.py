from __future__ import annotations

import binascii
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from attestgate.attestation.errors import AttestationFormatError
from attestgate.attestation.types import Attestation, PublicKey
from attestgate.config import public_keys_source
from attestgate.utils.canonical import b64d, b64e


def _read_document(source: str) -> Any:
    """
    Resolve `source` as inline JSON, or as a path to a JSON/YAML file.
    """
    text = str(source or "").strip()
    if not text:
        raise AttestationFormatError("empty document source")
    if text.startswith("{") or text.startswith("["):
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise AttestationFormatError(f"inline document is not valid JSON: {exc}") from exc

    path = Path(text)
    if not path.exists() or not path.is_file():
        raise AttestationFormatError(f"file not found: {text}")
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise AttestationFormatError(f"{text} could not be read: {exc}") from exc
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(raw)
        return json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise AttestationFormatError(f"{text} could not be parsed: {exc}") from exc


def _entries(document: Any, list_key: str) -> List[Any]:
    if isinstance(document, dict) and isinstance(document.get(list_key), list):
        return list(document[list_key])
    if isinstance(document, list):
        return list(document)
    if isinstance(document, dict):
        return [document]
    raise AttestationFormatError(f"expected an object, a list, or {{{list_key!r}: [...]}}")


def public_key_from_dict(entry: Any) -> PublicKey:
    if not isinstance(entry, dict):
        raise AttestationFormatError("key entry must be an object")
    key_id = str(entry.get("id") or entry.get("key_id") or "").strip()
    if not key_id:
        raise AttestationFormatError("key entry is missing id")
    key_type = str(entry.get("key_type") or "").strip()
    if not key_type:
        raise AttestationFormatError(f"key {key_id!r} is missing key_type")

    if entry.get("key_data_b64"):
        try:
            key_data = b64d(entry["key_data_b64"])
        except (binascii.Error, ValueError) as exc:
            raise AttestationFormatError(f"key {key_id!r} has invalid key_data_b64") from exc
    else:
        key_data = str(entry.get("key_data") or "").encode("utf-8")
    if not key_data.strip():
        raise AttestationFormatError(f"key {key_id!r} has no key material")

    return PublicKey(key_type=key_type, key_data=key_data, id=key_id)


def load_public_key_set(source: Optional[str] = None) -> List[PublicKey]:
    """
    Load a key set. Resolution order:
      1) explicit `source` (path or inline JSON)
      2) ATTESTGATE_PUBLIC_KEYS
    """
    effective = source or public_keys_source()
    if not effective:
        raise AttestationFormatError("no key set configured: pass a key file or set ATTESTGATE_PUBLIC_KEYS")
    return [public_key_from_dict(entry) for entry in _entries(_read_document(effective), "keys")]


def attestation_from_dict(entry: Any) -> Attestation:
    if not isinstance(entry, dict):
        raise AttestationFormatError("attestation entry must be an object")
    try:
        return Attestation(
            public_key_id=str(entry.get("public_key_id") or ""),
            signature=b64d(entry.get("signature") or ""),
            serialized_payload=b64d(entry.get("serialized_payload") or ""),
        )
    except (binascii.Error, ValueError, ValidationError) as exc:
        raise AttestationFormatError(f"malformed attestation: {exc}") from exc


def attestation_to_dict(attestation: Attestation) -> Dict[str, str]:
    return {
        "public_key_id": attestation.public_key_id,
        "signature": b64e(attestation.signature),
        "serialized_payload": b64e(attestation.serialized_payload),
    }


def load_attestations(source: str) -> List[Attestation]:
    return [attestation_from_dict(entry) for entry in _entries(_read_document(source), "attestations")]
