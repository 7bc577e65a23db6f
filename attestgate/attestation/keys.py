from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from attestgate.attestation.errors import DuplicateKeyIDError
from attestgate.attestation.types import PublicKey
from attestgate.config import strict_key_ids_enabled

logger = logging.getLogger(__name__)


class KeyRegistry:
    """
    Index of public keys by ID for a single verification session.

    Built once from a caller-supplied key set and read-only afterwards.
    Duplicate IDs are not an error by default: the last key supplied wins
    and the collision is recorded in `warnings`.
    """

    def __init__(self, keys: Mapping[str, PublicKey], warnings: Sequence[str] = ()) -> None:
        self._keys = MappingProxyType(dict(keys))
        self.warnings = tuple(warnings)

    @classmethod
    def build(cls, public_keys: Iterable[PublicKey], *, strict: Optional[bool] = None) -> "KeyRegistry":
        reject_duplicates = strict_key_ids_enabled() if strict is None else bool(strict)
        key_map: Dict[str, PublicKey] = {}
        warnings: List[str] = []
        for public_key in public_keys:
            if public_key.id in key_map:
                if reject_duplicates:
                    raise DuplicateKeyIDError(public_key.id)
                # Only the ID is reported; key material never reaches logs.
                logger.warning(
                    "Key with ID %r already exists in public key set. Overwriting previous key.",
                    public_key.id,
                )
                warnings.append(f"DUPLICATE_KEY_ID: {public_key.id}")
            key_map[public_key.id] = public_key
        return cls(key_map, warnings)

    def lookup(self, key_id: str) -> Optional[PublicKey]:
        return self._keys.get(key_id)

    def ids(self) -> List[str]:
        return sorted(self._keys)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def __iter__(self) -> Iterator[PublicKey]:
        return iter(self._keys.values())

    def __len__(self) -> int:
        return len(self._keys)
