import os
from typing import FrozenSet

from dotenv import load_dotenv

# Load params from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = str(os.getenv(name, "true" if default else "false")).strip().lower()
    return raw in {"1", "true", "yes", "on"}


def strict_key_ids_enabled() -> bool:
    """
    Controls whether duplicate key IDs in a key set are rejected.
    Defaults to disabled: the last key with a given ID wins and a warning is recorded.
    """
    return _env_bool("ATTESTGATE_STRICT_KEY_IDS", False)


def disabled_key_types() -> FrozenSet[str]:
    """
    Key families with no verification backend wired in.
    Comma separated, e.g. ATTESTGATE_DISABLED_KEY_TYPES="jwt,pgp".
    """
    raw = str(os.getenv("ATTESTGATE_DISABLED_KEY_TYPES", "") or "")
    return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


def public_keys_source() -> str:
    """Path to a key set file, or an inline JSON key set."""
    return str(os.getenv("ATTESTGATE_PUBLIC_KEYS", "") or "").strip()
