"""NVD API key storage.

The NVD API works without a key, but unauthenticated clients get a much
smaller request window (5 requests per 30 seconds instead of 50).  The key
is read from ``NVD_API_KEY`` first so containers and CI need no keychain,
then from the system keychain under the ``nvd-matcher`` service.
"""

from __future__ import annotations

import logging
import os
import re

import keyring

logger = logging.getLogger(__name__)

SERVICE_NAME = "nvd-matcher"

# Environment variable -> keychain entry
KEYS = {
    "NVD_API_KEY": "nvd",
}

# NVD issues keys as UUIDs
_NVD_KEY_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)


def get_api_key(key_name: str) -> str | None:
    """Look up a key in the environment, then in the keychain.

    Returns None when neither has it; a keychain backend failure is logged
    and treated the same way so the client falls back to anonymous access.
    """
    env_value = os.environ.get(key_name)
    if env_value:
        return env_value

    service_key = KEYS.get(key_name)
    if service_key is None:
        return None
    try:
        value: str | None = keyring.get_password(SERVICE_NAME, service_key)
    except keyring.errors.KeyringError as e:
        logger.warning(f"Keychain unavailable for {key_name}, using anonymous NVD access: {e}")
        return None
    return value or None


def set_api_key(key_name: str, value: str) -> bool:
    """Save a key to the keychain. Returns False if it was not stored."""
    service_key = KEYS.get(key_name)
    if not service_key:
        logger.error(f"Unknown key: {key_name}. Valid keys: {list(KEYS)}")
        return False

    value = (value or "").strip()
    if not value:
        logger.error(f"Refusing to store empty value for {key_name}")
        return False
    if not _NVD_KEY_RE.match(value):
        logger.warning(f"{key_name} does not look like an NVD key (expected a UUID); storing anyway")

    try:
        keyring.set_password(SERVICE_NAME, service_key, value)
    except keyring.errors.KeyringError as e:
        logger.error(f"Failed to store {key_name}: {e}")
        return False
    logger.info(f"Stored {key_name} in system keychain")
    return True


def delete_api_key(key_name: str) -> bool:
    """Remove a key from the keychain. Returns False if nothing was removed."""
    service_key = KEYS.get(key_name)
    if not service_key:
        logger.error(f"Unknown key: {key_name}")
        return False

    try:
        keyring.delete_password(SERVICE_NAME, service_key)
    except keyring.errors.KeyringError as e:
        logger.warning(f"Failed to delete {key_name}: {e}")
        return False
    logger.info(f"Deleted {key_name} from system keychain")
    return True


def key_status() -> dict[str, bool]:
    """Which keys resolve to a value, without exposing the values."""
    return {key_name: get_api_key(key_name) is not None for key_name in KEYS}
