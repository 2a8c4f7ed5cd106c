"""Cryptographic utilities for local secret storage.

Uses Fernet (AES-128-CBC with HMAC) for symmetric encryption at rest.
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

# Fernet tokens always start with this base64 prefix (version byte 0x80)
FERNET_PREFIX = b"gAAAAA"


def generate_master_key() -> str:
    """Generate a new master encryption key.

    Returns:
        Base64-encoded 32-byte key suitable for Fernet
    """
    return Fernet.generate_key().decode()


class SecretEncryptor:
    """Encrypts and decrypts secret material using Fernet.

    Usage:
        encryptor = SecretEncryptor(master_key)
        token = encryptor.encrypt(b"...")
        plain = encryptor.decrypt(token)
    """

    def __init__(self, master_key: str):
        """Initialize with master encryption key.

        Args:
            master_key: Base64-encoded Fernet key (32 bytes)
        """
        self._fernet = Fernet(master_key.encode())

    def encrypt(self, value: bytes) -> bytes:
        """Encrypt raw secret bytes into a Fernet token."""
        return self._fernet.encrypt(value)

    def decrypt(self, token: bytes) -> bytes:
        """Decrypt a Fernet token.

        Raises:
            InvalidToken: If decryption fails (wrong key or corrupted data)
        """
        return self._fernet.decrypt(token)


def is_encrypted(value: bytes) -> bool:
    """Check whether stored bytes look like a Fernet token."""
    return value.startswith(FERNET_PREFIX)


def get_encryptor(master_key: Optional[str]) -> Optional[SecretEncryptor]:
    """Build an encryptor for the given master key.

    Returns:
        SecretEncryptor if a key is set, None otherwise
    """
    if not master_key:
        return None
    return SecretEncryptor(master_key)


__all__ = [
    "InvalidToken",
    "SecretEncryptor",
    "generate_master_key",
    "get_encryptor",
    "is_encrypted",
]
