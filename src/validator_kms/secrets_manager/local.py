"""Local key store backend.

Keeps non-validator secrets (the libp2p network key) in files on the node:

    <data_dir>/<node_name>/<secret-name>.key

Files are written with 0600 permissions. When a master key is configured
the contents are Fernet-encrypted. Files written before encryption was
enabled are still readable.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from validator_kms.crypto import InvalidToken, SecretEncryptor, is_encrypted
from validator_kms.secrets_manager.base import (
    KeyStore,
    SecretAlreadyExistsError,
    SecretNotFoundError,
    SecretsManagerError,
)

logger = logging.getLogger(__name__)

SECRET_FILE_SUFFIX = ".key"


class LocalKeyStore(KeyStore):
    """File-backed key store.

    Secrets are never overwritten: a node's network identity has to be
    removed explicitly before a new one is stored.
    """

    def __init__(
        self,
        base_dir: Path,
        encryptor: Optional[SecretEncryptor] = None,
    ):
        """Initialize local key store.

        Args:
            base_dir: Directory holding this node's secret files
            encryptor: Optional encryptor for secrets at rest
        """
        self.base_dir = Path(base_dir)
        self._encryptor = encryptor

    def _path(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise SecretsManagerError(f"Invalid local secret name: {name!r}")
        return self.base_dir / f"{name}{SECRET_FILE_SUFFIX}"

    def get(self, name: str) -> bytes:
        path = self._path(name)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            raise SecretNotFoundError(f"Secret {name!r} not found in {self.base_dir}")

        if self._encryptor is None or not is_encrypted(raw):
            return raw

        try:
            return self._encryptor.decrypt(raw)
        except InvalidToken as e:
            raise SecretsManagerError(
                f"Cannot decrypt secret {name!r}: wrong master key or corrupted file"
            ) from e

    def set(self, name: str, value: bytes) -> None:
        path = self._path(name)
        payload = self._encryptor.encrypt(value) if self._encryptor else value

        self.base_dir.mkdir(parents=True, exist_ok=True)
        if path.exists():
            raise SecretAlreadyExistsError(f"Secret {name!r} already initialized at {path}")

        # Write a private temp file, then hard-link it into place so a failed
        # write never leaves a partial secret behind
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.link(tmp_name, path)
        except FileExistsError:
            raise SecretAlreadyExistsError(f"Secret {name!r} already initialized at {path}")
        finally:
            os.unlink(tmp_name)

        logger.info(f"Stored local secret {name} ({'encrypted' if self._encryptor else 'plain'})")

    def has(self, name: str) -> bool:
        return self._path(name).is_file()

    def remove(self, name: str) -> None:
        path = self._path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise SecretNotFoundError(f"Secret {name!r} not found in {self.base_dir}")

        logger.info(f"Removed local secret {name}")

    def __repr__(self) -> str:
        return f"LocalKeyStore(base_dir={str(self.base_dir)!r}, encrypted={self._encryptor is not None})"
