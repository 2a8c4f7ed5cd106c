"""Base interfaces for validator secrets management.

Secret access flow:
1. Caller asks the manager for a named secret or a signature
2. Manager looks the name up in its capability table
3. Validator key operations go to the remote KMS service
4. Network key operations go to the local key store
5. Anything else is rejected
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)


class SecretsManagerType(str, Enum):
    """Type of secrets backend."""
    AWS_KMS = "aws-kms"   # Remote KMS signing service


class SecretName(str, Enum):
    """Names of the secrets a validator node uses."""
    VALIDATOR_KEY = "validator-key"   # Consensus signing key, never leaves KMS
    NETWORK_KEY = "network-key"       # libp2p transport identity, stored locally


class Operation(str, Enum):
    """Secret operations that can be allowed per name."""
    GET = "get"
    SET = "set"
    HAS = "has"
    REMOVE = "remove"
    INFO = "info"


@dataclass(frozen=True)
class SecretInfo:
    """Externally visible identity of the validator key.

    Attributes:
        pubkey: Public key as reported by the KMS service
        address: Chain address derived from the public key
    """
    pubkey: str
    address: str


class KeyStore(ABC):
    """Storage for named secrets kept on the node itself."""

    @abstractmethod
    def get(self, name: str) -> bytes:
        """Read a secret.

        Raises:
            SecretNotFoundError: If nothing is stored under name
        """
        pass

    @abstractmethod
    def set(self, name: str, value: bytes) -> None:
        """Store a secret."""
        pass

    @abstractmethod
    def has(self, name: str) -> bool:
        """Check if a secret is stored."""
        pass

    @abstractmethod
    def remove(self, name: str) -> None:
        """Delete a secret."""
        pass


class SecretsManager(ABC):
    """Abstract base class for secrets backends.

    Implementations should NEVER expose the validator private key.
    Signing returns signatures only.
    """

    def __init__(self, manager_type: SecretsManagerType):
        self._manager_type = manager_type

    @abstractmethod
    def get_secret(self, name: Union[SecretName, str]) -> bytes:
        pass

    @abstractmethod
    def set_secret(self, name: Union[SecretName, str], value: bytes) -> None:
        pass

    @abstractmethod
    def has_secret(self, name: Union[SecretName, str]) -> bool:
        pass

    @abstractmethod
    def remove_secret(self, name: Union[SecretName, str]) -> None:
        pass

    @abstractmethod
    def sign_by_secret(self, key: Union[SecretName, str], data: bytes) -> bytes:
        """Sign data with the named key.

        Args:
            key: Secret name of the signing key
            data: Message to sign

        Returns:
            65-byte canonical signature (R || S || V)
        """
        pass

    @abstractmethod
    def get_secret_info(self, name: Union[SecretName, str]) -> SecretInfo:
        """Get the public identity for a named key."""
        pass

    def manager_type(self) -> SecretsManagerType:
        return self._manager_type

    def close(self) -> None:
        """Release backend resources."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self._manager_type.value})"


def parse_secret_name(name: Union[SecretName, str]) -> Union[SecretName, str]:
    """Coerce a plain string to SecretName, leaving unknown names as strings."""
    if isinstance(name, SecretName):
        return name
    try:
        return SecretName(name)
    except ValueError:
        return name


class SecretsManagerError(Exception):
    """Base exception for secrets manager failures."""
    pass


class ConfigError(SecretsManagerError):
    """Exception raised when a required setting is missing or invalid."""
    pass


class UnsupportedNameError(SecretsManagerError):
    """Exception raised for a secret name the backend does not know."""

    def __init__(self, name: Union[SecretName, str], operation: Operation):
        self.name = name
        self.operation = operation
        value = name.value if isinstance(name, SecretName) else name
        super().__init__(f"{operation.value} not supported for secret name {value!r}")


class OperationNotSupportedError(SecretsManagerError):
    """Exception raised when a known name does not allow the operation."""

    def __init__(self, name: SecretName, operation: Operation, backend: str):
        self.name = name
        self.operation = operation
        super().__init__(f"{backend} does not support {operation.value} for {name.value}")


class TransportError(SecretsManagerError):
    """Exception raised when the KMS service cannot be reached."""
    pass


class RemoteStatusError(SecretsManagerError):
    """Exception raised when the KMS service answers with a non-2xx status."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"KMS service returned HTTP status {status_code}")


class RemoteSigningError(SecretsManagerError):
    """Exception raised when the KMS service reports a failure code."""

    def __init__(self, code: int, msg: str):
        self.code = code
        self.msg = msg
        super().__init__(f"KMS service error (code {code}): {msg}")


class EncodingError(SecretsManagerError):
    """Exception raised for a malformed KMS response."""
    pass


class SecretNotFoundError(SecretsManagerError):
    """Exception raised when a local secret does not exist."""
    pass


class SecretAlreadyExistsError(SecretsManagerError):
    """Exception raised when a local secret would be overwritten."""
    pass
