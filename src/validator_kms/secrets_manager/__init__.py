"""Validator secrets management.

Provides:
- KmsSecretsManager: validator key in a remote KMS, network key on disk
- LocalKeyStore: file-backed (optionally encrypted) key store
- SigningProtocolCodec / RemoteSigningClient: KMS wire protocol and transport
"""

from validator_kms.secrets_manager.base import (
    ConfigError,
    EncodingError,
    KeyStore,
    OperationNotSupportedError,
    RemoteSigningError,
    RemoteStatusError,
    SecretAlreadyExistsError,
    SecretInfo,
    SecretName,
    SecretNotFoundError,
    SecretsManager,
    SecretsManagerError,
    SecretsManagerType,
    TransportError,
    UnsupportedNameError,
)
from validator_kms.secrets_manager.client import RemoteSigningClient
from validator_kms.secrets_manager.codec import CanonicalSignature, SigningProtocolCodec
from validator_kms.secrets_manager.factory import get_secrets_manager, reset_secrets_manager
from validator_kms.secrets_manager.kms import KmsSecretsManager
from validator_kms.secrets_manager.local import LocalKeyStore

__all__ = [
    "CanonicalSignature",
    "ConfigError",
    "EncodingError",
    "KeyStore",
    "KmsSecretsManager",
    "LocalKeyStore",
    "OperationNotSupportedError",
    "RemoteSigningClient",
    "RemoteSigningError",
    "RemoteStatusError",
    "SecretAlreadyExistsError",
    "SecretInfo",
    "SecretName",
    "SecretNotFoundError",
    "SecretsManager",
    "SecretsManagerError",
    "SecretsManagerType",
    "SigningProtocolCodec",
    "TransportError",
    "UnsupportedNameError",
    "get_secrets_manager",
    "reset_secrets_manager",
]
