"""Secrets manager factory.

Creates the configured secrets manager from settings. Missing settings
raise ConfigError at construction time.
"""

import logging
from pathlib import Path
from typing import Optional

from validator_kms.config import Settings, get_settings
from validator_kms.crypto import get_encryptor
from validator_kms.secrets_manager.base import ConfigError, SecretsManager, SecretsManagerType
from validator_kms.secrets_manager.client import RemoteSigningClient
from validator_kms.secrets_manager.codec import SigningProtocolCodec
from validator_kms.secrets_manager.kms import KmsSecretsManager, validate_kms_config
from validator_kms.secrets_manager.local import LocalKeyStore

logger = logging.getLogger(__name__)


def get_manager_type(settings: Settings) -> SecretsManagerType:
    """Resolve the configured backend type.

    Raises:
        ConfigError: If the type is not a known backend
    """
    try:
        return SecretsManagerType(settings.secrets_manager_type.lower())
    except ValueError:
        raise ConfigError(f"unknown secrets manager type: {settings.secrets_manager_type!r}")


def create_kms_secrets_manager(settings: Settings) -> KmsSecretsManager:
    """Build a KMS secrets manager and its collaborators from settings.

    Raises:
        ConfigError: If the KMS endpoint, token or node name is missing
    """
    validate_kms_config(settings.kms_server_url, settings.kms_token, settings.kms_node_name)

    local_store = LocalKeyStore(
        Path(settings.data_dir) / settings.kms_node_name,
        encryptor=get_encryptor(settings.master_key),
    )
    client = RemoteSigningClient(
        settings.kms_token,
        timeout=settings.kms_request_timeout,
        max_idle_connections=settings.kms_max_idle_connections,
        idle_timeout=settings.kms_idle_timeout,
    )
    codec = SigningProtocolCodec(
        legacy_s_from_r=settings.kms_legacy_s_from_r,
        recovery_byte_policy=settings.kms_recovery_byte,
    )

    return KmsSecretsManager(
        server_url=settings.kms_server_url,
        token=settings.kms_token,
        node_name=settings.kms_node_name,
        local_store=local_store,
        client=client,
        codec=codec,
        log=logging.getLogger(f"validator_kms.{SecretsManagerType.AWS_KMS.value}"),
    )


_manager_instance: Optional[SecretsManager] = None


def get_secrets_manager(settings: Optional[Settings] = None) -> SecretsManager:
    """Get the configured secrets manager instance.

    Returns singleton instance for the configured backend.

    Raises:
        ConfigError: If configuration is missing or invalid
    """
    global _manager_instance

    if _manager_instance is not None:
        return _manager_instance

    settings = settings or get_settings()
    manager_type = get_manager_type(settings)
    logger.info(f"Initializing {manager_type.value} secrets manager")

    _manager_instance = create_kms_secrets_manager(settings)
    return _manager_instance


def reset_secrets_manager():
    """Reset the secrets manager instance (for testing)."""
    global _manager_instance
    if _manager_instance is not None:
        _manager_instance.close()
    _manager_instance = None
    get_settings.cache_clear()
