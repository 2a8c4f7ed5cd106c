"""Remote KMS secrets manager.

The validator signing key lives in a remote custodial KMS service and never
leaves it: the node can only ask the service to sign and to report the key's
public identity. The libp2p network key stays in the local key store.

Setup:
1. Provision a key in the KMS service named after the node
2. Set KMS_SERVER_URL, KMS_TOKEN and KMS_NODE_NAME
3. Optionally set MASTER_KEY to encrypt the local network key at rest

Which backend serves which name is fixed by CAPABILITIES below.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from validator_kms.secrets_manager.base import (
    ConfigError,
    KeyStore,
    Operation,
    OperationNotSupportedError,
    SecretInfo,
    SecretName,
    SecretsManager,
    SecretsManagerType,
    UnsupportedNameError,
    parse_secret_name,
)
from validator_kms.secrets_manager.client import RemoteSigningClient
from validator_kms.secrets_manager.codec import SigningProtocolCodec

logger = logging.getLogger(__name__)


class Backend(str, Enum):
    """Where a secret lives."""
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class Capability:
    backend: Backend
    operations: frozenset[Operation]


CAPABILITIES: dict[SecretName, Capability] = {
    # Presence of the remote key is assumed, not checked against the service
    SecretName.VALIDATOR_KEY: Capability(
        Backend.REMOTE,
        frozenset({Operation.HAS, Operation.INFO}),
    ),
    SecretName.NETWORK_KEY: Capability(
        Backend.LOCAL,
        frozenset({Operation.GET, Operation.SET, Operation.HAS, Operation.REMOVE}),
    ),
}


def validate_kms_config(server_url: str, token: str, node_name: str) -> None:
    """Fail fast on missing KMS settings.

    Raises:
        ConfigError: If any value is empty
    """
    if not token:
        raise ConfigError("no token specified for kms secrets manager")
    if not server_url:
        raise ConfigError("no server URL specified for kms secrets manager")
    if not node_name:
        raise ConfigError("no node name specified for kms secrets manager")


class KmsSecretsManager(SecretsManager):
    """Secrets manager backed by a remote KMS signing service.

    Routes validator key operations to the KMS service and network key
    operations to a local key store. Holds no per-call state, so a single
    instance can serve concurrent callers.
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        node_name: str,
        local_store: KeyStore,
        client: Optional[RemoteSigningClient] = None,
        codec: Optional[SigningProtocolCodec] = None,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize KMS secrets manager.

        Args:
            server_url: KMS service endpoint
            token: KMS authentication token
            node_name: Node name, used as the KMS key id
            local_store: Store for secrets kept on the node
            client: HTTP client (built from token if omitted)
            codec: Wire codec (defaults to SigningProtocolCodec())
            log: Logger to report through (defaults to the module logger)

        Raises:
            ConfigError: If server_url, token or node_name is empty
        """
        super().__init__(SecretsManagerType.AWS_KMS)

        validate_kms_config(server_url, token, node_name)

        self.server_url = server_url
        self.node_name = node_name
        self._local = local_store
        self._client = client or RemoteSigningClient(token)
        self._codec = codec or SigningProtocolCodec()
        self._logger = log or logger

        self._logger.info(
            f"KMS secrets manager ready for node {node_name} "
            f"(legacy_s_from_r={self._codec.legacy_s_from_r}, "
            f"recovery_byte={self._codec.recovery_byte_policy})"
        )

    def _route(self, name: Union[SecretName, str], operation: Operation) -> tuple[SecretName, Backend]:
        """Resolve the backend for name, raising if the operation is not allowed."""
        secret_name = parse_secret_name(name)
        capability = CAPABILITIES.get(secret_name)
        if capability is None:
            raise UnsupportedNameError(name, operation)
        if operation not in capability.operations:
            raise OperationNotSupportedError(
                secret_name, operation, self._manager_type.value
            )
        return secret_name, capability.backend

    def get_secret(self, name: Union[SecretName, str]) -> bytes:
        """Get a secret by name.

        The validator key cannot be read: it never leaves the KMS service.
        """
        secret_name, _ = self._route(name, Operation.GET)
        return self._local.get(secret_name.value)

    def set_secret(self, name: Union[SecretName, str], value: bytes) -> None:
        secret_name, _ = self._route(name, Operation.SET)
        self._local.set(secret_name.value, value)

    def has_secret(self, name: Union[SecretName, str]) -> bool:
        """Check if a secret is present.

        Always True for the validator key. Unknown names report False.
        """
        try:
            secret_name, backend = self._route(name, Operation.HAS)
        except UnsupportedNameError:
            return False

        if backend is Backend.REMOTE:
            return True
        return self._local.has(secret_name.value)

    def remove_secret(self, name: Union[SecretName, str]) -> None:
        secret_name, _ = self._route(name, Operation.REMOVE)
        self._local.remove(secret_name.value)

    def sign_by_secret(self, key: Union[SecretName, str], data: bytes) -> bytes:
        """Sign data with the node's KMS key.

        The KMS service is the only signing backend, so key is not used to
        pick one; the service signs with the key named after this node.
        """
        request = self._codec.encode_sign_request(self.node_name, data)
        self._logger.debug(f"KMS sign_raw request for {getattr(key, 'value', key)}: {request.decode()}")

        body = self._client.post(self.server_url, request)
        signature = self._codec.decode_sign_response(body)
        return signature.to_bytes()

    def get_secret_info(self, name: Union[SecretName, str]) -> SecretInfo:
        capability = CAPABILITIES.get(parse_secret_name(name))
        if capability is None or Operation.INFO not in capability.operations:
            raise UnsupportedNameError(name, Operation.INFO)

        request = self._codec.encode_info_request(self.node_name)
        self._logger.debug(f"KMS info request: {request.decode()}")

        body = self._client.post(self.server_url, request)
        info = self._codec.decode_info_response(body)
        self._logger.debug(f"KMS info response: address={info.address} pubkey={info.pubkey}")
        return info

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "KmsSecretsManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
