"""Pytest configuration and fixtures."""

import os

import httpx
import pytest

# Set test environment
os.environ["KMS_SERVER_URL"] = "http://kms.test/api"
os.environ["KMS_TOKEN"] = "test-token"
os.environ["KMS_NODE_NAME"] = "node1"

from validator_kms.secrets_manager import (
    KmsSecretsManager,
    RemoteSigningClient,
    SigningProtocolCodec,
    reset_secrets_manager,
)
from validator_kms.secrets_manager.local import LocalKeyStore

KMS_URL = "http://kms.test/api"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Drop cached settings and manager between tests."""
    reset_secrets_manager()
    yield
    reset_secrets_manager()


@pytest.fixture
def local_store(tmp_path) -> LocalKeyStore:
    """Create an unencrypted local key store in a temp directory."""
    return LocalKeyStore(tmp_path / "node1")


class KmsStub:
    """Records requests and replays a canned KMS response."""

    def __init__(self, status_code: int = 200, json_body=None, content: bytes = b""):
        self.status_code = status_code
        self.json_body = json_body
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.json_body is not None:
            return httpx.Response(self.status_code, json=self.json_body)
        return httpx.Response(self.status_code, content=self.content)


@pytest.fixture
def make_manager(local_store):
    """Build a KmsSecretsManager wired to a stubbed KMS endpoint."""
    managers = []

    def _make(stub: KmsStub, codec: SigningProtocolCodec = None) -> KmsSecretsManager:
        client = RemoteSigningClient("test-token", transport=httpx.MockTransport(stub))
        manager = KmsSecretsManager(
            server_url=KMS_URL,
            token="test-token",
            node_name="node1",
            local_store=local_store,
            client=client,
            codec=codec,
        )
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        manager.close()
