"""HTTP client for the remote KMS signing service.

All calls are JSON POSTs to a single endpoint. There are no retries: a
signing call that fails is reported once and the caller decides what to do.
"""

import logging
from typing import Optional

import httpx

from validator_kms.secrets_manager.base import RemoteStatusError, TransportError

logger = logging.getLogger(__name__)


class RemoteSigningClient:
    """Pooled, synchronous HTTP client for KMS requests.

    The underlying httpx.Client is thread-safe and may be shared by
    concurrent callers.
    """

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        max_idle_connections: int = 10,
        idle_timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize KMS HTTP client.

        Args:
            token: Bearer token for the KMS service
            timeout: Per-request deadline in seconds
            max_idle_connections: Idle keep-alive connections kept in the pool
            idle_timeout: Seconds before an idle connection is dropped
            transport: Optional custom transport (used by tests)
        """
        limits = httpx.Limits(
            max_keepalive_connections=max_idle_connections,
            keepalive_expiry=idle_timeout,
        )
        self._client = httpx.Client(
            timeout=timeout,
            limits=limits,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept-Encoding": "identity",  # payloads are tiny, skip compression
                "Authorization": f"Bearer {token}",
            },
        )

    def post(self, url: str, body: bytes) -> bytes:
        """POST a JSON body and return the raw response body.

        Raises:
            TransportError: Network failure or deadline exceeded
            RemoteStatusError: Any non-2xx status
        """
        try:
            response = self._client.post(url, content=body)
        except httpx.TransportError as e:
            logger.error(f"KMS request to {url} failed: {e}")
            raise TransportError(f"KMS request failed: {e}") from e

        if not response.is_success:
            logger.error(f"KMS service returned status {response.status_code}")
            raise RemoteStatusError(response.status_code)

        return response.content

    def close(self) -> None:
        """Close pooled connections."""
        self._client.close()

    def __enter__(self) -> "RemoteSigningClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
