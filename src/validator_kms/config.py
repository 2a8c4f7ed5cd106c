"""Application configuration using pydantic-settings.

Holds the remote KMS endpoint, the node identity used as the KMS key id,
and the local key store location.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Backend selection
    # ======================
    secrets_manager_type: str = Field(
        default="aws-kms", description="Secrets manager backend type"
    )

    # ======================
    # Remote KMS
    # ======================
    kms_server_url: str = Field(default="", description="KMS signing service endpoint URL")
    kms_token: str = Field(default="", description="KMS authentication token")
    kms_node_name: str = Field(
        default="", description="Node name, used as the KMS key id and local key prefix"
    )
    kms_request_timeout: float = Field(
        default=10.0, description="Per-request deadline in seconds"
    )
    kms_max_idle_connections: int = Field(
        default=10, description="Maximum idle keep-alive connections in the pool"
    )
    kms_idle_timeout: float = Field(
        default=30.0, description="Idle connection expiry in seconds"
    )

    # ======================
    # Signature compatibility
    # ======================
    kms_legacy_s_from_r: bool = Field(
        default=False, description="Read S from the 'r' field like older deployments"
    )
    kms_recovery_byte: Literal["legacy", "low"] = Field(
        default="legacy",
        description="V byte selection: 'legacy' takes byte 0 of big-endian int32, 'low' takes the last",
    )

    # ======================
    # Local key store
    # ======================
    data_dir: str = Field(default="./data", description="Base directory for local secrets")
    master_key: Optional[str] = Field(
        default=None, description="Fernet key used to encrypt local secrets at rest"
    )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "secrets_manager_type": self.secrets_manager_type,
            "kms": {
                "server_url": self.kms_server_url or "(not set)",
                "token": "***" if self.kms_token else "(not set)",
                "node_name": self.kms_node_name or "(not set)",
                "request_timeout": self.kms_request_timeout,
                "legacy_s_from_r": self.kms_legacy_s_from_r,
                "recovery_byte": self.kms_recovery_byte,
            },
            "local": {
                "data_dir": self.data_dir,
                "encrypted": bool(self.master_key),
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

