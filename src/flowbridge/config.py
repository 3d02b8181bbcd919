"""
Configuration management for Flow Bridge.

Supports configuration via environment variables and .env files.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeConfig(BaseSettings):
    """
    Configuration settings for Flow Bridge.

    All settings can be configured via environment variables with the FLOWBRIDGE_ prefix.
    Mapping values (credential_endpoints) are read from the environment as JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLOWBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Dispatch settings
    call_quota: int = Field(
        default=100,
        ge=1,
        description="Maximum number of outbound calls in one asynchronous execution unit"
    )
    call_timeout_ms: int = Field(
        default=10_000,
        ge=1,
        description="Per-call timeout in milliseconds"
    )
    compress_requests: bool = Field(
        default=True,
        description="Gzip-compress outbound request bodies"
    )
    max_concurrent_chunks: int = Field(
        default=1,
        ge=1,
        description="Number of chunks the job runner executes at the same time"
    )

    # Credential settings
    credential_endpoints: Dict[str, str] = Field(
        default_factory=dict,
        description="Credential reference -> authenticated base endpoint"
    )

    # Job store settings
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy database URL for the job store (disabled when unset)"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    def endpoint_base(self, credential_ref: str) -> str:
        """Get the authenticated base endpoint for a credential reference."""
        base = self.credential_endpoints.get(credential_ref, credential_ref)
        return base.rstrip("/")


# Global config instance
_config: Optional[BridgeConfig] = None


def get_config() -> BridgeConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = BridgeConfig()
    return _config


def set_config(config: BridgeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
