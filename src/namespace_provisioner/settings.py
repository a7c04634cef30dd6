"""
namespace_provisioner.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the controller and its adapters.
- Resolve the watched group name once at startup (`TARGET_GROUP_NAME`).
- Hide secrets from repr/logging (e.g., the bearer token).
- Offer a cached settings instance for the entrypoint.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TARGET_GROUP_NAME = "redhat-ai-dev-users"


class Settings(BaseSettings):
    """
    - Env-driven configuration, prefix `PROVISIONER_`
    - The target group keeps its historical unprefixed variable name
    - Resolved once in the bootstrap layer and injected into the core
    """

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONER_",
        case_sensitive=False,
        populate_by_name=True,
    )

    env: Literal["dev", "test", "prod"] = "prod"
    service_name: str = "namespace-provisioner"
    log_level: str = "INFO"

    # The one group whose membership drives project provisioning.
    target_group_name: str = Field(
        default=DEFAULT_TARGET_GROUP_NAME,
        min_length=1,
        validation_alias=AliasChoices("TARGET_GROUP_NAME", "PROVISIONER_TARGET_GROUP_NAME"),
    )

    # Cluster API access: in-cluster service account first, then kubeconfig.
    # None falls back to $KUBECONFIG, then ~/.kube/config.
    kubeconfig: str | None = None
    kube_context: str | None = None
    # Explicit overrides applied on top of whatever config was loaded.
    api_server_url: str | None = None
    api_token: str | None = Field(default=None, repr=False)
    verify_tls: bool = True
    # None keeps the transport's own defaults for gateway calls.
    request_timeout_seconds: float | None = None

    # Observer
    resync_period_seconds: float = 600.0
    watch_retry_delay_seconds: float = 5.0
    event_queue_size: int = Field(default=64, ge=1)
    sync_timeout_seconds: float | None = 120.0

    # Health endpoints
    health_enabled: bool = True
    health_host: str = "0.0.0.0"
    health_port: int = 8081


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars if several bootstrap helpers ask for settings.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Only the bootstrap layer (`namespace_provisioner.__main__`) calls `get_settings`;
# core components receive plain values through their constructors.
