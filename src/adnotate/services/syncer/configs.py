"""Syncer service configuration models.

Credentials are never read from YAML. Each one is loaded from the
environment variable named by the matching ``*_env`` field, the same way
[DatabaseConfig][adnotate.core.pool.DatabaseConfig] loads its password.
Unlike the database password, a missing credential does not fail
validation: the syncer checks credentials at the start of every run and
aborts that run with a log line instead.

See Also:
    [Syncer][adnotate.services.syncer.Syncer]: The service class that
        consumes these configurations.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field, SecretStr, model_validator

from adnotate.core.base_service import BaseServiceConfig


def _fill_from_env(data: Any, fields: dict[str, tuple[str, str]]) -> Any:
    """Populate absent *fields* from the environment.

    *fields* maps a field name to ``(env_field_name, default_env_var)``.
    Empty environment values count as absent.
    """
    if not isinstance(data, dict):
        return data
    for name, (env_field, default_env) in fields.items():
        if name not in data:
            data[name] = os.getenv(data.get(env_field, default_env)) or None
    return data


class SourceConfig(BaseModel):
    """Activity log (Graph API) connection settings.

    The request is
    ``GET {base_url}/{api_version}/{ad_account_id}/activities``.
    """

    base_url: str = Field(default="https://graph.facebook.com", description="Graph API base URL")
    access_token_env: str = Field(default="META_ACCESS_TOKEN", min_length=1)
    ad_account_id_env: str = Field(default="META_AD_ACCOUNT_ID", min_length=1)
    api_version_env: str = Field(default="META_API_VERSION", min_length=1)
    access_token: SecretStr | None = Field(default=None, description="Loaded from access_token_env")
    ad_account_id: str | None = Field(default=None, description="Loaded from ad_account_id_env")
    api_version: str | None = Field(default=None, description="Loaded from api_version_env")
    default_api_version: str = Field(
        default="v21.0", min_length=1, description="Used when api_version is unset"
    )
    timeout: float = Field(default=30.0, gt=0, le=300.0, description="Request timeout (s)")
    max_response_size: int = Field(
        default=5 * 1024 * 1024, ge=1024, description="Maximum response body size (bytes)"
    )

    @model_validator(mode="before")
    @classmethod
    def _load_from_env(cls, data: Any) -> Any:
        return _fill_from_env(
            data,
            {
                "access_token": ("access_token_env", "META_ACCESS_TOKEN"),
                "ad_account_id": ("ad_account_id_env", "META_AD_ACCOUNT_ID"),
                "api_version": ("api_version_env", "META_API_VERSION"),
            },
        )

    @property
    def has_credentials(self) -> bool:
        """Whether both the access token and the ad account id are set."""
        return bool(self.access_token and self.access_token.get_secret_value()) and bool(
            self.ad_account_id
        )

    @property
    def resolved_api_version(self) -> str:
        return self.api_version or self.default_api_version


class DestinationConfig(BaseModel):
    """Annotation endpoint (PostHog) connection settings.

    The request is
    ``POST {host}/api/projects/{project_id}/annotations/``.
    """

    api_key_env: str = Field(default="POSTHOG_API_KEY", min_length=1)
    project_id_env: str = Field(default="POSTHOG_PROJECT_ID", min_length=1)
    host_env: str = Field(default="POSTHOG_HOST", min_length=1)
    api_key: SecretStr | None = Field(default=None, description="Loaded from api_key_env")
    project_id: str | None = Field(default=None, description="Loaded from project_id_env")
    host: str | None = Field(default=None, description="Loaded from host_env")
    default_host: str = Field(default="https://us.posthog.com", min_length=1)
    timeout: float = Field(default=30.0, gt=0, le=300.0, description="Request timeout (s)")

    @model_validator(mode="before")
    @classmethod
    def _load_from_env(cls, data: Any) -> Any:
        return _fill_from_env(
            data,
            {
                "api_key": ("api_key_env", "POSTHOG_API_KEY"),
                "project_id": ("project_id_env", "POSTHOG_PROJECT_ID"),
                "host": ("host_env", "POSTHOG_HOST"),
            },
        )

    @property
    def has_credentials(self) -> bool:
        """Whether both the API key and the project id are set."""
        return bool(self.api_key and self.api_key.get_secret_value()) and bool(self.project_id)

    @property
    def resolved_host(self) -> str:
        return (self.host or self.default_host).rstrip("/")


class SyncerConfig(BaseServiceConfig):
    """Syncer service configuration.

    ``allow_all_events`` bypasses the event-type allowlist. When not set
    explicitly it is read from ``allow_all_events_env`` and is enabled only
    by the exact string ``"true"``.
    """

    source: SourceConfig = Field(default_factory=lambda: SourceConfig.model_validate({}))
    destination: DestinationConfig = Field(
        default_factory=lambda: DestinationConfig.model_validate({})
    )
    allow_all_events_env: str = Field(default="ALLOW_ALL_EVENTS", min_length=1)
    allow_all_events: bool = Field(default=False, description="Bypass the event-type allowlist")
    currency_symbol: str = Field(default="₱", description="Prefix for budget amounts")
    max_error_body: int = Field(
        default=4096, ge=64, description="Bytes of an error response body kept for logging"
    )

    @model_validator(mode="before")
    @classmethod
    def _load_allow_all(cls, data: Any) -> Any:
        if isinstance(data, dict) and "allow_all_events" not in data:
            env_var = data.get("allow_all_events_env", "ALLOW_ALL_EVENTS")
            data["allow_all_events"] = os.getenv(env_var) == "true"
        return data
