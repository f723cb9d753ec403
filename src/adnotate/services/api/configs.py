"""API service configuration models.

See Also:
    [Api][adnotate.services.api.Api]: The service class that consumes
        these configurations.
    [SyncerConfig][adnotate.services.syncer.SyncerConfig]: Settings of the
        syncer the HTTP triggers drive.
"""

from __future__ import annotations

from pydantic import Field

from adnotate.core.base_service import BaseServiceConfig
from adnotate.services.syncer.configs import SyncerConfig


class ApiConfig(BaseServiceConfig):
    """Configuration for the API service.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        syncer: Configuration of the syncer run by each trigger.
    """

    host: str = Field(default="0.0.0.0", min_length=1, description="HTTP bind address")  # noqa: S104
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")
    syncer: SyncerConfig = Field(default_factory=lambda: SyncerConfig.model_validate({}))
