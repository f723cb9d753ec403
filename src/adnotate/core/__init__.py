"""Core layer providing the foundation for adnotate services.

Sits in the middle of the diamond DAG -- depends only on
``adnotate.models`` and is depended upon by ``adnotate.services``.

Attributes:
    BaseService: Abstract generic base class with lifecycle management,
        factory methods, and Prometheus metrics helpers.
    StateStore: get/put protocol over durable state, with
        [MemoryStateStore][adnotate.core.state.MemoryStateStore] and
        [PostgresStateStore][adnotate.core.state.PostgresStateStore].
    Pool: Async PostgreSQL connection pool with retry/backoff.
    Logger: Structured logger supporting key=value and JSON output.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
"""

from .base_service import BaseService, BaseServiceConfig, ConfigT
from .exceptions import (
    AdnotateError,
    ConfigurationError,
    DeliveryError,
    SourceFetchError,
    StateStoreError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .pool import DatabaseConfig, Pool, PoolConfig, PoolLimitsConfig, PoolRetryConfig
from .state import (
    MemoryStateStore,
    PostgresStateStore,
    StateConfig,
    StateStore,
    create_state_store,
)
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "AdnotateError",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "DatabaseConfig",
    "DeliveryError",
    "Logger",
    "MemoryStateStore",
    "MetricsConfig",
    "MetricsServer",
    "Pool",
    "PoolConfig",
    "PoolLimitsConfig",
    "PoolRetryConfig",
    "PostgresStateStore",
    "SourceFetchError",
    "StateConfig",
    "StateStore",
    "StateStoreError",
    "StructuredFormatter",
    "create_state_store",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
