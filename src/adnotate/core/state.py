"""
Durable key-value state for sync watermarks.

Services see state only through the [StateStore][adnotate.core.state.StateStore]
protocol: ``get(key) -> str | None`` and ``put(key, value)``. Values are
plain strings; the syncer stores its watermark as a decimal Unix-second
string under ``last_sync_time``.

Two implementations are provided:

* [MemoryStateStore][adnotate.core.state.MemoryStateStore]: a dict, for
  tests and one-off historical runs where nothing needs to survive.
* [PostgresStateStore][adnotate.core.state.PostgresStateStore]: one row
  per key in a small table, over the asyncpg [Pool][adnotate.core.pool.Pool].

Warning:
    Neither implementation locks around a read-modify-write. Two syncs
    running at once both read the same watermark and the last writer wins.

See Also:
    [BaseService][adnotate.core.base_service.BaseService]: Receives the
        store as an injected dependency.
"""

from __future__ import annotations

import re
import time
from types import TracebackType
from typing import Any, Literal, Protocol, Self, runtime_checkable

import asyncpg
from pydantic import BaseModel, Field, field_validator

from .exceptions import StateStoreError
from .logger import Logger
from .pool import Pool, PoolConfig


_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


@runtime_checkable
class StateStore(Protocol):
    """Opaque get/put interface over durable state."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when the key is absent."""
        ...

    async def put(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...


class MemoryStateStore:
    """In-process state store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every stored key/value pair."""
        return dict(self._data)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        return None


class PostgresStateStore:
    """State store persisting one row per key in PostgreSQL.

    The table is created on entry if it does not exist::

        key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at BIGINT NOT NULL

    All database failures surface as
    [StateStoreError][adnotate.core.exceptions.StateStoreError].
    """

    def __init__(self, pool: Pool, table: str = "key_value_state") -> None:
        if not _IDENTIFIER_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self._pool = pool
        self._table = table
        self._logger = Logger("state")

    async def ensure_table(self) -> None:
        """Create the backing table when missing."""
        await self._run(
            "execute",
            f"CREATE TABLE IF NOT EXISTS {self._table} ("
            "key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at BIGINT NOT NULL)",
        )

    async def get(self, key: str) -> str | None:
        value = await self._run(
            "fetchval", f"SELECT value FROM {self._table} WHERE key = $1", key
        )
        return None if value is None else str(value)

    async def put(self, key: str, value: str) -> None:
        await self._run(
            "execute",
            f"INSERT INTO {self._table} (key, value, updated_at) VALUES ($1, $2, $3) "
            "ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, "
            "updated_at = EXCLUDED.updated_at",
            key,
            value,
            int(time.time()),
        )
        self._logger.debug("state_written", key=key, value=value)

    async def _run(self, operation: Literal["fetchval", "execute"], query: str, *args: Any) -> Any:
        try:
            if operation == "fetchval":
                return await self._pool.fetchval(query, *args)
            return await self._pool.execute(query, *args)
        except (asyncpg.PostgresError, ConnectionError, OSError, RuntimeError) as e:
            raise StateStoreError(f"state {operation} failed: {e}") from e

    async def __aenter__(self) -> Self:
        await self._pool.connect()
        await self.ensure_table()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        await self._pool.close()


class StateConfig(BaseModel):
    """Selects and configures the durable state backend.

    ``pool`` is only read (and its password env var only required) when
    ``backend`` is ``postgres``.
    """

    backend: Literal["memory", "postgres"] = Field(
        default="postgres", description="State store implementation"
    )
    table: str = Field(default="key_value_state", description="Table name for postgres")
    pool: dict[str, Any] = Field(default_factory=dict, description="PoolConfig fields")

    @field_validator("table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        if not _IDENTIFIER_RE.match(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v


def create_state_store(config: StateConfig | None = None) -> MemoryStateStore | PostgresStateStore:
    """Build the state store described by *config*.

    Raises:
        pydantic.ValidationError: If the postgres pool config is invalid
            (including a missing password environment variable).
    """
    config = config or StateConfig()
    if config.backend == "memory":
        return MemoryStateStore()
    return PostgresStateStore(Pool(PoolConfig(**config.pool)), table=config.table)
