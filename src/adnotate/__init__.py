r"""adnotate -- ad account activity to analytics annotation sync.

Polls the Graph API ad account activity log and forwards a filtered,
human-readable subset of entries to PostHog as annotations.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Syncer and the HTTP trigger surface
              /     \
           core     utils      Infrastructure and HTTP helpers
              \     /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from adnotate import Syncer``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("adnotate")

__all__ = [
    "Activity",
    "Annotation",
    "Api",
    "ApiConfig",
    "BaseService",
    "Logger",
    "MemoryStateStore",
    "PostgresStateStore",
    "StateStore",
    "SyncWindow",
    "Syncer",
    "SyncerConfig",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("adnotate.core", "BaseService"),
    "Logger": ("adnotate.core", "Logger"),
    "MemoryStateStore": ("adnotate.core", "MemoryStateStore"),
    "PostgresStateStore": ("adnotate.core", "PostgresStateStore"),
    "StateStore": ("adnotate.core", "StateStore"),
    "Activity": ("adnotate.models", "Activity"),
    "Annotation": ("adnotate.models", "Annotation"),
    "SyncWindow": ("adnotate.models", "SyncWindow"),
    "Api": ("adnotate.services", "Api"),
    "ApiConfig": ("adnotate.services", "ApiConfig"),
    "Syncer": ("adnotate.services", "Syncer"),
    "SyncerConfig": ("adnotate.services", "SyncerConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'adnotate' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
