"""adnotate exception hierarchy.

Typed exceptions for each failure class of a sync run, so the
orchestrator can abort, recover, or continue depending on where an error
came from instead of catching ``Exception``.

Exception hierarchy:

```text
AdnotateError (base -- never raised directly)
├── ConfigurationError   -- invalid configuration, bad YAML
├── StateStoreError      -- durable key-value store read/write failure
├── SourceFetchError     -- activity log query failed (aborts the run)
└── DeliveryError        -- one annotation was rejected (run continues)
```

See Also:
    [Syncer][adnotate.services.syncer.Syncer]: Catches every subclass at
        the run boundary and logs it.
"""

from __future__ import annotations


class AdnotateError(Exception):
    """Base exception for all adnotate errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(AdnotateError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


class StateStoreError(AdnotateError):
    """The durable key-value store could not be read or written."""


class _HttpError(AdnotateError):
    """An HTTP exchange finished with a non-success status."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class SourceFetchError(_HttpError):
    """The activity log query failed.

    Carries the response ``status`` and ``body`` when the server answered;
    both are empty for network-level failures. Terminal for the run.
    """


class DeliveryError(_HttpError):
    """The annotation endpoint rejected a single annotation.

    Non-fatal: the run logs it and moves on to the next activity.
    """
