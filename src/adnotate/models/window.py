"""Historical sync windows.

A [SyncWindow][adnotate.models.window.SyncWindow] exists only for runs with
an explicit lookback. Incremental runs carry no window and rely on the
watermark instead.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from ._validation import validate_timestamp
from .constants import SECONDS_PER_DAY


def parse_lookback_days(value: Any) -> int:
    """Validate a caller-supplied lookback, in days.

    Accepts positive ``int`` values and strings holding a positive decimal
    integer. Everything else (zero, negatives, ``bool``, ``"abc"``,
    ``"7days"``) is rejected.

    Raises:
        ValueError: If *value* is not a positive integer.
    """
    if isinstance(value, bool):
        raise ValueError(f"lookback days must be a positive integer, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not text.lstrip("+-").isdigit():
            raise ValueError(f"lookback days must be a positive integer, got {value!r}")
        value = int(text)
    if not isinstance(value, int) or value <= 0:
        raise ValueError(f"lookback days must be a positive integer, got {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class SyncWindow:
    """An inclusive ``[since, until]`` range in Unix seconds."""

    since: int
    until: int

    def __post_init__(self) -> None:
        validate_timestamp(self.since, "since")
        validate_timestamp(self.until, "until")
        if self.since > self.until:
            raise ValueError(f"since ({self.since}) must not exceed until ({self.until})")

    @classmethod
    def from_lookback(cls, days: int, now: int | None = None) -> SyncWindow:
        """Build the window ``[now - days * 86400, now]``.

        Args:
            days: Positive number of days to look back.
            now: Reference time in Unix seconds (default: current time).
        """
        days = parse_lookback_days(days)
        until = int(time.time()) if now is None else now
        return cls(since=max(until - days * SECONDS_PER_DAY, 0), until=until)

    def to_params(self) -> dict[str, str]:
        """Return the ``since``/``until`` query parameters."""
        return {"since": str(self.since), "until": str(self.until)}
