"""Helpers and result types for the syncer service."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from adnotate.models.constants import SkipReason


def decode_watermark(raw: str | None) -> int | None:
    """Decode a stored watermark.

    Returns:
        ``0`` when nothing is stored, the integer value of a decimal
        string, or ``None`` when the stored value is not a decimal string.
    """
    if raw is None or raw == "":
        return 0
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


@dataclass(slots=True)
class SyncResult:
    """Outcome of one sync run.

    Attributes:
        lookback_days: Lookback of a historical run; ``None`` for
            incremental runs.
        fetched: Records returned by the activity query.
        forwarded: Annotations accepted by the destination.
        failed: Annotations the destination rejected or never received.
        unparseable: Records skipped because they were not objects or had
            no readable ``event_time``.
        empty_messages: Admitted activities for which the formatter
            produced nothing.
        skipped: Admission skips per reason.
        watermark_before: Watermark read at the start of the run.
        watermark_after: Watermark written at the end, or ``None`` when
            nothing was written (historical or aborted run).
        aborted: Why the run stopped early, or ``None`` if it completed.
    """

    lookback_days: int | None = None
    fetched: int = 0
    forwarded: int = 0
    failed: int = 0
    unparseable: int = 0
    empty_messages: int = 0
    skipped: Counter[SkipReason] = field(default_factory=Counter)
    watermark_before: int = 0
    watermark_after: int | None = None
    aborted: str | None = None

    @property
    def completed(self) -> bool:
        return self.aborted is None

    @property
    def historical(self) -> bool:
        return self.lookback_days is not None

    def as_log_fields(self) -> dict[str, Any]:
        """Flatten the result into keyword arguments for a log line."""
        fields: dict[str, Any] = {
            "lookback_days": self.lookback_days,
            "fetched": self.fetched,
            "forwarded": self.forwarded,
            "failed": self.failed,
            "unparseable": self.unparseable,
            "empty_messages": self.empty_messages,
            "watermark_before": self.watermark_before,
            "watermark_after": self.watermark_after,
        }
        for reason in SkipReason:
            fields[f"skipped_{reason}"] = self.skipped[reason]
        return fields
