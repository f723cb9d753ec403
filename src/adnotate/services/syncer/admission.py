"""Admission filter: decides whether an activity is forwarded.

Pure functions, no I/O. Rules are evaluated in a fixed order and the first
match wins:

1. ``already_synced`` -- incremental runs only: the activity's timestamp
   is at or below the watermark.
2. ``object_type`` -- the object type is not in
   [ALLOWED_OBJECTS][adnotate.models.constants.ALLOWED_OBJECTS].
3. ``event_type`` -- the event type is not in
   [ALLOWED_EVENTS][adnotate.models.constants.ALLOWED_EVENTS] and the
   allow-all override is off.

Both vocabularies are matched case-sensitively against the source's
native tag strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from adnotate.models.constants import ALLOWED_EVENTS, ALLOWED_OBJECTS, SkipReason


if TYPE_CHECKING:
    from adnotate.models import Activity


def check_admission(
    activity: Activity,
    watermark: int,
    *,
    historical: bool,
    allow_all_events: bool,
) -> SkipReason | None:
    """Return why *activity* must be skipped, or ``None`` to forward it.

    Args:
        activity: The candidate activity.
        watermark: Unix seconds of the newest activity already forwarded.
        historical: True for runs with an explicit lookback; disables the
            watermark rule.
        allow_all_events: Bypass the event-type allowlist.
    """
    if (
        not historical
        and activity.timestamp is not None
        and activity.timestamp <= watermark
    ):
        return SkipReason.ALREADY_SYNCED

    if activity.object_type not in ALLOWED_OBJECTS:
        return SkipReason.OBJECT_TYPE

    if not allow_all_events and activity.event_type not in ALLOWED_EVENTS:
        return SkipReason.EVENT_TYPE

    return None


def is_admitted(
    activity: Activity,
    watermark: int,
    *,
    historical: bool,
    allow_all_events: bool,
) -> bool:
    """Boolean form of [check_admission()][adnotate.services.syncer.admission.check_admission]."""
    return (
        check_admission(
            activity, watermark, historical=historical, allow_all_events=allow_all_events
        )
        is None
    )
