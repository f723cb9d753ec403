"""Activity log entries fetched from the ad account audit log.

An [Activity][adnotate.models.activity.Activity] is ephemeral: it is built
from one record of the source response, passed through admission and
formatting, and discarded at the end of the run. Nothing about it is
persisted except (indirectly) its timestamp, via the watermark.

See Also:
    [Syncer][adnotate.services.syncer.Syncer]: Builds activities from the
        source response with
        [Activity.from_dict()][adnotate.models.activity.Activity.from_dict].
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._validation import validate_optional_str, validate_str


if TYPE_CHECKING:
    from collections.abc import Mapping


_EVENT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def parse_event_time(value: str | None) -> int | None:
    """Convert a source-native event time into Unix seconds.

    The audit log emits ``2024-05-01T10:20:30+0000``; any other ISO 8601
    form accepted by ``datetime.fromisoformat`` is tolerated as well.
    Naive values are interpreted as UTC.

    Returns:
        Whole Unix seconds, or ``None`` when the value cannot be parsed.
    """
    if not value:
        return None
    try:
        dt = datetime.datetime.strptime(value, _EVENT_TIME_FORMAT)
    except ValueError:
        try:
            dt = datetime.datetime.fromisoformat(value)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.UTC)
    return int(dt.timestamp())


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class Activity:
    """A single audit log record.

    Attributes:
        event_time: Source-native timestamp string, reused verbatim as the
            annotation creation time.
        event_type: Event tag (e.g. ``update_ad_set_budget``).
        object_type: Object tag (e.g. ``AD_SET``).
        object_id: Identifier of the affected object.
        object_name: Display name of the affected object, if any.
        actor_name: Name of the user who made the change.
        translated_event_type: Human-readable event label from the source.
        extra_data: Raw structured payload, usually a JSON-encoded string.
            Kept opaque here; decoding happens in
            [parse_extra_data()][adnotate.services.syncer.formatter.parse_extra_data].
        timestamp: ``event_time`` in Unix seconds, or ``None`` when the
            value is not a recognizable timestamp.

    Examples:
        ```python
        activity = Activity.from_dict({
            "event_time": "2024-05-01T10:20:30+0000",
            "event_type": "update_ad_set_budget",
            "object_type": "AD_SET",
            "object_name": "Summer Promo",
        })
        activity.timestamp  # 1714558830
        ```
    """

    event_time: str
    event_type: str
    object_type: str
    object_id: str | None = None
    object_name: str | None = None
    actor_name: str | None = None
    translated_event_type: str | None = None
    extra_data: Any = None
    timestamp: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        validate_str(self.event_time, "event_time")
        validate_str(self.event_type, "event_type")
        validate_str(self.object_type, "object_type")
        validate_optional_str(self.object_id, "object_id")
        validate_optional_str(self.object_name, "object_name")
        validate_optional_str(self.actor_name, "actor_name")
        validate_optional_str(self.translated_event_type, "translated_event_type")
        object.__setattr__(self, "timestamp", parse_event_time(self.event_time))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Activity:
        """Build an activity from one record of the source response.

        Missing tag fields become empty strings so that admission rejects
        them instead of failing construction.
        """
        return cls(
            event_time=str(data.get("event_time") or ""),
            event_type=str(data.get("event_type") or ""),
            object_type=str(data.get("object_type") or ""),
            object_id=_optional_str(data.get("object_id")),
            object_name=_optional_str(data.get("object_name")),
            actor_name=_optional_str(data.get("actor_name")),
            translated_event_type=_optional_str(data.get("translated_event_type")),
            extra_data=data.get("extra_data"),
        )
