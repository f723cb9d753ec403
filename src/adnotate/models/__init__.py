"""Pure frozen dataclasses and vocabularies with zero I/O.

The models layer is the foundation of the diamond DAG. It has **no
dependencies** on any other adnotate package -- only the Python standard
library.

Attributes:
    Activity: One ad account audit log record with its parsed timestamp.
    Annotation: Content, creation time, and scope of a delivered marker.
    SyncWindow: ``since``/``until`` pair for historical runs.
    ObjectType: Object tags eligible for forwarding.
    SkipReason: Admission outcomes other than "forward".
    ServiceName: Identifiers used in logging and metrics.
"""

from .activity import Activity, parse_event_time
from .annotation import Annotation
from .constants import (
    ACTIVITY_FIELDS,
    ALLOWED_EVENTS,
    ALLOWED_OBJECTS,
    ANNOTATION_SCOPE,
    OBJECT_TYPE_DISPLAY,
    SECONDS_PER_DAY,
    WATERMARK_KEY,
    ObjectType,
    ServiceName,
    SkipReason,
)
from .window import SyncWindow, parse_lookback_days


__all__ = [
    "ACTIVITY_FIELDS",
    "ALLOWED_EVENTS",
    "ALLOWED_OBJECTS",
    "ANNOTATION_SCOPE",
    "OBJECT_TYPE_DISPLAY",
    "SECONDS_PER_DAY",
    "WATERMARK_KEY",
    "Activity",
    "Annotation",
    "ObjectType",
    "ServiceName",
    "SkipReason",
    "SyncWindow",
    "parse_event_time",
    "parse_lookback_days",
]
