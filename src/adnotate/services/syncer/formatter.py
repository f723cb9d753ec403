"""Message formatter: turns an admitted activity into annotation text.

Never raises. ``extra_data`` arrives as an opaque, possibly malformed
payload, so every nested lookup tolerates missing keys and wrong types.

Output shapes:

* budget and spend cap changes::

    Budget updated on Ad Set: Summer Promo (₱100 -> ₱150)

* everything else::

    ad_review_approved on Summer Promo
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from adnotate.models import Activity
from adnotate.models.constants import OBJECT_TYPE_DISPLAY


logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"
MISSING_VALUE = "?"
BUDGET_MARKERS: tuple[str, ...] = ("budget", "spend_cap")


def parse_extra_data(raw: Any) -> dict[str, Any]:
    """Decode an activity's ``extra_data`` into a dict.

    Accepts an already-decoded mapping or a JSON string. Empty values,
    invalid or too deeply nested JSON, and JSON that does not decode to an
    object all yield ``{}``.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if not isinstance(raw, str | bytes | bytearray):
        logger.warning("extra_data_unsupported_type type=%s", type(raw).__name__)
        return {}
    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("extra_data_parse_failed raw=%.200s", raw)
        return {}
    if not isinstance(decoded, dict):
        return {}
    return decoded


def _nested_value(extra: Mapping[str, Any], outer: str, inner: str) -> str:
    """Return ``extra[outer][inner]`` as text, or ``?`` when absent."""
    container = extra.get(outer)
    if not isinstance(container, Mapping):
        return MISSING_VALUE
    value = container.get(inner)
    if value is None or value == "":
        return MISSING_VALUE
    return str(value)


def display_object_type(object_type: str) -> str:
    """Map an object tag to its display name; unknown tags pass through."""
    return OBJECT_TYPE_DISPLAY.get(object_type, object_type)


def is_budget_event(event_type: str) -> bool:
    return any(marker in event_type for marker in BUDGET_MARKERS)


def format_message(
    activity: Activity | Mapping[str, Any],
    extra: Mapping[str, Any] | None,
    *,
    currency_symbol: str = "₱",
) -> str | None:
    """Build the annotation text for *activity*.

    Args:
        activity: The admitted activity, or a raw record mapping.
        extra: Decoded ``extra_data`` (see
            [parse_extra_data()][adnotate.services.syncer.formatter.parse_extra_data]).
        currency_symbol: Prefix for budget amounts.

    Returns:
        The message, or ``None`` when the activity has no event type.
    """
    if isinstance(activity, Mapping):
        activity = Activity.from_dict(activity)
    if not isinstance(extra, Mapping):
        extra = {}

    event_type = activity.event_type
    if not event_type:
        return None

    name = activity.object_name or UNKNOWN_NAME

    if is_budget_event(event_type):
        old = _nested_value(extra, "old_value", "old_value")
        new = _nested_value(extra, "new_value", "new_value")
        display_type = display_object_type(activity.object_type)
        return (
            f"Budget updated on {display_type}: {name} "
            f"({currency_symbol}{old} -> {currency_symbol}{new})"
        )

    return f"{event_type} on {name}"
