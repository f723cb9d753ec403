"""Shared constants for the models layer.

Defines the closed vocabularies used by the admission filter and the
message formatter. Placing them here keeps the services layer free of
hard-coded tag strings and lets tests import the exact same sets.

See Also:
    [adnotate.services.syncer.admission][]: Consumes
        [ALLOWED_OBJECTS][adnotate.models.constants.ALLOWED_OBJECTS] and
        [ALLOWED_EVENTS][adnotate.models.constants.ALLOWED_EVENTS].
    [adnotate.services.syncer.formatter][]: Consumes
        [OBJECT_TYPE_DISPLAY][adnotate.models.constants.OBJECT_TYPE_DISPLAY].
"""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        SYNCER: Activity log to annotation synchronization service
            ([Syncer][adnotate.services.syncer.Syncer]).
        API: HTTP trigger surface
            ([Api][adnotate.services.api.Api]).
    """

    SYNCER = "syncer"
    API = "api"


class ObjectType(StrEnum):
    """Ad account object types eligible for forwarding.

    Values are the source's native tag strings and are matched
    case-sensitively.
    """

    CAMPAIGN = "CAMPAIGN"
    AD_SET = "AD_SET"
    AD = "AD"
    AUDIENCE = "AUDIENCE"


class SkipReason(StrEnum):
    """Why an activity was not forwarded, in rule evaluation order."""

    ALREADY_SYNCED = "already_synced"
    OBJECT_TYPE = "object_type"
    EVENT_TYPE = "event_type"


ALLOWED_OBJECTS: frozenset[str] = frozenset(ObjectType)

ALLOWED_EVENTS: frozenset[str] = frozenset(
    {
        # Budget
        "update_ad_set_budget",
        "update_campaign_budget",
        "update_campaign_group_spend_cap",
        "ad_account_update_spend_limit",
        "ad_account_remove_spend_limit",
        "ad_account_reset_spend_limit",
        # Status
        "update_ad_run_status",
        "update_ad_set_run_status",
        "update_campaign_run_status",
        "ad_review_declined",
        "ad_review_approved",
        # Targeting
        "update_ad_set_target_spec",
        "update_ad_targets_spec",
        "update_audience",
        "create_audience",
        "delete_audience",
        # Billing
        "ad_account_billing_decline",
        "ad_account_billing_charge_failed",
        # Creative
        "update_ad_creative",
        "create_ad",
    }
)

OBJECT_TYPE_DISPLAY: MappingProxyType[str, str] = MappingProxyType(
    {
        ObjectType.CAMPAIGN: "Campaign",
        ObjectType.AD_SET: "Ad Set",
        ObjectType.AD: "Ad",
        ObjectType.AUDIENCE: "Audience",
    }
)

ACTIVITY_FIELDS: tuple[str, ...] = (
    "event_time",
    "event_type",
    "translated_event_type",
    "object_id",
    "object_name",
    "object_type",
    "actor_name",
    "extra_data",
)

ANNOTATION_SCOPE = "organization"
WATERMARK_KEY = "last_sync_time"
SECONDS_PER_DAY = 86_400
