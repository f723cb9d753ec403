"""Unit tests for services.syncer.admission module.

Tests:
- Rule order: watermark, then object type, then event type
- Watermark rule disabled for historical runs
- Allow-all override bypasses only the event-type rule
"""

import datetime

import pytest

from adnotate.models import ALLOWED_EVENTS, Activity, ObjectType, SkipReason
from adnotate.services.syncer.admission import check_admission, is_admitted


WATERMARK = 1_714_558_830


def _activity(ts_offset: int = 60, **overrides) -> Activity:
    ts = WATERMARK + ts_offset
    fields = {
        "event_time": datetime.datetime.fromtimestamp(ts, datetime.UTC).strftime(
            "%Y-%m-%dT%H:%M:%S+0000"
        ),
        "event_type": "update_ad_set_budget",
        "object_type": "AD_SET",
    }
    fields.update(overrides)
    return Activity(**fields)


class TestWatermarkRule:
    def test_newer_admitted(self) -> None:
        assert check_admission(
            _activity(60), WATERMARK, historical=False, allow_all_events=False
        ) is None

    @pytest.mark.parametrize("offset", [0, -1, -86_400])
    def test_at_or_below_skipped(self, offset: int) -> None:
        reason = check_admission(
            _activity(offset), WATERMARK, historical=False, allow_all_events=False
        )
        assert reason is SkipReason.ALREADY_SYNCED

    def test_takes_precedence_over_other_rules(self) -> None:
        activity = _activity(-10, object_type="AD_ACCOUNT", event_type="unknown_event")
        reason = check_admission(activity, WATERMARK, historical=False, allow_all_events=False)
        assert reason is SkipReason.ALREADY_SYNCED

    def test_ignored_for_historical_runs(self) -> None:
        assert check_admission(
            _activity(-86_400), WATERMARK, historical=True, allow_all_events=False
        ) is None

    def test_unparsed_timestamp_not_treated_as_synced(self) -> None:
        activity = _activity(event_time="garbage")
        assert activity.timestamp is None
        assert check_admission(
            activity, WATERMARK, historical=False, allow_all_events=False
        ) is None


class TestObjectTypeRule:
    @pytest.mark.parametrize("object_type", list(ObjectType))
    def test_allowed_objects(self, object_type: str) -> None:
        assert is_admitted(
            _activity(object_type=object_type),
            WATERMARK,
            historical=False,
            allow_all_events=False,
        )

    @pytest.mark.parametrize("object_type", ["AD_ACCOUNT", "campaign", "", "PIXEL"])
    @pytest.mark.parametrize("allow_all", [False, True])
    def test_other_objects_never_admitted(self, object_type: str, allow_all: bool) -> None:
        reason = check_admission(
            _activity(object_type=object_type),
            WATERMARK,
            historical=False,
            allow_all_events=allow_all,
        )
        assert reason is SkipReason.OBJECT_TYPE

    def test_precedes_event_type_rule(self) -> None:
        activity = _activity(object_type="PIXEL", event_type="unknown_event")
        reason = check_admission(activity, WATERMARK, historical=True, allow_all_events=False)
        assert reason is SkipReason.OBJECT_TYPE


class TestEventTypeRule:
    @pytest.mark.parametrize("event_type", sorted(ALLOWED_EVENTS))
    def test_allowlisted(self, event_type: str) -> None:
        assert is_admitted(
            _activity(event_type=event_type),
            WATERMARK,
            historical=False,
            allow_all_events=False,
        )

    def test_unlisted_skipped(self) -> None:
        reason = check_admission(
            _activity(event_type="update_ad_friendly_name"),
            WATERMARK,
            historical=False,
            allow_all_events=False,
        )
        assert reason is SkipReason.EVENT_TYPE

    def test_case_sensitive(self) -> None:
        assert not is_admitted(
            _activity(event_type="UPDATE_AD_SET_BUDGET"),
            WATERMARK,
            historical=False,
            allow_all_events=False,
        )

    def test_override_admits_unlisted(self) -> None:
        assert is_admitted(
            _activity(event_type="update_ad_friendly_name"),
            WATERMARK,
            historical=False,
            allow_all_events=True,
        )
