"""Unit tests for services.syncer.formatter module.

Tests:
- parse_extra_data() for JSON strings, mappings, garbage and non-objects
- format_message() budget and fallback shapes
- Placeholders for missing names and values
"""

import pytest

from adnotate.models import Activity
from adnotate.services.syncer.formatter import (
    display_object_type,
    format_message,
    is_budget_event,
    parse_extra_data,
)


def _activity(**overrides) -> Activity:
    fields = {
        "event_time": "2024-05-01T10:20:30+0000",
        "event_type": "update_ad_set_budget",
        "object_type": "AD_SET",
        "object_name": "Summer Promo",
    }
    fields.update(overrides)
    return Activity(**fields)


class TestParseExtraData:
    def test_json_object(self) -> None:
        raw = '{"old_value": {"old_value": 100}, "new_value": {"new_value": 150}}'
        assert parse_extra_data(raw) == {
            "old_value": {"old_value": 100},
            "new_value": {"new_value": 150},
        }

    def test_bytes(self) -> None:
        assert parse_extra_data(b'{"a": 1}') == {"a": 1}

    def test_mapping_passthrough(self) -> None:
        assert parse_extra_data({"a": 1}) == {"a": 1}

    @pytest.mark.parametrize("raw", [None, "", "{not json", "[1, 2]", '"text"', "42", 42, [1]])
    def test_fallback_to_empty(self, raw: object) -> None:
        assert parse_extra_data(raw) == {}

    def test_deeply_nested_json(self) -> None:
        raw = "[" * 100_000 + "]" * 100_000
        assert parse_extra_data(raw) == {}

    def test_deeply_nested_object(self) -> None:
        raw = '{"a": ' * 100_000 + "1" + "}" * 100_000
        assert parse_extra_data(raw) == {}


class TestHelpers:
    @pytest.mark.parametrize(
        ("object_type", "expected"),
        [
            ("CAMPAIGN", "Campaign"),
            ("AD_SET", "Ad Set"),
            ("AD", "Ad"),
            ("AUDIENCE", "Audience"),
            ("AD_ACCOUNT", "AD_ACCOUNT"),
        ],
    )
    def test_display_object_type(self, object_type: str, expected: str) -> None:
        assert display_object_type(object_type) == expected

    @pytest.mark.parametrize(
        ("event_type", "expected"),
        [
            ("update_ad_set_budget", True),
            ("update_campaign_budget", True),
            ("update_campaign_group_spend_cap", True),
            ("ad_account_update_spend_limit", False),
            ("ad_review_approved", False),
        ],
    )
    def test_is_budget_event(self, event_type: str, expected: bool) -> None:
        assert is_budget_event(event_type) is expected


class TestBudgetMessage:
    def test_old_and_new_in_order(self) -> None:
        extra = {"old_value": {"old_value": 100}, "new_value": {"new_value": 150}}
        message = format_message(_activity(), extra)
        assert message == "Budget updated on Ad Set: Summer Promo (₱100 -> ₱150)"
        assert message.index("100") < message.index("150")

    def test_from_raw_mapping(self) -> None:
        message = format_message(
            {"event_type": "update_ad_set_budget", "object_name": "Summer Promo"},
            {"old_value": {"old_value": 100}, "new_value": {"new_value": 150}},
        )
        assert "Summer Promo" in message
        assert message.index("100") < message.index("150")

    def test_missing_extra_uses_placeholders(self) -> None:
        assert format_message(_activity(), {}) == (
            "Budget updated on Ad Set: Summer Promo (₱? -> ₱?)"
        )

    def test_none_extra(self) -> None:
        assert format_message(_activity(), None).endswith("(₱? -> ₱?)")

    @pytest.mark.parametrize(
        "extra",
        [
            {"old_value": 100, "new_value": 150},
            {"old_value": {}, "new_value": {"other": 1}},
            {"old_value": None, "new_value": [150]},
            {"old_value": {"old_value": None}, "new_value": {"new_value": ""}},
        ],
    )
    def test_malformed_extra_never_raises(self, extra: dict) -> None:
        assert format_message(_activity(), extra).endswith("(₱? -> ₱?)")

    def test_zero_is_a_value(self) -> None:
        extra = {"old_value": {"old_value": 0}, "new_value": {"new_value": 5000}}
        assert format_message(_activity(), extra).endswith("(₱0 -> ₱5000)")

    def test_spend_cap_on_campaign(self) -> None:
        activity = _activity(
            event_type="update_campaign_group_spend_cap", object_type="CAMPAIGN"
        )
        extra = {"old_value": {"old_value": "1000"}, "new_value": {"new_value": "2000"}}
        assert format_message(activity, extra) == (
            "Budget updated on Campaign: Summer Promo (₱1000 -> ₱2000)"
        )

    def test_custom_currency(self) -> None:
        extra = {"old_value": {"old_value": 1}, "new_value": {"new_value": 2}}
        assert format_message(_activity(), extra, currency_symbol="$").endswith("($1 -> $2)")

    def test_unknown_object_type_passes_through(self) -> None:
        activity = _activity(object_type="AD_ACCOUNT")
        assert format_message(activity, {}).startswith("Budget updated on AD_ACCOUNT:")

    def test_missing_name(self) -> None:
        message = format_message(_activity(object_name=None), {})
        assert message == "Budget updated on Ad Set: Unknown (₱? -> ₱?)"


class TestFallbackMessage:
    def test_generic(self) -> None:
        activity = _activity(event_type="update_ad_run_status", object_type="AD")
        assert format_message(activity, {}) == "update_ad_run_status on Summer Promo"

    def test_missing_name(self) -> None:
        message = format_message({"event_type": "ad_review_approved"}, {})
        assert message == "ad_review_approved on Unknown"

    def test_empty_name(self) -> None:
        activity = _activity(event_type="create_ad", object_name="")
        assert format_message(activity, {}) == "create_ad on Unknown"

    def test_no_event_type(self) -> None:
        assert format_message({"object_name": "Summer Promo"}, {}) is None
