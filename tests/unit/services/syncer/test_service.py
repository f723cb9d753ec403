"""Unit tests for services.syncer.service module.

Tests:
- Incremental runs: ordering, watermark skip, watermark advance
- Historical runs: watermark ignored and never written
- Abort paths: credentials, invalid lookback, state read, source fetch
- Per-activity recovery: bad timestamps, bad extra_data, delivery failures
- Default wiring through an aiohttp session
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from adnotate.core.exceptions import SourceFetchError, StateStoreError
from adnotate.core.state import MemoryStateStore
from adnotate.models import Annotation, ServiceName, SkipReason, SyncWindow
from adnotate.services.syncer import Syncer, SyncerConfig


class FakeSource:
    """Returns canned records; optionally raises."""

    def __init__(self, records=None, error: Exception | None = None) -> None:
        self.records = list(records or [])
        self.error = error
        self.windows: list[SyncWindow | None] = []

    async def fetch(self, window):
        self.windows.append(window)
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeSink:
    """Records every annotation; ``results`` decides success per call."""

    def __init__(self, results=None) -> None:
        self.results = list(results or [])
        self.delivered: list[Annotation] = []

    async def deliver(self, annotation):
        self.delivered.append(annotation)
        return self.results.pop(0) if self.results else True


@pytest.fixture
def config(credentials_env) -> SyncerConfig:
    return SyncerConfig()


def _syncer(state, config, records=None, *, sink=None, error=None):
    source = FakeSource(records, error)
    sink = sink or FakeSink()
    return Syncer(state=state, config=config, source=source, sink=sink), source, sink


class TestInit:
    def test_service_name(self) -> None:
        assert Syncer.SERVICE_NAME == ServiceName.SYNCER

    def test_default_config(self, memory_state) -> None:
        assert isinstance(Syncer(state=memory_state).config, SyncerConfig)


class TestIncrementalSync:
    async def test_processes_oldest_first(self, memory_state, config, make_record) -> None:
        records = [
            make_record(300, event_type="create_ad", object_name="C"),
            make_record(200, event_type="create_ad", object_name="B"),
            make_record(100, event_type="create_ad", object_name="A"),
        ]
        syncer, source, sink = _syncer(memory_state, config, records)

        result = await syncer.sync()

        assert [a.content for a in sink.delivered] == [
            "create_ad on A",
            "create_ad on B",
            "create_ad on C",
        ]
        assert source.windows == [None]
        assert result.fetched == 3
        assert result.forwarded == 3
        assert result.completed

    async def test_first_run_advances_watermark(
        self, memory_state, config, make_record, base_ts
    ) -> None:
        syncer, _, _ = _syncer(memory_state, config, [make_record(50), make_record(10)])

        result = await syncer.sync()

        assert result.watermark_before == 0
        assert result.watermark_after == base_ts + 50
        assert await memory_state.get("last_sync_time") == str(base_ts + 50)

    async def test_skips_at_or_below_watermark(
        self, config, make_record, base_ts
    ) -> None:
        state = MemoryStateStore({"last_sync_time": str(base_ts + 100)})
        records = [
            make_record(200, object_name="New"),
            make_record(100, object_name="Equal"),
            make_record(0, object_name="Old"),
        ]
        syncer, _, sink = _syncer(state, config, records)

        result = await syncer.sync()

        assert len(sink.delivered) == 1
        assert "New" in sink.delivered[0].content
        assert result.skipped[SkipReason.ALREADY_SYNCED] == 2
        assert await state.get("last_sync_time") == str(base_ts + 200)

    async def test_already_synced_wins_over_other_rules(
        self, config, make_record, base_ts
    ) -> None:
        state = MemoryStateStore({"last_sync_time": str(base_ts + 100)})
        records = [make_record(0, object_type="AD_ACCOUNT", event_type="unlisted")]
        syncer, _, sink = _syncer(state, config, records)

        result = await syncer.sync()

        assert sink.delivered == []
        assert result.skipped == {SkipReason.ALREADY_SYNCED: 1}

    async def test_filtered_events_still_advance_watermark(
        self, memory_state, config, make_record, base_ts
    ) -> None:
        records = [
            make_record(500, object_type="AD_ACCOUNT"),
            make_record(400, event_type="update_ad_friendly_name"),
            make_record(100),
        ]
        syncer, _, sink = _syncer(memory_state, config, records)

        result = await syncer.sync()

        assert len(sink.delivered) == 1
        assert result.skipped[SkipReason.OBJECT_TYPE] == 1
        assert result.skipped[SkipReason.EVENT_TYPE] == 1
        assert await memory_state.get("last_sync_time") == str(base_ts + 500)

    async def test_watermark_never_moves_backwards(
        self, config, make_record, base_ts
    ) -> None:
        state = MemoryStateStore({"last_sync_time": str(base_ts + 1000)})
        syncer, _, sink = _syncer(state, config, [make_record(10), make_record(5)])

        result = await syncer.sync()

        assert sink.delivered == []
        assert result.watermark_after == base_ts + 1000
        assert await state.get("last_sync_time") == str(base_ts + 1000)

    async def test_empty_page_rewrites_prior_watermark(self, config) -> None:
        state = MemoryStateStore({"last_sync_time": "77"})
        syncer, _, _ = _syncer(state, config, [])

        result = await syncer.sync()

        assert result.fetched == 0
        assert await state.get("last_sync_time") == "77"

    async def test_object_type_never_forwarded_even_with_override(
        self, memory_state, credentials_env, make_record
    ) -> None:
        config = SyncerConfig(allow_all_events=True)
        syncer, _, sink = _syncer(memory_state, config, [make_record(object_type="PIXEL")])

        result = await syncer.sync()

        assert sink.delivered == []
        assert result.skipped[SkipReason.OBJECT_TYPE] == 1

    async def test_override_admits_unlisted_event(
        self, memory_state, monkeypatch, credentials_env, make_record
    ) -> None:
        monkeypatch.setenv("ALLOW_ALL_EVENTS", "true")
        records = [make_record(event_type="update_ad_friendly_name", object_type="AD")]
        syncer, _, sink = _syncer(memory_state, SyncerConfig(), records)

        await syncer.sync()

        assert [a.content for a in sink.delivered] == ["update_ad_friendly_name on Summer Promo"]

    async def test_annotation_fields(self, memory_state, config, make_record) -> None:
        record = make_record()
        syncer, _, sink = _syncer(memory_state, config, [record])

        await syncer.sync()

        (annotation,) = sink.delivered
        assert annotation.content == "Budget updated on Ad Set: Summer Promo (₱100 -> ₱150)"
        assert annotation.date_created == record["event_time"]
        assert annotation.scope == "organization"

    async def test_custom_currency(self, memory_state, credentials_env, make_record) -> None:
        config = SyncerConfig(currency_symbol="$")
        syncer, _, sink = _syncer(memory_state, config, [make_record()])

        await syncer.sync()

        assert sink.delivered[0].content.endswith("($100 -> $150)")

    async def test_run_is_incremental(self, memory_state, config, make_record) -> None:
        syncer, source, _ = _syncer(memory_state, config, [make_record()])

        await syncer.run()

        assert source.windows == [None]
        assert await memory_state.get("last_sync_time") is not None


class TestHistoricalSync:
    async def test_passes_window(self, memory_state, config) -> None:
        syncer, source, _ = _syncer(memory_state, config, [])

        with patch("adnotate.models.window.time.time", return_value=1_000_000.0):
            await syncer.sync(lookback_days=7)

        assert source.windows == [SyncWindow(since=1_000_000 - 7 * 86_400, until=1_000_000)]

    async def test_ignores_watermark(self, config, make_record, base_ts) -> None:
        state = MemoryStateStore({"last_sync_time": str(base_ts + 1000)})
        syncer, _, sink = _syncer(state, config, [make_record(10), make_record(5)])

        result = await syncer.sync(lookback_days=30)

        assert len(sink.delivered) == 2
        assert result.skipped[SkipReason.ALREADY_SYNCED] == 0

    async def test_never_writes_watermark(self, config, make_record, base_ts) -> None:
        state = MemoryStateStore({"last_sync_time": "5"})
        records = [make_record(offset) for offset in (300, 200, 100)]
        syncer, _, sink = _syncer(state, config, records)

        result = await syncer.sync(lookback_days=7)

        assert len(sink.delivered) == 3
        assert result.watermark_after is None
        assert state.snapshot() == {"last_sync_time": "5"}

    async def test_never_creates_watermark(self, memory_state, config, make_record) -> None:
        syncer, _, _ = _syncer(memory_state, config, [make_record()])

        await syncer.sync(lookback_days=1)

        assert memory_state.snapshot() == {}


class TestAborts:
    @pytest.mark.parametrize("days", [0, -3])
    async def test_invalid_lookback(self, memory_state, config, days) -> None:
        syncer, source, sink = _syncer(memory_state, config, [])

        result = await syncer.sync(lookback_days=days)

        assert result.aborted == "invalid_lookback"
        assert source.windows == []
        assert sink.delivered == []

    async def test_missing_source_credentials(self, memory_state, destination_env) -> None:
        syncer, source, _ = _syncer(memory_state, SyncerConfig(), [])

        result = await syncer.sync()

        assert result.aborted == "source_credentials_missing"
        assert source.windows == []
        assert memory_state.snapshot() == {}

    async def test_missing_destination_credentials(
        self, memory_state, source_env, make_record
    ) -> None:
        source = FakeSource([make_record()])
        syncer = Syncer(state=memory_state, config=SyncerConfig(), source=source)

        result = await syncer.sync()

        assert result.aborted == "destination_credentials_missing"
        assert memory_state.snapshot() == {}

    async def test_injected_sink_needs_no_destination_credentials(
        self, memory_state, source_env, make_record
    ) -> None:
        syncer, _, sink = _syncer(memory_state, SyncerConfig(), [make_record()])

        result = await syncer.sync()

        assert result.completed
        assert len(sink.delivered) == 1

    async def test_state_read_failure(self, config) -> None:
        state = MagicMock()
        state.get = AsyncMock(side_effect=StateStoreError("db down"))
        state.put = AsyncMock()
        syncer, source, _ = _syncer(state, config, [])

        result = await syncer.sync()

        assert result.aborted == "watermark_read_failed"
        assert source.windows == []
        state.put.assert_not_awaited()

    async def test_source_failure_leaves_watermark(self, config) -> None:
        state = MemoryStateStore({"last_sync_time": "123"})
        error = SourceFetchError("activity query returned HTTP 400", status=400, body="bad")
        syncer, _, sink = _syncer(state, config, error=error)

        result = await syncer.sync()

        assert result.aborted == "source_fetch_failed"
        assert sink.delivered == []
        assert state.snapshot() == {"last_sync_time": "123"}

    async def test_source_failure_logged_with_body(self, config) -> None:
        error = SourceFetchError("activity query returned HTTP 400", status=400, body="bad token")
        syncer, _, _ = _syncer(MemoryStateStore(), config, error=error)

        with patch.object(syncer._logger, "error") as log_error:
            await syncer.sync()

        log_error.assert_called_once()
        assert log_error.call_args.kwargs["status"] == 400
        assert log_error.call_args.kwargs["body"] == "bad token"


class TestRecovery:
    async def test_delivery_failure_does_not_stop_run(
        self, memory_state, config, make_record, base_ts
    ) -> None:
        records = [make_record(300), make_record(200), make_record(100)]
        sink = FakeSink(results=[False, True, True])
        syncer, _, _ = _syncer(memory_state, config, records, sink=sink)

        result = await syncer.sync()

        assert len(sink.delivered) == 3
        assert result.failed == 1
        assert result.forwarded == 2
        assert await memory_state.get("last_sync_time") == str(base_ts + 300)

    async def test_malformed_extra_data(self, memory_state, config, make_record) -> None:
        syncer, _, sink = _syncer(memory_state, config, [make_record(extra_data="{oops")])

        await syncer.sync()

        assert sink.delivered[0].content == "Budget updated on Ad Set: Summer Promo (₱? -> ₱?)"

    async def test_deeply_nested_extra_data(
        self, memory_state, config, make_record, base_ts
    ) -> None:
        nested = "[" * 100_000 + "]" * 100_000
        syncer, _, sink = _syncer(memory_state, config, [make_record(5, extra_data=nested)])

        result = await syncer.sync()

        assert result.completed
        assert result.forwarded == 1
        assert sink.delivered[0].content == "Budget updated on Ad Set: Summer Promo (₱? -> ₱?)"
        assert await memory_state.get("last_sync_time") == str(base_ts + 5)

    async def test_decoded_extra_data(self, memory_state, config, make_record) -> None:
        extra = {"old_value": {"old_value": 5}, "new_value": {"new_value": 9}}
        syncer, _, sink = _syncer(memory_state, config, [make_record(extra_data=extra)])

        await syncer.sync()

        assert sink.delivered[0].content.endswith("(₱5 -> ₱9)")

    async def test_unparseable_time_skipped(
        self, memory_state, config, make_record, base_ts
    ) -> None:
        records = [make_record(event_time="not a time"), make_record(10)]
        syncer, _, sink = _syncer(memory_state, config, records)

        result = await syncer.sync()

        assert result.unparseable == 1
        assert len(sink.delivered) == 1
        assert await memory_state.get("last_sync_time") == str(base_ts + 10)

    async def test_non_object_records_skipped(self, memory_state, config, make_record) -> None:
        syncer, _, sink = _syncer(memory_state, config, [make_record(), "junk", None])

        result = await syncer.sync()

        assert result.unparseable == 2
        assert len(sink.delivered) == 1

    async def test_missing_event_type_not_delivered(
        self, memory_state, credentials_env, make_record
    ) -> None:
        config = SyncerConfig(allow_all_events=True)
        syncer, _, sink = _syncer(memory_state, config, [make_record(event_type=None)])

        result = await syncer.sync()

        assert result.empty_messages == 1
        assert sink.delivered == []

    @pytest.mark.parametrize("stored", ["garbage", "²", "1²"])
    async def test_invalid_stored_watermark_treated_as_zero(
        self, config, make_record, base_ts, stored
    ) -> None:
        state = MemoryStateStore({"last_sync_time": stored})
        syncer, _, sink = _syncer(state, config, [make_record(1)])

        result = await syncer.sync()

        assert result.watermark_before == 0
        assert len(sink.delivered) == 1
        assert await state.get("last_sync_time") == str(base_ts + 1)

    async def test_state_write_failure_does_not_raise(self, config, make_record) -> None:
        state = MagicMock()
        state.get = AsyncMock(return_value=None)
        state.put = AsyncMock(side_effect=StateStoreError("db down"))
        syncer, _, sink = _syncer(state, config, [make_record()])

        result = await syncer.sync()

        assert len(sink.delivered) == 1
        assert result.watermark_after is None
        assert result.completed


class TestMetrics:
    async def test_counters(self, memory_state, credentials_env, make_record) -> None:
        config = SyncerConfig.model_validate({"metrics": {"enabled": True}})
        records = [make_record(20, object_type="PIXEL"), make_record(10)]
        syncer, _, _ = _syncer(memory_state, config, records)

        with (
            patch.object(syncer, "inc_counter") as inc_counter,
            patch.object(syncer, "set_gauge") as set_gauge,
        ):
            result = await syncer.sync()

        calls = {c.args[0]: c.args[1] for c in inc_counter.call_args_list}
        assert calls["fetched_activities"] == 2
        assert calls["forwarded_annotations"] == 1
        assert calls["failed_annotations"] == 0
        assert calls["skipped_object_type"] == 1
        set_gauge.assert_called_once_with("watermark", result.watermark_after)


def _session_context(session: MagicMock) -> MagicMock:
    context_session = MagicMock()
    context_session.__aenter__ = AsyncMock(return_value=session)
    context_session.__aexit__ = AsyncMock(return_value=False)
    return context_session


def _response_context(status: int, body: bytes) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.content.read = AsyncMock(side_effect=[body, b""])
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


class TestDefaultWiring:
    async def test_end_to_end_over_http(self, memory_state, config, make_record) -> None:
        payload = {"data": [make_record(20, object_name="B"), make_record(10, object_name="A")]}
        session = MagicMock()
        session.get = MagicMock(return_value=_response_context(200, json.dumps(payload).encode()))
        session.post = MagicMock(side_effect=lambda *a, **kw: _response_context(201, b"{}"))

        with patch(
            "adnotate.services.syncer.service.aiohttp.ClientSession",
            return_value=_session_context(session),
        ):
            result = await Syncer(state=memory_state, config=config).sync()

        assert result.forwarded == 2
        assert session.get.call_args.args[0] == (
            "https://graph.facebook.com/v19.0/act_123/activities"
        )
        post_urls = {c.args[0] for c in session.post.call_args_list}
        assert post_urls == {"https://eu.posthog.com/api/projects/42/annotations/"}
        contents = [c.kwargs["json"]["content"] for c in session.post.call_args_list]
        assert contents[0].startswith("Budget updated on Ad Set: A ")
        assert contents[1].startswith("Budget updated on Ad Set: B ")

    async def test_injected_clients_skip_session(self, memory_state, config) -> None:
        syncer, _, _ = _syncer(memory_state, config, [])
        with patch("adnotate.services.syncer.service.aiohttp.ClientSession") as session_cls:
            await syncer.sync()
        session_cls.assert_not_called()
