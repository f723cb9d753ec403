"""Syncer service for adnotate.

Forwards ad account activity log entries to PostHog as annotations.

Each run proceeds as follows:

1. Validate the lookback (historical runs only) and the credentials.
2. Read the watermark (``last_sync_time``) from the
   [StateStore][adnotate.core.state.StateStore]; absent means ``0``.
3. Query the activity log once: 100 records, newest first, bounded by
   ``since``/``until`` only for historical runs.
4. Walk the records oldest to newest. Every parseable timestamp feeds a
   running maximum, whether or not the activity is forwarded.
5. Run each activity through
   [check_admission()][adnotate.services.syncer.admission.check_admission],
   decode its ``extra_data``, format it with
   [format_message()][adnotate.services.syncer.formatter.format_message]
   and deliver the annotation. Delivery failures are logged and the loop
   moves on.
6. Incremental runs store the running maximum as the new watermark.
   Historical runs never touch it.

No error escapes [sync()][adnotate.services.syncer.Syncer.sync]: missing
credentials, an unreadable watermark and a failed activity query abort
the run with a log line and leave the watermark as it was.

Note:
    There is no lock around the watermark read-modify-write. Overlapping
    runs (two HTTP triggers at once) read the same watermark, may deliver
    the same activities twice, and the last writer's maximum wins.

Examples:
    ```python
    from adnotate.core import MemoryStateStore
    from adnotate.services import Syncer

    syncer = Syncer(state=MemoryStateStore())
    async with syncer:
        result = await syncer.sync()               # incremental
        result = await syncer.sync(lookback_days=7)  # historical
    ```
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, ClassVar

import aiohttp

from adnotate.core.base_service import BaseService
from adnotate.core.exceptions import SourceFetchError, StateStoreError
from adnotate.models import Activity, Annotation, SyncWindow
from adnotate.models.constants import WATERMARK_KEY, ServiceName, SkipReason

from .admission import check_admission
from .clients import ActivitySource, AnnotationSink, GraphActivitySource, PostHogAnnotationSink
from .configs import SyncerConfig
from .formatter import format_message, parse_extra_data
from .utils import SyncResult, decode_watermark


if TYPE_CHECKING:
    from adnotate.core.state import StateStore


class Syncer(BaseService[SyncerConfig]):
    """Activity log to annotation synchronization service.

    ``source`` and ``sink`` may be injected; when omitted, each run opens
    an aiohttp session and talks to the Graph API and PostHog.

    See Also:
        [SyncerConfig][adnotate.services.syncer.SyncerConfig]:
            Configuration model for this service.
        [Api][adnotate.services.api.Api]: HTTP surface that triggers runs.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.SYNCER
    CONFIG_CLASS: ClassVar[type[SyncerConfig]] = SyncerConfig

    def __init__(
        self,
        state: StateStore,
        config: SyncerConfig | None = None,
        *,
        source: ActivitySource | None = None,
        sink: AnnotationSink | None = None,
    ) -> None:
        super().__init__(state=state, config=config or SyncerConfig())
        self._config: SyncerConfig
        self._source = source
        self._sink = sink

    async def run(self) -> None:
        """One incremental sync cycle, for [run_forever()][adnotate.core.base_service.BaseService.run_forever]."""
        await self.sync()

    async def sync(self, lookback_days: int | None = None) -> SyncResult:
        """Run one sync pass.

        Args:
            lookback_days: Positive number of days for a historical run, or
                ``None`` for an incremental run.

        Returns:
            A [SyncResult][adnotate.services.syncer.utils.SyncResult];
            ``aborted`` names the reason when the run stopped early.
        """
        result = SyncResult(lookback_days=lookback_days)
        run_start = time.monotonic()
        self._logger.info("sync_started", lookback_days=lookback_days)

        window: SyncWindow | None = None
        if lookback_days is not None:
            try:
                window = SyncWindow.from_lookback(lookback_days)
            except ValueError as e:
                return self._abort(result, "invalid_lookback", error=str(e))
            self._logger.info("sync_window", since=window.since, until=window.until)

        if not self._config.source.has_credentials:
            return self._abort(result, "source_credentials_missing")
        if self._sink is None and not self._config.destination.has_credentials:
            return self._abort(result, "destination_credentials_missing")

        try:
            raw = await self._state.get(WATERMARK_KEY)
        except StateStoreError as e:
            return self._abort(result, "watermark_read_failed", error=str(e))

        watermark = decode_watermark(raw)
        if watermark is None:
            self._logger.warning("watermark_invalid", value=raw)
            watermark = 0
        result.watermark_before = watermark

        if self._source is not None and self._sink is not None:
            await self._sync_activities(self._source, self._sink, window, result)
        else:
            async with aiohttp.ClientSession() as session:
                source = self._source or GraphActivitySource(
                    session, self._config.source, max_error_body=self._config.max_error_body
                )
                sink = self._sink or PostHogAnnotationSink(
                    session,
                    self._config.destination,
                    self._logger,
                    max_error_body=self._config.max_error_body,
                )
                await self._sync_activities(source, sink, window, result)

        self._record_metrics(result)
        if result.completed:
            self._logger.info(
                "sync_completed",
                duration_s=round(time.monotonic() - run_start, 2),
                **result.as_log_fields(),
            )
        return result

    async def _sync_activities(
        self,
        source: ActivitySource,
        sink: AnnotationSink,
        window: SyncWindow | None,
        result: SyncResult,
    ) -> None:
        try:
            records = await source.fetch(window)
        except SourceFetchError as e:
            self._abort(result, "source_fetch_failed", error=str(e), status=e.status, body=e.body)
            return

        result.fetched = len(records)
        self._logger.info("activities_fetched", count=result.fetched)

        watermark = result.watermark_before
        max_seen = watermark
        historical = window is not None
        allow_all = self._config.allow_all_events

        for record in reversed(records):
            if not isinstance(record, Mapping):
                result.unparseable += 1
                self._logger.warning("activity_not_an_object", record=record)
                continue

            activity = Activity.from_dict(record)
            if activity.timestamp is None:
                result.unparseable += 1
                self._logger.warning(
                    "activity_time_unparseable",
                    event_time=activity.event_time,
                    event_type=activity.event_type,
                )
                continue

            max_seen = max(max_seen, activity.timestamp)

            reason = check_admission(
                activity, watermark, historical=historical, allow_all_events=allow_all
            )
            if reason is not None:
                result.skipped[reason] += 1
                self._log_skip(activity, reason, watermark)
                continue

            extra = parse_extra_data(activity.extra_data)
            message = format_message(
                activity, extra, currency_symbol=self._config.currency_symbol
            )
            if not message:
                result.empty_messages += 1
                continue

            annotation = Annotation(content=message, date_created=activity.event_time)
            if await sink.deliver(annotation):
                result.forwarded += 1
            else:
                result.failed += 1

        if historical:
            return

        try:
            await self._state.put(WATERMARK_KEY, str(max_seen))
        except StateStoreError as e:
            self._logger.error("watermark_write_failed", error=str(e), watermark=max_seen)
            return
        result.watermark_after = max_seen
        self._logger.info("watermark_updated", previous=watermark, current=max_seen)

    def _log_skip(self, activity: Activity, reason: SkipReason, watermark: int) -> None:
        self._logger.debug(
            "activity_skipped",
            reason=reason,
            event_type=activity.event_type,
            object_type=activity.object_type,
            timestamp=activity.timestamp,
            watermark=watermark,
        )

    def _abort(self, result: SyncResult, reason: str, **fields: object) -> SyncResult:
        result.aborted = reason
        self._logger.error("sync_aborted", reason=reason, **fields)
        self.inc_counter(f"aborted_{reason}")
        return result

    def _record_metrics(self, result: SyncResult) -> None:
        self.inc_counter("fetched_activities", result.fetched)
        self.inc_counter("forwarded_annotations", result.forwarded)
        self.inc_counter("failed_annotations", result.failed)
        for reason, count in result.skipped.items():
            self.inc_counter(f"skipped_{reason}", count)
        if result.watermark_after is not None:
            self.set_gauge("watermark", result.watermark_after)
