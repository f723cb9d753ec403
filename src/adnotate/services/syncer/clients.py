"""HTTP clients for the two remote APIs.

The orchestrator depends only on the
[ActivitySource][adnotate.services.syncer.clients.ActivitySource] and
[AnnotationSink][adnotate.services.syncer.clients.AnnotationSink]
protocols, so tests can replace either side without a network.

* [GraphActivitySource][adnotate.services.syncer.clients.GraphActivitySource]:
  one ``GET .../activities`` per run, single page, newest first.
* [PostHogAnnotationSink][adnotate.services.syncer.clients.PostHogAnnotationSink]:
  one ``POST .../annotations/`` per admitted activity, no retry.

Both share the aiohttp ``ClientSession`` opened by the syncer for the
duration of a run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import aiohttp

from adnotate.core.exceptions import DeliveryError, SourceFetchError
from adnotate.core.logger import Logger
from adnotate.models.constants import ACTIVITY_FIELDS
from adnotate.utils.http import read_bounded_json, read_bounded_text


if TYPE_CHECKING:
    from adnotate.models import Annotation, SyncWindow

    from .configs import DestinationConfig, SourceConfig


ACTIVITY_PAGE_SIZE = 100
_HTTP_ERROR_THRESHOLD = 400


@runtime_checkable
class ActivitySource(Protocol):
    """Fetches raw activity records, newest first."""

    async def fetch(self, window: SyncWindow | None) -> list[Any]:
        """Return the ``data`` array of one activity query.

        Raises:
            SourceFetchError: On any failure; the run must abort.
        """
        ...


@runtime_checkable
class AnnotationSink(Protocol):
    """Delivers one annotation."""

    async def deliver(self, annotation: Annotation) -> bool:
        """Send *annotation*; return False on failure instead of raising."""
        ...


class GraphActivitySource:
    """Reads the ad account activity log from the Graph API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: SourceConfig,
        *,
        max_error_body: int = 4096,
    ) -> None:
        self._session = session
        self._config = config
        self._max_error_body = max_error_body

    @property
    def url(self) -> str:
        base = self._config.base_url.rstrip("/")
        return (
            f"{base}/{self._config.resolved_api_version}/{self._config.ad_account_id}/activities"
        )

    def build_params(self, window: SyncWindow | None) -> dict[str, str]:
        """Query parameters; ``since``/``until`` only for historical windows."""
        token = self._config.access_token
        params = {
            "fields": ",".join(ACTIVITY_FIELDS),
            "limit": str(ACTIVITY_PAGE_SIZE),
            "access_token": token.get_secret_value() if token else "",
        }
        if window is not None:
            params.update(window.to_params())
        return params

    async def fetch(self, window: SyncWindow | None) -> list[Any]:
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)
        try:
            async with self._session.get(
                self.url, params=self.build_params(window), timeout=timeout
            ) as resp:
                if resp.status >= _HTTP_ERROR_THRESHOLD:
                    body = await read_bounded_text(resp, self._max_error_body)
                    raise SourceFetchError(
                        f"activity query returned HTTP {resp.status}",
                        status=resp.status,
                        body=body,
                    )
                payload = await read_bounded_json(resp, self._config.max_response_size)
        except (TimeoutError, OSError, aiohttp.ClientError, ValueError, RecursionError) as e:
            raise SourceFetchError(f"activity query failed: {e}") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise SourceFetchError("activity response has no data array", body=str(payload))
        return data


class PostHogAnnotationSink:
    """Creates annotations through the PostHog REST API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: DestinationConfig,
        logger: Logger,
        *,
        max_error_body: int = 4096,
    ) -> None:
        self._session = session
        self._config = config
        self._logger = logger
        self._max_error_body = max_error_body

    @property
    def url(self) -> str:
        return f"{self._config.resolved_host}/api/projects/{self._config.project_id}/annotations/"

    @property
    def headers(self) -> dict[str, str]:
        key = self._config.api_key
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {key.get_secret_value() if key else ''}",
        }

    async def _post(self, annotation: Annotation) -> None:
        timeout = aiohttp.ClientTimeout(total=self._config.timeout)
        try:
            async with self._session.post(
                self.url, json=annotation.to_payload(), headers=self.headers, timeout=timeout
            ) as resp:
                if resp.status >= _HTTP_ERROR_THRESHOLD:
                    body = await read_bounded_text(resp, self._max_error_body)
                    raise DeliveryError(
                        f"annotation endpoint returned HTTP {resp.status}",
                        status=resp.status,
                        body=body,
                    )
        except (TimeoutError, OSError, aiohttp.ClientError) as e:
            raise DeliveryError(f"annotation request failed: {e}") from e

    async def deliver(self, annotation: Annotation) -> bool:
        try:
            await self._post(annotation)
        except DeliveryError as e:
            self._logger.error(
                "annotation_failed",
                error=str(e),
                status=e.status,
                body=e.body,
                content=annotation.content,
            )
            return False
        self._logger.info("annotation_delivered", content=annotation.content)
        return True
