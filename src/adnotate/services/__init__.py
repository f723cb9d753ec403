"""Services: the syncer and its HTTP trigger surface.

Services are the top layer of the diamond DAG, depending on
[adnotate.core][adnotate.core], [adnotate.utils][adnotate.utils] and
[adnotate.models][adnotate.models]. Each service extends
[BaseService][adnotate.core.base_service.BaseService] and implements
``async def run()`` for one cycle of work.

Attributes:
    Syncer: Fetches the activity log, filters it, and delivers
        annotations. Advances the watermark on incremental runs.
    Api: FastAPI surface with the ``/sync`` triggers.

Examples:
    ```python
    from adnotate.core import MemoryStateStore
    from adnotate.services import Syncer

    async with Syncer(state=MemoryStateStore()) as syncer:
        await syncer.sync(lookback_days=7)
    ```
"""

from .api import Api, ApiConfig
from .syncer import Syncer, SyncerConfig


__all__ = ["Api", "ApiConfig", "Syncer", "SyncerConfig"]
