"""Syncer service package.

See Also:
    [Syncer][adnotate.services.syncer.service.Syncer]: The orchestrator.
    [check_admission][adnotate.services.syncer.admission.check_admission]:
        Admission filter.
    [format_message][adnotate.services.syncer.formatter.format_message]:
        Message formatter.
"""

from .admission import check_admission, is_admitted
from .clients import (
    ACTIVITY_PAGE_SIZE,
    ActivitySource,
    AnnotationSink,
    GraphActivitySource,
    PostHogAnnotationSink,
)
from .configs import DestinationConfig, SourceConfig, SyncerConfig
from .formatter import format_message, parse_extra_data
from .service import Syncer
from .utils import SyncResult, decode_watermark


__all__ = [
    "ACTIVITY_PAGE_SIZE",
    "ActivitySource",
    "AnnotationSink",
    "DestinationConfig",
    "GraphActivitySource",
    "PostHogAnnotationSink",
    "SourceConfig",
    "SyncResult",
    "Syncer",
    "SyncerConfig",
    "check_admission",
    "decode_watermark",
    "format_message",
    "is_admitted",
    "parse_extra_data",
]
