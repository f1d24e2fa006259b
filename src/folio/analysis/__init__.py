"""Literary analysis over stored books."""

from .client import AnalysisClient, AnalysisKind, AnalysisRequestError
from .config import ProviderSettings
from .relay import SegmentAssembler, encode_event, relay_segments
from .service import AnalysisService

__all__ = [
    "AnalysisClient",
    "AnalysisKind",
    "AnalysisRequestError",
    "AnalysisService",
    "ProviderSettings",
    "SegmentAssembler",
    "encode_event",
    "relay_segments",
]
