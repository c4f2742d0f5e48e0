"""Local file-backed stores for locations, samples and insight records."""

from .collector_config import CollectorConfigStore
from .jsonl import JsonlInsightStore, JsonlSampleStore
from .locations import JsonLocationDirectory

__all__ = [
    "CollectorConfigStore",
    "JsonLocationDirectory",
    "JsonlInsightStore",
    "JsonlSampleStore",
]
