"""Insight aggregation and narrative summarization."""

from .aggregator import INSUFFICIENT_DATA_MESSAGE, WINDOW_HOURS, InsightAggregator
from .summarizer import OpenAINarrativeSummarizer, build_context_text

__all__ = [
    "INSUFFICIENT_DATA_MESSAGE",
    "WINDOW_HOURS",
    "InsightAggregator",
    "OpenAINarrativeSummarizer",
    "build_context_text",
]
