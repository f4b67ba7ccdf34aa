"""Feed aggregation."""

from timeline.feed.aggregator import DEFAULT_OVERSAMPLE, TimelineAggregator

__all__ = ["TimelineAggregator", "DEFAULT_OVERSAMPLE"]
