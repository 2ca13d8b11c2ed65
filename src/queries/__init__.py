"""Read-side summaries package."""

from src.queries.aggregator import SummaryAggregator, describe_range

__all__ = ["SummaryAggregator", "describe_range"]
