"""Dashboard aggregation."""

from finance_tracker.aggregation.dashboard import DashboardSummary, summarize

__all__ = ["DashboardSummary", "summarize"]
