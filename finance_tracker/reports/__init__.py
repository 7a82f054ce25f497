"""Monthly report: filters, aggregation, chart and PDF export."""

from finance_tracker.reports.builder import (
    EMPTY_REPORT_MESSAGE,
    ReportData,
    build_report,
)
from finance_tracker.reports.filters import (
    KindFilter,
    ReportFilters,
    StatusFilter,
    apply_filters,
    filter_by_month,
    filter_by_status,
    last_day_of_month,
    month_window,
)

__all__ = [
    "EMPTY_REPORT_MESSAGE",
    "KindFilter",
    "ReportData",
    "ReportFilters",
    "StatusFilter",
    "apply_filters",
    "build_report",
    "filter_by_month",
    "filter_by_status",
    "last_day_of_month",
    "month_window",
]
