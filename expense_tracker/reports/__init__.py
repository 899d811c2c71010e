"""Monthly report package."""

from expense_tracker.reports.aggregator import (
    build_breakdown,
    compute_report,
    filter_month,
    sum_by_category,
)

__all__ = [
    "build_breakdown",
    "compute_report",
    "filter_month",
    "sum_by_category",
]
