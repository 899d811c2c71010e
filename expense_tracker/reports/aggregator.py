"""
Monthly Report Aggregation

Turns the full expense list into the figures shown on the report view:
the month's total, a per-category breakdown ordered by amount, and the
dominant category.

Everything here is a pure function of its inputs. Callers re-run
compute_report whenever the expense list or the selected month changes;
nothing is cached and the input list is never mutated.

GUARANTEES:
- Only expenses dated inside the month (first and last day included) count
- total == sum of breakdown values, exactly (amounts are Decimal)
- Categories without spending in the month are left out, not zero-filled
- Unknown category ids are still counted, under a neutral catalog entry
"""

from decimal import Decimal
from typing import Iterable, Mapping

from expense_tracker.models.expense import (
    CATEGORY_CATALOG,
    CategoryInfo,
    Expense,
    lookup_category,
)
from expense_tracker.models.report import BreakdownEntry, MonthKey, MonthlyReport


def filter_month(expenses: Iterable[Expense], month: MonthKey) -> list[Expense]:
    """Expenses dated within the month, in input order."""
    start, end = month.first_day, month.last_day
    return [e for e in expenses if start <= e.date <= end]


def sum_by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Per-category sums, keyed in order of each category's first occurrence."""
    sums: dict[str, Decimal] = {}
    for expense in expenses:
        sums[expense.category] = sums.get(expense.category, Decimal("0")) + expense.amount
    return sums


def build_breakdown(
    sums: Mapping[str, Decimal],
    catalog: Mapping[str, CategoryInfo] = CATEGORY_CATALOG,
) -> list[BreakdownEntry]:
    """
    Breakdown entries sorted by value, largest first.

    sorted() is stable, so equal values keep the order of the mapping.
    """
    entries = []
    for category_id, value in sums.items():
        if value == 0:
            continue
        info = lookup_category(category_id, catalog)
        entries.append(BreakdownEntry(
            category=category_id,
            name=info.label,
            value=value,
            color=info.color,
        ))
    return sorted(entries, key=lambda entry: entry.value, reverse=True)


def compute_report(
    expenses: Iterable[Expense],
    month: MonthKey,
    catalog: Mapping[str, CategoryInfo] = CATEGORY_CATALOG,
) -> MonthlyReport:
    """
    Compute the report for one calendar month.

    Args:
        expenses: The user's full expense list (not pre-filtered)
        month: The month to report on
        catalog: Category id -> display label and color

    Returns:
        MonthlyReport. An empty month gives total 0, an empty breakdown
        and no dominant category.
    """
    included = filter_month(expenses, month)
    breakdown = build_breakdown(sum_by_category(included), catalog)
    total = sum((entry.value for entry in breakdown), Decimal("0"))

    return MonthlyReport(
        month=month,
        total=total,
        breakdown=breakdown,
        dominant=breakdown[0] if breakdown else None,
    )
