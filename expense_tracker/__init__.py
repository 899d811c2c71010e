"""
Expense Tracker - Source Package

A personal expense tracker: record dated, categorized expenses and see
where the money went each month.

DESIGN PRINCIPLES:
1. Nothing reaches the store without validation
2. Reports are derived, never stored
3. Store failures are visible, never silent
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
