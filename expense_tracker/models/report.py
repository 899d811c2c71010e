"""
Report models: the month selector and the aggregated monthly report.
"""

import calendar
import re
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


class MonthKey(BaseModel):
    """
    A calendar month, written as YYYY-MM.

    Months are plain calendar values: no timezone is attached and none is
    ever applied when testing whether a date falls inside the month.
    """
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    @classmethod
    def parse(cls, value: str) -> "MonthKey":
        match = _MONTH_KEY_RE.match(value.strip())
        if not match:
            raise ValueError(f"Invalid month '{value}'. Expected YYYY-MM")
        return cls(year=int(match.group(1)), month=int(match.group(2)))

    @classmethod
    def of(cls, day: date) -> "MonthKey":
        return cls(year=day.year, month=day.month)

    @classmethod
    def current(cls) -> "MonthKey":
        return cls.of(date.today())

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        _, days = calendar.monthrange(self.year, self.month)
        return date(self.year, self.month, days)

    def contains(self, day: date) -> bool:
        """Inclusive on both the first and the last day of the month."""
        return self.first_day <= day <= self.last_day

    def label(self) -> str:
        return self.first_day.strftime("%B %Y")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class BreakdownEntry(BaseModel):
    """One category's share of a month's spending."""
    model_config = ConfigDict(frozen=True)

    category: str = Field(..., description="Category id")
    name: str = Field(..., description="Display label")
    value: Decimal = Field(..., description="Summed amount for the month")
    color: str


class MonthlyReport(BaseModel):
    """
    Aggregated figures for one month.

    total always equals the sum of the breakdown values.
    """
    model_config = ConfigDict(frozen=True)

    month: MonthKey
    total: Decimal = Decimal("0")
    breakdown: list[BreakdownEntry] = Field(default_factory=list)
    dominant: Optional[BreakdownEntry] = None

    @property
    def is_empty(self) -> bool:
        return not self.breakdown

    @property
    def dominant_share(self) -> Optional[float]:
        """Dominant category as a percentage of total, None when there is no spending."""
        if self.dominant is None or self.total <= 0:
            return None
        return float(self.dominant.value / self.total * 100)

    def dominant_share_text(self) -> str:
        share = self.dominant_share
        if share is None:
            return "No data"
        return f"{share:.1f}% of total"
