"""
Core Data Models for Expense Tracker

These models define the schemas for all expense data flowing through the system.
They are designed to:
1. Enforce the expense invariants at runtime (positive amount, closed category set)
2. Provide clear validation error messages
3. Be serializable for storage and logging

Two shapes exist for an expense:
- ExpenseDraft is what a user submits. It only accepts catalog categories.
- Expense is what the store hands back. It keeps the category id as text so
  a record written by another client still loads; reporting falls back to a
  neutral catalog entry for ids it does not know.
"""

import html
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Iterable, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Supported expense categories.

    The order here is the order shown to the user; the first entry is the
    form default.
    """
    FOOD = "Food"
    CLOTHES = "Clothes"
    TRAVEL = "Travel"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    OTHER = "Other"


DEFAULT_CATEGORY = Category.FOOD


# =============================================================================
# CATEGORY CATALOG
# =============================================================================

class CategoryInfo(BaseModel):
    """Display metadata for one category."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1)
    color: str = Field(
        ...,
        pattern="^#[0-9A-Fa-f]{3}([0-9A-Fa-f]{3})?$",
        description="Hex color used in charts and list badges"
    )


CATEGORY_CATALOG: dict[str, CategoryInfo] = {
    Category.FOOD.value: CategoryInfo(label="Grocery/Food", color="#FF6B6B"),
    Category.CLOTHES.value: CategoryInfo(label="Clothes", color="#4ECDC4"),
    Category.TRAVEL.value: CategoryInfo(label="Travel", color="#45B7D1"),
    Category.UTILITIES.value: CategoryInfo(label="Utilities", color="#F7B731"),
    Category.ENTERTAINMENT.value: CategoryInfo(label="Entertainment", color="#A55EEA"),
    Category.OTHER.value: CategoryInfo(label="Other", color="#95A5A6"),
}

FALLBACK_COLOR = "#999"


def lookup_category(
    category_id: str,
    catalog: Mapping[str, CategoryInfo] = CATEGORY_CATALOG,
) -> CategoryInfo:
    """Catalog entry for an id, or a neutral entry labelled with the id itself."""
    info = catalog.get(category_id)
    if info is None:
        return CategoryInfo(label=category_id, color=FALLBACK_COLOR)
    return info


def badge_markup(color: str, text: str) -> str:
    """
    Colored dot followed by text, for HTML-enabled markdown.

    The text is escaped: titles and category ids come from the store.
    """
    return (
        f'<span class="badge" style="background-color:{html.escape(color)}"></span>'
        f"{html.escape(text)}"
    )


# =============================================================================
# EXPENSE MODELS
# =============================================================================

# Field names below shadow the `date` type inside class bodies.
CalendarDate = date


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


PositiveAmount = Annotated[
    Decimal,
    Field(gt=0, description="Amount spent, in the user's display currency")
]


class ExpenseDraft(BaseModel):
    """
    The user-editable part of an expense.

    Used for both create and edit; an edit is a full replace of these
    four fields.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="What the money was spent on"
    )
    amount: PositiveAmount
    category: Category = Field(
        default=DEFAULT_CATEGORY,
        description="Expense category"
    )
    date: CalendarDate = Field(
        ...,
        description="Calendar date the expense occurred"
    )


class Expense(BaseModel):
    """
    A stored expense as delivered by the expense store.

    id, created_at and updated_at are assigned by the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the store"
    )
    title: str = Field(..., min_length=1)
    amount: PositiveAmount
    category: str = Field(
        ...,
        min_length=1,
        description="Category id (normally a Category value)"
    )
    date: CalendarDate
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="When the expense was first stored"
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="Last write timestamp"
    )

    @field_validator('category', mode='before')
    @classmethod
    def category_to_text(cls, v):
        if isinstance(v, Category):
            return v.value
        return v


def order_expenses(expenses: Iterable[Expense]) -> list[Expense]:
    """Newest first: by date, then by creation time for same-day entries."""
    return sorted(
        expenses,
        key=lambda e: (e.date, e.created_at),
        reverse=True,
    )


# =============================================================================
# FORM + VALIDATION MODELS
# =============================================================================

class ExpenseForm(BaseModel):
    """
    Raw form values as typed by the user.

    Kept as text so the validator can report exactly what was wrong
    instead of failing on coercion.
    """
    model_config = ConfigDict(frozen=True)

    title: str = ""
    amount: str = ""
    category: str = DEFAULT_CATEGORY.value
    date: str = Field(default_factory=lambda: date.today().isoformat())
    editing_id: Optional[str] = Field(
        default=None,
        description="Id of the expense being edited, None when adding"
    )

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseForm":
        return cls(
            title=expense.title,
            amount=str(expense.amount),
            category=expense.category,
            date=expense.date.isoformat(),
            editing_id=expense.id,
        )


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating an expense form."""

    validated_at: datetime = Field(
        default_factory=_utcnow
    )
    is_valid: bool = Field(
        ...,
        description="True when no error-level issue was found"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    draft: Optional[ExpenseDraft] = Field(
        default=None,
        description="The parsed draft, present only when valid"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
