"""
Tests for Expense Tracker

Test strategy:
1. Unit tests for individual components (models, aggregator, validator)
2. Integration tests for flows (with in-memory stores)
3. No real API calls in tests (Google Sheets is mocked)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from expense_tracker.models.expense import (
    CATEGORY_CATALOG,
    FALLBACK_COLOR,
    Category,
    Expense,
    ExpenseDraft,
    ExpenseForm,
    ValidationIssue,
    ValidationResult,
    badge_markup,
    lookup_category,
    order_expenses,
)
from expense_tracker.models.currency import (
    DEFAULT_CURRENCY,
    Currency,
    format_money,
    parse_currency,
)
from expense_tracker.models.report import MonthKey, MonthlyReport, BreakdownEntry
from expense_tracker.models.user import UserIdentity
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def _expense(expense_id, day, created_minute=0, **kwargs):
    return Expense(
        id=expense_id,
        title=kwargs.get("title", "Lunch"),
        amount=kwargs.get("amount", Decimal("10")),
        category=kwargs.get("category", "Food"),
        date=day,
        created_at=datetime(2024, 1, 1, 12, created_minute, tzinfo=timezone.utc),
    )


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_draft_creation(self):
        """Test ExpenseDraft model creation."""
        draft = ExpenseDraft(
            title="Groceries",
            amount=Decimal("42.10"),
            category=Category.FOOD,
            date=date(2024, 3, 5),
        )
        assert draft.title == "Groceries"
        assert draft.amount == Decimal("42.10")

    def test_draft_strips_whitespace(self):
        """Test that whitespace is stripped from the title."""
        draft = ExpenseDraft(
            title="  Bus ticket  ",
            amount=Decimal("2"),
            category=Category.TRAVEL,
            date=date(2024, 3, 5),
        )
        assert draft.title == "Bus ticket"

    def test_draft_rejects_non_positive_amount(self):
        """Zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-5")):
            with pytest.raises(ValueError):
                ExpenseDraft(
                    title="Test",
                    amount=amount,
                    category=Category.OTHER,
                    date=date(2024, 3, 5),
                )

    def test_draft_rejects_unknown_category(self):
        """Writes only accept catalog categories."""
        with pytest.raises(ValueError):
            ExpenseDraft(
                title="Test",
                amount=Decimal("1"),
                category="Gadgets",
                date=date(2024, 3, 5),
            )

    def test_expense_keeps_unknown_category(self):
        """Stored expenses may carry ids outside the catalog."""
        expense = _expense("e1", date(2024, 3, 5), category="Gadgets")
        assert expense.category == "Gadgets"

    def test_expense_accepts_category_enum(self):
        expense = _expense("e1", date(2024, 3, 5), category=Category.CLOTHES)
        assert expense.category == "Clothes"

    def test_order_newest_date_first(self):
        """Expenses are ordered by date, newest first."""
        old = _expense("old", date(2024, 3, 1))
        new = _expense("new", date(2024, 3, 9))
        assert [e.id for e in order_expenses([old, new])] == ["new", "old"]

    def test_order_same_date_by_creation_time(self):
        """Same-day expenses: the later-created one comes first."""
        first = _expense("first", date(2024, 3, 5), created_minute=1)
        second = _expense("second", date(2024, 3, 5), created_minute=2)
        assert [e.id for e in order_expenses([first, second])] == ["second", "first"]


class TestCategoryCatalog:
    """Tests for the category catalog."""

    def test_all_categories_have_catalog_entries(self):
        """Every Category has display metadata."""
        for category in Category:
            assert category.value in CATEGORY_CATALOG

    def test_category_values(self):
        """Test category enum values."""
        assert Category.FOOD.value == "Food"
        assert Category.OTHER.value == "Other"
        assert list(Category)[0] == Category.FOOD

    def test_food_label(self):
        assert CATEGORY_CATALOG["Food"].label == "Grocery/Food"

    def test_lookup_unknown_category_falls_back(self):
        """Unknown ids get a neutral entry labelled with the id."""
        info = lookup_category("Gadgets")
        assert info.label == "Gadgets"
        assert info.color == FALLBACK_COLOR

    def test_badge_markup_escapes_text(self):
        """Titles and category ids are shown as text, never as HTML."""
        markup = badge_markup("#FF6B6B", "Fish <b>& chips")
        assert "background-color:#FF6B6B" in markup
        assert "Fish &lt;b&gt;&amp; chips" in markup
        assert "<b>" not in markup

    def test_badge_markup_escapes_unknown_category_label(self):
        info = lookup_category("<img src=x onerror=alert(1)>")
        markup = badge_markup(info.color, info.label)
        assert "<img" not in markup
        assert markup.endswith("&lt;img src=x onerror=alert(1)&gt;")


class TestExpenseForm:
    """Tests for the raw form model."""

    def test_defaults(self):
        form = ExpenseForm()
        assert form.title == ""
        assert form.amount == ""
        assert form.category == "Food"
        assert form.date == date.today().isoformat()
        assert not form.is_editing

    def test_from_expense(self):
        expense = _expense("e1", date(2024, 3, 5), title="Taxi", amount=Decimal("12.5"))
        form = ExpenseForm.from_expense(expense)
        assert form.title == "Taxi"
        assert form.amount == "12.5"
        assert form.date == "2024-03-05"
        assert form.editing_id == "e1"
        assert form.is_editing


class TestCurrency:
    """Tests for currency display helpers."""

    def test_default_is_usd(self):
        assert DEFAULT_CURRENCY == Currency.USD

    def test_format_usd_two_decimals(self):
        assert format_money(Decimal("1234.5"), Currency.USD) == "$1,234.50"

    def test_format_inr_no_decimals(self):
        assert format_money(Decimal("1234.4"), Currency.INR) == "₹1,234"

    def test_parse_currency(self):
        assert parse_currency("INR") == Currency.INR
        assert parse_currency("inr") == Currency.INR
        assert parse_currency("EUR") is None
        assert parse_currency(None) is None


class TestMonthKey:
    """Tests for the month selector."""

    def test_parse(self):
        month = MonthKey.parse("2024-02")
        assert month.year == 2024
        assert month.month == 2
        assert str(month) == "2024-02"

    def test_parse_rejects_bad_input(self):
        for value in ("2024-2", "2024/02", "2024-13", "march"):
            with pytest.raises(ValueError):
                MonthKey.parse(value)

    def test_bounds_leap_year(self):
        month = MonthKey.parse("2024-02")
        assert month.first_day == date(2024, 2, 1)
        assert month.last_day == date(2024, 2, 29)

    def test_contains_is_inclusive(self):
        month = MonthKey.parse("2024-03")
        assert month.contains(date(2024, 3, 1))
        assert month.contains(date(2024, 3, 31))
        assert not month.contains(date(2024, 2, 29))
        assert not month.contains(date(2024, 4, 1))

    def test_label(self):
        assert MonthKey.parse("2024-03").label() == "March 2024"


class TestMonthlyReport:
    """Tests for the report model's derived values."""

    def test_dominant_share(self):
        entry = BreakdownEntry(category="Food", name="Grocery/Food", value=Decimal("60"), color="#FF6B6B")
        report = MonthlyReport(
            month=MonthKey.parse("2024-03"),
            total=Decimal("100"),
            breakdown=[entry],
            dominant=entry,
        )
        assert report.dominant_share == 60.0
        assert report.dominant_share_text() == "60.0% of total"

    def test_empty_report_has_no_share(self):
        report = MonthlyReport(month=MonthKey.parse("2024-03"))
        assert report.is_empty
        assert report.dominant_share is None
        assert report.dominant_share_text() == "No data"


class TestUserIdentity:

    def test_avatar_falls_back_to_generated(self):
        user = UserIdentity(uid="abc 123")
        assert "seed=abc%20123" in user.avatar_url
        assert user.name == "User"

    def test_photo_url_preferred(self):
        user = UserIdentity(uid="u1", display_name="Asha", photo_url="https://example.com/a.png")
        assert user.avatar_url == "https://example.com/a.png"
        assert user.name == "Asha"


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            description="User signed in",
        )
        assert event.event_type == AuditEventType.USER_SIGNED_IN
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.expense_deleted("u1", "e1")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "expense_deleted"
        assert log_dict["user_id"] == "u1"
        assert log_dict["entity_id"] == "e1"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.currency_changed("u1", "USD", "INR")
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "currency_changed"
        assert row[4] == "u1"
        assert row[10] == "True"

    def test_expense_created_builder(self):
        event = AuditEventBuilder.expense_created("u1", "e1", "Lunch", "12.50", "Food")
        assert event.entity_type == "expense"
        assert event.details["category"] == "Food"
        assert event.is_user_action

    def test_store_unavailable_is_error(self):
        event = AuditEventBuilder.store_unavailable("u1", "save_expense", "quota exceeded")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="title",
                    issue_type="missing",
                    message="Title is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date is in the future",
                    severity="warning",
                ),
            ],
        )
        assert not result.has_errors
        assert result.warnings == ["Date is in the future"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
