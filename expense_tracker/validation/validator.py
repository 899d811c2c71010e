"""
Expense Form Validation

Validation happens in two stages:

STAGE 1 - FIELD VALIDATION:
- Required field presence
- Numeric and date parsing
- Category membership
Errors here block the write.

STAGE 2 - SANITY CHECKS:
- Absurd amount detection
- Far-future date detection
Only run when stage 1 passes. These produce warnings; the expense is
still saved.

IMPORTANT: Validation NEVER silently fixes issues, with one exception
kept from the form's behaviour: an empty date means today.
"""

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import ValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    Category,
    ExpenseDraft,
    ExpenseForm,
    ValidationIssue,
    ValidationResult,
)


class ExpenseValidationError(Exception):
    """Raised when a form cannot be turned into an expense."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [i.message for i in result.issues if i.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid expense")


class ExpenseValidator:
    """
    Validates raw expense forms.

    Stage 1: Field validation (errors)
    Stage 2: Sanity checks (warnings)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        """
        Initialize validator.

        Args:
            settings: Thresholds to use. Defaults to the application settings.
        """
        self._settings = settings or get_settings().app

    def _parse_amount(self, raw: str) -> tuple[Optional[Decimal], Optional[ValidationIssue]]:
        text = raw.strip().replace(",", "")
        if not text:
            return None, ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            )

        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None, ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount '{raw.strip()}' is not a number",
                severity="error",
                suggested_fix="Enter digits only, e.g. 12.50",
            )

        if not amount.is_finite():
            return None, ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a finite number",
                severity="error",
            )

        if amount <= 0:
            return None, ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            )

        return amount, None

    def _parse_date(self, raw: str) -> tuple[Optional[date], Optional[ValidationIssue]]:
        text = raw.strip()
        if not text:
            return date.today(), None

        try:
            return date.fromisoformat(text), None
        except ValueError:
            return None, ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Date '{text}' is not a valid YYYY-MM-DD date",
                severity="error",
                suggested_fix="Pick the date from the calendar",
            )

    def _validate_fields(
        self,
        form: ExpenseForm,
    ) -> tuple[Optional[ExpenseDraft], list[ValidationIssue]]:
        """
        Stage 1: Field validation.

        Returns: (draft or None, list_of_issues)
        """
        issues = []

        title = form.title.strip()
        if not title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
            ))
        elif len(title) > self._settings.max_title_length:
            issues.append(ValidationIssue(
                field="title",
                issue_type="too_long",
                message=(
                    f"Title is longer than {self._settings.max_title_length} characters"
                ),
                severity="error",
                suggested_fix="Shorten the title",
            ))

        amount, amount_issue = self._parse_amount(form.amount)
        if amount_issue:
            issues.append(amount_issue)

        category = None
        try:
            category = Category(form.category)
        except ValueError:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"Unknown category '{form.category}'",
                severity="error",
                suggested_fix="Choose one of: " + ", ".join(c.value for c in Category),
            ))

        expense_date, date_issue = self._parse_date(form.date)
        if date_issue:
            issues.append(date_issue)

        if issues:
            return None, issues

        try:
            draft = ExpenseDraft(
                title=title,
                amount=amount,
                category=category,
                date=expense_date,
            )
        except ValidationError as e:
            for error in e.errors():
                issues.append(ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or "expense",
                    issue_type="invalid_value",
                    message=error["msg"],
                    severity="error",
                ))
            return None, issues

        return draft, issues

    def _validate_sanity(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        """Stage 2: warnings for values that are allowed but suspicious."""
        issues = []

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = date.today() + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if draft.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate(self, form: ExpenseForm) -> ValidationResult:
        """
        Run both validation stages.

        Args:
            form: Raw form values

        Returns:
            ValidationResult carrying the parsed draft when valid
        """
        draft, issues = self._validate_fields(form)
        if draft is not None:
            issues.extend(self._validate_sanity(draft))

        is_valid = draft is not None and not any(
            issue.severity == "error" for issue in issues
        )
        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            draft=draft if is_valid else None,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Markdown block listing errors and warnings, shown under the form."""
        if result.is_valid and not result.warnings:
            return "✅ Looks good."

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("❌ Please fix the following:")
            for issue in errors:
                lines.append(f"- {issue.message}")

        if result.warnings:
            lines.append("⚠️ Saved, but please double-check:")
            for warning in result.warnings:
                lines.append(f"- {warning}")

        return "\n".join(lines)
