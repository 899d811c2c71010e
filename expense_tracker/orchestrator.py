"""
Main Orchestrator for Expense Tracker

This module ties together the stores, the validator, the audit logger and
the session reducer, and defines the flows a signed-in user goes through:
1. Sign in → load currency preference → subscribe to expenses
2. Record (form → validate → create/update → form reset)
3. Delete (request → confirm → delete)
4. Report (pick a month → aggregate the live expense list)

The orchestrator enforces the boundaries:
- Nothing reaches the store without passing validation
- Nothing touches the store without a signed-in user
- Store failures become a notice on the state, never a crash
- Every write is audited
"""

from typing import Optional, Union

import structlog

from expense_tracker.audit import AuditLogger, configure_logging
from expense_tracker.config import get_settings
from expense_tracker.models.currency import Currency
from expense_tracker.models.expense import (
    CATEGORY_CATALOG,
    CategoryInfo,
    ExpenseDraft,
    ValidationResult,
)
from expense_tracker.models.report import MonthKey, MonthlyReport
from expense_tracker.models.user import UserIdentity
from expense_tracker.reports import compute_report
from expense_tracker.services.storage import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStore,
    GoogleSheetsPreferenceStore,
    InMemoryAuditStorage,
    InMemoryExpenseStore,
    InMemoryPreferenceStore,
    NotFoundError,
    PreferenceStoreInterface,
    StorageError,
    Subscription,
)
from expense_tracker.session import (
    Action,
    AppState,
    AuthResolved,
    CurrencySelected,
    DeleteCancelled,
    DeleteCompleted,
    DeleteRequested,
    EditCancelled,
    EditStarted,
    ExpensesReceived,
    FormEdited,
    FormSubmitted,
    Notice,
    NoticeDismissed,
    NoticeRaised,
    ReportMonthSelected,
    SignedOut,
    View,
    ViewSelected,
    reduce,
)
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator

logger = structlog.get_logger(__name__)


class AuthRequiredError(Exception):
    """A store operation was attempted with nobody signed in."""
    pass


class ExpenseFlow:
    """
    Orchestrates one user session.

    Holds the current AppState; every method either dispatches actions
    through the reducer or talks to the stores and then dispatches.
    """

    def __init__(
        self,
        expense_store: ExpenseStoreInterface,
        preference_store: PreferenceStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ExpenseValidator] = None,
        catalog: Optional[dict[str, CategoryInfo]] = None,
    ):
        self._expenses = expense_store
        self._preferences = preference_store
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or ExpenseValidator()
        self._catalog = catalog or CATEGORY_CATALOG
        self._subscription: Optional[Subscription] = None
        self._state = AppState()

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def validator(self) -> ExpenseValidator:
        return self._validator

    @property
    def catalog(self) -> dict[str, CategoryInfo]:
        return self._catalog

    @property
    def report(self) -> MonthlyReport:
        """Report for the selected month, recomputed from the latest snapshot."""
        return compute_report(
            self._state.expenses,
            self._state.report_month,
            self._catalog,
        )

    def new_session(self) -> "ExpenseFlow":
        """A flow with fresh state that shares this flow's stores and logger."""
        return ExpenseFlow(
            expense_store=self._expenses,
            preference_store=self._preferences,
            audit_logger=self._audit,
            validator=self._validator,
            catalog=self._catalog,
        )

    def dispatch(self, action: Action) -> AppState:
        self._state = reduce(self._state, action)
        return self._state

    def _require_user(self) -> UserIdentity:
        if self._state.user is None:
            raise AuthRequiredError("Sign in to manage expenses")
        return self._state.user

    async def _store_failed(self, operation: str, error: Exception) -> None:
        """Surface a store failure to the user and the audit log."""
        user = self._state.user
        logger.warning("store_operation_failed", operation=operation, error=str(error))
        self.dispatch(NoticeRaised(notice=Notice(
            message=f"Could not {operation.replace('_', ' ')}: {error}",
        )))
        await self._audit.log_store_unavailable(
            user_id=user.uid if user else None,
            operation=operation,
            error_message=str(error),
        )

    def _on_snapshot(self, expenses) -> None:
        self.dispatch(ExpensesReceived(expenses=expenses))

    def _on_snapshot_error(self, error: Exception) -> None:
        self.dispatch(NoticeRaised(notice=Notice(
            message=f"Could not load expenses: {error}",
        )))

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def sign_in(self, user: Optional[UserIdentity]) -> AppState:
        """
        Resolve the signed-in user and start listening to their expenses.

        Passing None records that the identity provider answered with no
        user, which ends the loading state and shows the sign-in screen.
        """
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        self.dispatch(AuthResolved(user=user))
        if user is None:
            return self._state

        await self._audit.log_signed_in(user.uid)

        try:
            currency = await self._preferences.get_currency(user.uid)
        except StorageError as e:
            await self._store_failed("load_preferences", e)
        else:
            if currency is not None:
                self.dispatch(CurrencySelected(currency=currency))

        self._subscription = await self._expenses.subscribe(
            user.uid,
            self._on_snapshot,
            on_error=self._on_snapshot_error,
        )
        return self._state

    async def sign_out(self) -> AppState:
        user = self._state.user
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        self.dispatch(SignedOut())
        if user is not None:
            await self._audit.log_signed_out(user.uid)
        return self._state

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    async def change_currency(self, currency: Union[Currency, str]) -> AppState:
        """
        Switch the display currency and remember it for the user.

        Amounts are never converted; only the symbol and formatting change.
        """
        user = self._require_user()
        currency = Currency(currency)
        previous = self._state.currency
        self.dispatch(CurrencySelected(currency=currency))
        if currency == previous:
            return self._state

        try:
            await self._preferences.set_currency(user.uid, currency)
        except StorageError as e:
            await self._store_failed("save_currency", e)
            return self._state

        await self._audit.log_currency_changed(user.uid, previous.value, currency.value)
        return self._state

    # -------------------------------------------------------------------------
    # Record form
    # -------------------------------------------------------------------------

    def edit_form(
        self,
        title: Optional[str] = None,
        amount: Optional[str] = None,
        category: Optional[str] = None,
        date: Optional[str] = None,
    ) -> AppState:
        return self.dispatch(FormEdited(
            title=title,
            amount=amount,
            category=category,
            date=date,
        ))

    def start_edit(self, expense_id: str) -> AppState:
        """
        Load an expense from the current list into the form.

        Raises:
            NotFoundError: If the expense is not in the current list
        """
        expense = self._state.find_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        return self.dispatch(EditStarted(expense=expense))

    def cancel_edit(self) -> AppState:
        return self.dispatch(EditCancelled())

    async def submit_expense(self) -> Optional[ValidationResult]:
        """
        Validate the form and save it as a new or edited expense.

        Returns:
            The validation result (it may carry warnings) once saved,
            or None if the store rejected the write

        Raises:
            AuthRequiredError: If nobody is signed in
            ExpenseValidationError: If the form has errors; nothing is written
        """
        user = self._require_user()
        form = self._state.form
        result = self._validator.validate(form)

        if not result.is_valid:
            await self._audit.log_validation_failed(
                user.uid,
                [issue.model_dump() for issue in result.issues],
            )
            raise ExpenseValidationError(result)

        draft = result.draft
        try:
            if form.editing_id is not None:
                await self._update(user, form.editing_id, draft)
            else:
                expense_id = await self._expenses.create_expense(user.uid, draft)
                await self._audit.log_expense_created(
                    user_id=user.uid,
                    expense_id=expense_id,
                    title=draft.title,
                    amount=str(draft.amount),
                    category=draft.category.value,
                )
        except NotFoundError:
            self.dispatch(FormSubmitted())
            self.dispatch(NoticeRaised(notice=Notice(
                message="That expense no longer exists.",
                level="warning",
            )))
            return None
        except StorageError as e:
            await self._store_failed("save_expense", e)
            return None

        self.dispatch(FormSubmitted())
        return result

    async def _update(self, user: UserIdentity, expense_id: str, draft: ExpenseDraft) -> None:
        before = self._state.find_expense(expense_id)
        await self._expenses.update_expense(user.uid, expense_id, draft)

        changed = ["title", "amount", "category", "date"]
        if before is not None:
            changed = [
                name for name, old, new in (
                    ("title", before.title, draft.title),
                    ("amount", before.amount, draft.amount),
                    ("category", before.category, draft.category.value),
                    ("date", before.date, draft.date),
                )
                if old != new
            ]
        await self._audit.log_expense_updated(user.uid, expense_id, changed)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    def request_delete(self, expense_id: str) -> AppState:
        return self.dispatch(DeleteRequested(expense_id=expense_id))

    def cancel_delete(self) -> AppState:
        return self.dispatch(DeleteCancelled())

    async def confirm_delete(self) -> bool:
        """
        Delete the expense awaiting confirmation.

        Returns:
            True if an expense was deleted
        """
        user = self._require_user()
        expense_id = self._state.deleting_id
        if expense_id is None:
            return False

        try:
            deleted = await self._expenses.delete_expense(user.uid, expense_id)
        except StorageError as e:
            self.dispatch(DeleteCompleted())
            await self._store_failed("delete_expense", e)
            return False

        self.dispatch(DeleteCompleted())
        if deleted:
            # Deleting the expense in the form leaves nothing to edit.
            if self._state.form.editing_id == expense_id:
                self.dispatch(EditCancelled())
            await self._audit.log_expense_deleted(user.uid, expense_id)
        return deleted

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def select_view(self, view: Union[View, str]) -> AppState:
        return self.dispatch(ViewSelected(view=View(view)))

    def select_report_month(self, month: Union[MonthKey, str]) -> AppState:
        """
        Raises:
            ValueError: If a string month is not in YYYY-MM form
        """
        if isinstance(month, str):
            month = MonthKey.parse(month)
        return self.dispatch(ReportMonthSelected(month=month))

    def dismiss_notice(self) -> AppState:
        return self.dispatch(NoticeDismissed())

    async def refresh(self) -> AppState:
        """Re-read the user's expenses, picking up writes from other sessions."""
        user = self._require_user()
        await self._expenses.refresh(user.uid)
        return self._state


def create_app_components(
    use_storage: bool = True,
) -> tuple[ExpenseFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False for in-memory stores regardless of settings.

    Returns:
        (expense_flow, sheets_client)
    """
    app_settings = get_settings().app
    configure_logging(app_settings.debug_mode)

    sheets_client = None
    expense_store: ExpenseStoreInterface = InMemoryExpenseStore()
    preference_store: PreferenceStoreInterface = InMemoryPreferenceStore()
    audit_storage: AuditStorageInterface = InMemoryAuditStorage()

    if use_storage and app_settings.storage_backend == "google_sheets":
        try:
            client = GoogleSheetsClient()
            client.connect()
            expense_store = GoogleSheetsExpenseStore(client)
            preference_store = GoogleSheetsPreferenceStore(client)
            audit_storage = GoogleSheetsAuditStorage(client)
            sheets_client = client
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", backend="google_sheets", error=str(e))

    flow = ExpenseFlow(
        expense_store=expense_store,
        preference_store=preference_store,
        audit_logger=AuditLogger(audit_storage),
        validator=ExpenseValidator(app_settings),
    )
    return flow, sheets_client
