"""
Session State

The whole UI state of one browser session lives in a single immutable
AppState. Every change goes through reduce(state, action), which returns a
new state and never touches the old one. The Streamlit script re-renders
from whatever the latest state is.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.currency import DEFAULT_CURRENCY, Currency
from expense_tracker.models.expense import Expense, ExpenseForm
from expense_tracker.models.report import MonthKey
from expense_tracker.models.user import UserIdentity


class View(str, Enum):
    RECORD = "record"
    REPORT = "report"


class Notice(BaseModel):
    """A transient message shown to the user until dismissed."""
    model_config = ConfigDict(frozen=True)

    message: str
    level: str = Field(default="error", pattern="^(error|warning|info|success)$")


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: Optional[UserIdentity] = None
    loading: bool = Field(
        default=True,
        description="True until the identity provider has answered"
    )
    view: View = View.RECORD
    currency: Currency = DEFAULT_CURRENCY
    expenses: list[Expense] = Field(default_factory=list)
    form: ExpenseForm = Field(default_factory=ExpenseForm)
    deleting_id: Optional[str] = Field(
        default=None,
        description="Expense awaiting delete confirmation"
    )
    report_month: MonthKey = Field(default_factory=MonthKey.current)
    notice: Optional[Notice] = None

    @property
    def signed_in(self) -> bool:
        return self.user is not None

    def find_expense(self, expense_id: str) -> Optional[Expense]:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        return None


# =============================================================================
# ACTIONS
# =============================================================================

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class AuthResolved(_Action):
    """The identity provider answered; user is None when nobody is signed in."""
    user: Optional[UserIdentity] = None


class SignedOut(_Action):
    pass


class ViewSelected(_Action):
    view: View


class CurrencySelected(_Action):
    currency: Currency


class ExpensesReceived(_Action):
    """A fresh snapshot from the expense store."""
    expenses: list[Expense]


class FormEdited(_Action):
    """Any subset of the form fields; None leaves a field as it is."""
    title: Optional[str] = None
    amount: Optional[str] = None
    category: Optional[str] = None
    date: Optional[str] = None


class EditStarted(_Action):
    expense: Expense


class EditCancelled(_Action):
    pass


class FormSubmitted(_Action):
    pass


class DeleteRequested(_Action):
    expense_id: str


class DeleteCancelled(_Action):
    pass


class DeleteCompleted(_Action):
    pass


class ReportMonthSelected(_Action):
    month: MonthKey


class NoticeRaised(_Action):
    notice: Notice


class NoticeDismissed(_Action):
    pass


Action = Union[
    AuthResolved,
    SignedOut,
    ViewSelected,
    CurrencySelected,
    ExpensesReceived,
    FormEdited,
    EditStarted,
    EditCancelled,
    FormSubmitted,
    DeleteRequested,
    DeleteCancelled,
    DeleteCompleted,
    ReportMonthSelected,
    NoticeRaised,
    NoticeDismissed,
]


# =============================================================================
# REDUCER
# =============================================================================

def reduce(state: AppState, action: Action) -> AppState:
    """
    Apply one action to the state.

    Raises:
        TypeError: For an object that is not a known action
    """
    if isinstance(action, AuthResolved):
        return state.model_copy(update={"user": action.user, "loading": False})

    if isinstance(action, SignedOut):
        return AppState(
            loading=False,
            currency=state.currency,
            report_month=state.report_month,
        )

    if isinstance(action, ViewSelected):
        return state.model_copy(update={"view": action.view})

    if isinstance(action, CurrencySelected):
        return state.model_copy(update={"currency": action.currency})

    if isinstance(action, ExpensesReceived):
        update = {"expenses": list(action.expenses)}
        # The expense being deleted or edited may have vanished elsewhere.
        ids = {e.id for e in action.expenses}
        if state.deleting_id is not None and state.deleting_id not in ids:
            update["deleting_id"] = None
        if state.form.editing_id is not None and state.form.editing_id not in ids:
            update["form"] = ExpenseForm()
        return state.model_copy(update=update)

    if isinstance(action, FormEdited):
        changes = action.model_dump(exclude_none=True)
        return state.model_copy(update={"form": state.form.model_copy(update=changes)})

    if isinstance(action, EditStarted):
        return state.model_copy(update={
            "form": ExpenseForm.from_expense(action.expense),
            "view": View.RECORD,
        })

    if isinstance(action, (EditCancelled, FormSubmitted)):
        return state.model_copy(update={"form": ExpenseForm()})

    if isinstance(action, DeleteRequested):
        return state.model_copy(update={"deleting_id": action.expense_id})

    if isinstance(action, (DeleteCancelled, DeleteCompleted)):
        return state.model_copy(update={"deleting_id": None})

    if isinstance(action, ReportMonthSelected):
        return state.model_copy(update={"report_month": action.month})

    if isinstance(action, NoticeRaised):
        return state.model_copy(update={"notice": action.notice})

    if isinstance(action, NoticeDismissed):
        return state.model_copy(update={"notice": None})

    raise TypeError(f"Unknown action: {type(action).__name__}")
