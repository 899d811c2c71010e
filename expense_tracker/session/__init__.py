"""Session state and the reducer that updates it."""

from expense_tracker.session.state import (
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

__all__ = [
    "Action",
    "AppState",
    "AuthResolved",
    "CurrencySelected",
    "DeleteCancelled",
    "DeleteCompleted",
    "DeleteRequested",
    "EditCancelled",
    "EditStarted",
    "ExpensesReceived",
    "FormEdited",
    "FormSubmitted",
    "Notice",
    "NoticeDismissed",
    "NoticeRaised",
    "ReportMonthSelected",
    "SignedOut",
    "View",
    "ViewSelected",
    "reduce",
]
