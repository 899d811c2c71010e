"""
Streamlit Frontend for Expense Tracker

Two views behind a sign-in gate:
1. Record - add, edit and delete expenses; shows the month's total
2. Report - pick a month and see where the money went

The page is a pure rendering of the session's AppState. Widgets call
ExpenseFlow methods and then rerun; nothing here writes to a store
directly.
"""

import asyncio
import html
from datetime import date

import streamlit as st

from expense_tracker.config import get_settings, validate_all_settings
from expense_tracker.models import (
    CURRENCIES,
    Category,
    Currency,
    MonthKey,
    UserIdentity,
    badge_markup,
    format_money,
    lookup_category,
)
from expense_tracker.orchestrator import ExpenseFlow, create_app_components
from expense_tracker.session import View
from expense_tracker.validation import ExpenseValidationError


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
    layout="centered",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .header-box {
        padding: 20px;
        background-color: #4f46e5;
        color: white;
        border-radius: 16px;
        text-align: center;
        margin-bottom: 16px;
    }
    .stat-box {
        padding: 20px;
        background: linear-gradient(135deg, #6366f1, #9333ea);
        color: white;
        border-radius: 16px;
        margin-bottom: 16px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
    }
    .badge {
        display: inline-block;
        width: 12px;
        height: 12px;
        border-radius: 50%;
        margin-right: 6px;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Stores and logger shared by every browser session (cached)."""
    return create_app_components(use_storage=True)


def get_flow() -> ExpenseFlow:
    """This browser session's flow."""
    if "flow" not in st.session_state:
        base_flow, _ = get_components()
        st.session_state.flow = base_flow.new_session()
        st.session_state.form_nonce = 0
    return st.session_state.flow


def current_identity():
    """The signed-in user from Streamlit's OIDC login, or None."""
    if not st.user.is_logged_in:
        return None
    uid = st.user.get("sub") or st.user.get("email")
    if not uid:
        return None
    return UserIdentity(
        uid=uid,
        display_name=st.user.get("name"),
        email=st.user.get("email"),
        photo_url=st.user.get("picture"),
    )


def sync_auth(flow: ExpenseFlow) -> None:
    """Keep the flow's user in step with the identity provider."""
    identity = current_identity()
    state = flow.state
    if state.loading or (state.user is None) != (identity is None):
        run_async(flow.sign_in(identity))
    elif identity is not None and state.user.uid != identity.uid:
        run_async(flow.sign_in(identity))


def reset_form_widgets() -> None:
    st.session_state.form_nonce += 1


def main():
    """Main application entry point."""
    flow = get_flow()
    sync_auth(flow)

    if flow.state.user is None:
        render_sign_in_page()
        return

    render_sidebar(flow)
    render_notice(flow)

    if flow.state.view == View.RECORD:
        render_record_page(flow)
    else:
        render_report_page(flow)


def render_sign_in_page():
    st.title("Welcome Back")
    st.markdown(
        "Sign in to keep track of your personal expenses "
        "and manage your budget effectively."
    )
    provider = get_settings().app.auth_provider
    if st.button("Sign in", type="primary"):
        if provider:
            st.login(provider)
        else:
            st.login()


def render_sidebar(flow: ExpenseFlow):
    state = flow.state
    user = state.user

    st.sidebar.title("💸 Expense Tracker")
    st.sidebar.image(user.avatar_url, width=64)
    st.sidebar.markdown(f"**{user.name}**")
    st.sidebar.markdown("---")

    codes = [c.value for c in CURRENCIES]
    selected = st.sidebar.selectbox(
        "Currency",
        options=codes,
        index=codes.index(state.currency.value),
        format_func=lambda code: f"{CURRENCIES[Currency(code)].symbol} {code}",
    )
    if selected != state.currency.value:
        run_async(flow.change_currency(selected))
        st.rerun()

    views = [View.RECORD, View.REPORT]
    view = st.sidebar.radio(
        "Navigate to:",
        views,
        index=views.index(state.view),
        format_func=lambda v: "📝 Record" if v == View.RECORD else "📊 Report",
    )
    if view != state.view:
        flow.select_view(view)
        st.rerun()

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh"):
        run_async(flow.refresh())
        st.rerun()

    if st.sidebar.button("Sign out"):
        run_async(flow.sign_out())
        st.logout()

    with st.sidebar.expander("⚙️ Connection Status"):
        _, sheets_client = get_components()
        if sheets_client is not None:
            st.success("✅ Google Sheets - Connected")
        else:
            status = validate_all_settings()
            error = status.get("google_sheets_error", "Not configured")
            st.info(f"In-memory storage (Google Sheets: {error})")


def render_notice(flow: ExpenseFlow):
    notice = flow.state.notice
    if notice is None:
        return

    show = {
        "error": st.error,
        "warning": st.warning,
        "info": st.info,
        "success": st.success,
    }[notice.level]
    col1, col2 = st.columns([5, 1])
    with col1:
        show(notice.message)
    with col2:
        if st.button("✖", key="dismiss_notice"):
            flow.dismiss_notice()
            st.rerun()


def render_record_page(flow: ExpenseFlow):
    """Render the header total, the expense form and the list."""
    state = flow.state
    report = flow.report
    heading = (
        "Total Spent This Month"
        if state.report_month == MonthKey.current()
        else f"Total Spent in {state.report_month.label()}"
    )
    st.markdown(f"""
    <div class="header-box">
        <p>{heading}</p>
        <div class="big-number">{format_money(report.total, state.currency)}</div>
    </div>
    """, unsafe_allow_html=True)

    render_expense_form(flow)
    render_delete_confirmation(flow)
    render_expense_list(flow)


def render_expense_form(flow: ExpenseFlow):
    form_state = flow.state.form
    currency = CURRENCIES[flow.state.currency]
    categories = [c.value for c in Category]
    key = f"expense_form_{form_state.editing_id or 'new'}_{st.session_state.form_nonce}"

    try:
        initial_date = date.fromisoformat(form_state.date)
    except ValueError:
        initial_date = date.today()

    with st.form(key):
        title = st.text_input(
            "Title *",
            value=form_state.title,
            placeholder="What did you buy?",
        )
        col1, col2 = st.columns(2)
        with col1:
            amount = st.text_input(
                f"Amount ({currency.symbol}) *",
                value=form_state.amount,
                placeholder="0",
            )
        with col2:
            expense_date = st.date_input("Date *", value=initial_date)
        category = st.selectbox(
            "Category",
            options=categories,
            index=(
                categories.index(form_state.category)
                if form_state.category in categories else 0
            ),
            format_func=lambda c: lookup_category(c, flow.catalog).label,
        )

        label = "✏️ Update Expense" if form_state.is_editing else "➕ Add Expense"
        submitted = st.form_submit_button(label, type="primary")

    if form_state.is_editing and st.button("Cancel"):
        flow.cancel_edit()
        reset_form_widgets()
        st.rerun()

    if submitted:
        flow.edit_form(
            title=title,
            amount=amount,
            category=category,
            date=expense_date.isoformat() if expense_date else "",
        )
        try:
            result = run_async(flow.submit_expense())
        except ExpenseValidationError as e:
            st.error(flow.validator.get_user_friendly_summary(e.result))
            return

        if result is not None:
            reset_form_widgets()
            for warning in result.warnings:
                st.toast(f"⚠️ {warning}")
        st.rerun()


def render_delete_confirmation(flow: ExpenseFlow):
    deleting_id = flow.state.deleting_id
    if deleting_id is None:
        return

    expense = flow.state.find_expense(deleting_id)
    title = expense.title if expense else "this expense"
    st.warning(f"Delete **{title}**? This cannot be undone.")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("🗑️ Delete", type="primary", key="confirm_delete"):
            run_async(flow.confirm_delete())
            reset_form_widgets()
            st.rerun()
    with col2:
        if st.button("Keep it", key="cancel_delete"):
            flow.cancel_delete()
            st.rerun()


def render_expense_list(flow: ExpenseFlow):
    state = flow.state
    st.subheader("Recent Transactions")

    if not state.expenses:
        st.info("No expenses yet.")
        return

    for expense in state.expenses:
        info = lookup_category(expense.category, flow.catalog)
        col1, col2, col3, col4 = st.columns([5, 2, 1, 1])
        with col1:
            st.markdown(
                f"{badge_markup(info.color, expense.title)}  \n"
                f"{expense.date:%b} {expense.date.day}, {expense.date.year} · {html.escape(info.label)}",
                unsafe_allow_html=True,
            )
        with col2:
            st.markdown(f"**-{format_money(expense.amount, state.currency)}**")
        with col3:
            if st.button("✏️", key=f"edit_{expense.id}"):
                flow.start_edit(expense.id)
                reset_form_widgets()
                st.rerun()
        with col4:
            if st.button("🗑️", key=f"delete_{expense.id}"):
                flow.request_delete(expense.id)
                st.rerun()


def render_report_page(flow: ExpenseFlow):
    """Render the month picker, the dominant category and the breakdown."""
    state = flow.state
    st.title("📊 Report")

    month_text = st.text_input(
        "Report for (YYYY-MM)",
        value=str(state.report_month),
    )
    if month_text != str(state.report_month):
        try:
            flow.select_report_month(month_text)
        except ValueError as e:
            st.error(str(e))
        else:
            st.rerun()

    report = flow.report
    dominant_name = html.escape(report.dominant.name) if report.dominant else "N/A"
    st.markdown(f"""
    <div class="stat-box">
        <p>Highest Spend Category</p>
        <h3>{dominant_name}</h3>
        <p>{report.dominant_share_text()}</p>
    </div>
    """, unsafe_allow_html=True)

    st.subheader("Category Breakdown")
    if report.is_empty:
        st.info(f"No expenses in {report.month.label()}.")
        return

    chart_data = [
        {
            "name": entry.name,
            "value": float(entry.value),
            "label": format_money(entry.value, state.currency),
        }
        for entry in report.breakdown
    ]
    st.vega_lite_chart(
        {
            "data": {"values": chart_data},
            "mark": {"type": "arc", "innerRadius": 60, "outerRadius": 100},
            "encoding": {
                "theta": {"field": "value", "type": "quantitative"},
                "color": {
                    "field": "name",
                    "type": "nominal",
                    "sort": None,
                    "scale": {
                        "domain": [e.name for e in report.breakdown],
                        "range": [e.color for e in report.breakdown],
                    },
                    "legend": None,
                },
                "tooltip": [
                    {"field": "name", "type": "nominal"},
                    {"field": "label", "type": "nominal", "title": "Amount"},
                ],
            },
        },
        use_container_width=True,
    )

    col1, col2 = st.columns(2)
    for index, entry in enumerate(report.breakdown):
        with (col1 if index % 2 == 0 else col2):
            st.markdown(
                f"{badge_markup(entry.color, entry.name)} · **{format_money(entry.value, state.currency)}**",
                unsafe_allow_html=True,
            )


if __name__ == "__main__":
    main()
