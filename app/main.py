"""
Streamlit Frontend for Wallet Ledger

This is the user interface for recording day-to-day spending against
bank accounts, credit cards and cash.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Balances always match the expense list
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

Every write goes through the orchestrator components; this module only
collects input and renders committed state.
"""

import asyncio
from datetime import date, datetime, time, timedelta

import streamlit as st
from pydantic import ValidationError

from src.config import get_settings, validate_all_settings
from src.ledger import LedgerError
from src.models import (
    AdvanceDraft,
    AdvanceStatus,
    Currency,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseFilter,
    PaymentSourceType,
    RefundDraft,
    RefundStatus,
    format_inr,
    to_amount,
)
from src.orchestrator import AppComponents, create_app_components
from src.queries import describe_range
from src.services.attachments import AttachmentError, thumbnail_url


# Page configuration
st.set_page_config(
    page_title="Wallet Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
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
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        return create_app_components(use_storage=False)


def main():
    """Main application entry point."""
    components = get_components()
    user_id = get_settings().app.local_user_id

    st.sidebar.title("💰 Wallet Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Expense", "📋 Expenses", "🏦 Wallets", "🤝 Advances & Refunds", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How it works:**
        1. Add your bank accounts, cards and cash
        2. Record each expense against one of them
        3. Balances update automatically
        """
    )

    if page == "📊 Dashboard":
        render_dashboard(components, user_id)
    elif page == "➕ Add Expense":
        render_expense_form(components, user_id)
    elif page == "📋 Expenses":
        render_expenses_page(components, user_id)
    elif page == "🏦 Wallets":
        render_wallets_page(components, user_id)
    elif page == "🤝 Advances & Refunds":
        render_obligations_page(components, user_id)
    elif page == "⚙️ Settings":
        render_settings_page()


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard(components: AppComponents, user_id: str):
    st.title("📊 Dashboard")
    today = date.today()

    overview = run_async(components.balances.overview(user_id))
    summary = run_async(components.summaries.period_summary(user_id, today))

    col1, col2, col3 = st.columns(3)
    col1.metric("Available (bank + cash)", format_inr(overview.total_available))
    col2.metric("Credit card dues", format_inr(overview.total_credit_due))
    col3.metric("Cash in hand", format_inr(overview.cash.balance))

    col1, col2, col3 = st.columns(3)
    col1.metric("Spent today", format_inr(summary.today))
    col2.metric("This week", format_inr(summary.this_week))
    col3.metric("This month", format_inr(summary.this_month))

    st.markdown("---")
    days = st.select_slider("Chart window (days)", options=[7, 14, 30], value=7)
    daily = run_async(components.summaries.recent_daily_totals(user_id, days=days, today=today))
    st.bar_chart(
        {"Spent": [float(d.total) for d in daily]},
    )
    st.caption(describe_range(daily[0].day, daily[-1].day))

    drill_day = st.selectbox(
        "Show expenses for",
        options=[d.day for d in reversed(daily)],
        format_func=lambda d: d.strftime("%a %d %b"),
    )
    expenses = run_async(components.summaries.expenses_on(user_id, drill_day))
    if not expenses:
        st.info("No expenses on this day.")
    for expense in expenses:
        st.markdown(
            f"**{format_inr(expense.amount)}** · {expense.category.value} · "
            f"{expense.purpose} · _{expense.payment_source_type.label}_"
        )

    st.markdown("---")
    st.markdown("### This month by category")
    first_of_month = today.replace(day=1)
    categories = run_async(components.summaries.category_totals(user_id, first_of_month, today))
    if categories:
        st.bar_chart({
            "Category": [c.category.value for c in categories],
            "Spent": [float(c.total) for c in categories],
        }, x="Category", y="Spent")
    else:
        st.info("Nothing spent this month yet.")


# =============================================================================
# EXPENSES
# =============================================================================

def _source_options(components: AppComponents, user_id: str) -> dict[str, tuple]:
    """Label -> (source type, source id) for the payment source picker."""
    overview = run_async(components.balances.overview(user_id))
    options = {f"💵 Cash ({format_inr(overview.cash.balance)})": (PaymentSourceType.CASH, None)}
    for account in overview.bank_accounts:
        options[f"🏦 {account.name} ({format_inr(account.balance)})"] = (PaymentSourceType.BANK, account.id)
    for card in overview.credit_cards:
        options[f"💳 {card.name} (due {format_inr(card.due_amount)})"] = (PaymentSourceType.CREDIT_CARD, card.id)
    return options


def render_expense_form(components: AppComponents, user_id: str, existing=None):
    """Form for a new expense, or for editing `existing`."""
    if existing is None:
        st.title("➕ Add Expense")

    flow = components.expense_flow
    options = _source_options(components, user_id)
    labels = list(options)
    default_index = 0
    if existing is not None:
        for i, label in enumerate(labels):
            if options[label] == (existing.payment_source_type, existing.source.id if existing.payment_source_type is not PaymentSourceType.CASH else None):
                default_index = i

    key = existing.id if existing is not None else "new"
    with st.form(f"expense_form_{key}", clear_on_submit=existing is None):
        col1, col2 = st.columns(2)
        with col1:
            amount = st.number_input(
                "Amount",
                min_value=0.0,
                step=10.0,
                value=float(existing.amount) if existing else 0.0,
                format="%.2f",
            )
            category = st.selectbox(
                "Category",
                options=list(ExpenseCategory),
                index=list(ExpenseCategory).index(existing.category) if existing else 0,
                format_func=lambda c: c.value,
            )
            currency = st.selectbox(
                "Currency",
                options=list(Currency),
                index=list(Currency).index(existing.currency if existing else Currency(get_settings().app.default_currency)),
                format_func=lambda c: f"{c.symbol} {c.value}",
            )
        with col2:
            source_label = st.selectbox("Paid from", options=labels, index=default_index)
            expense_date = st.date_input("Date", value=existing.day if existing else date.today())
            purpose = st.text_input("Purpose", value=existing.purpose if existing else "")

        files = st.file_uploader(
            "Receipts (optional)",
            type=["jpg", "jpeg", "png", "gif", "webp", "mp4", "mov"],
            accept_multiple_files=True,
        )
        submitted = st.form_submit_button("💾 Save Expense", type="primary")

    if not submitted:
        return

    if amount <= 0 or not purpose.strip():
        st.error("Please enter an amount and what the expense was for.")
        return

    attachments = list(existing.attachments) if existing else []
    for uploaded in files or []:
        try:
            attachments.append(run_async(flow.upload_attachment(
                user_id, uploaded.getvalue(), uploaded.name, uploaded.type,
            )))
        except AttachmentError as e:
            st.error(f"❌ {uploaded.name}: {e}")
            return

    source_type, source_id = options[source_label]
    try:
        draft = ExpenseDraft(
            amount=to_amount(amount),
            currency=currency,
            category=category,
            purpose=purpose,
            payment_source_type=source_type,
            payment_source_id=source_id,
            date=datetime.combine(expense_date, time(12, 0)),
            attachments=attachments,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        st.error(f"❌ {problems}")
        return

    try:
        expense, result = run_async(flow.save_expense(
            user_id, draft, expense_id=existing.id if existing else None,
        ))
    except LedgerError as e:
        st.error(f"❌ {e}")
        return

    if expense is None:
        st.error(flow.validate(draft)[1])
        return
    if result.warnings:
        st.warning("\n".join(result.warnings))
    st.success(f"✅ Saved {format_inr(expense.amount)} for {expense.purpose}")


def render_expenses_page(components: AppComponents, user_id: str):
    st.title("📋 Expenses")

    col1, col2, col3 = st.columns(3)
    with col1:
        category = st.selectbox(
            "Filter by Category",
            options=[None] + list(ExpenseCategory),
            format_func=lambda x: "All Categories" if x is None else x.value,
        )
    with col2:
        source_type = st.selectbox(
            "Filter by Source",
            options=[None] + list(PaymentSourceType),
            format_func=lambda x: "All Sources" if x is None else x.label,
        )
    with col3:
        date_range = st.date_input(
            "Date Range",
            value=(date.today() - timedelta(days=30), date.today()),
        )

    date_from, date_to = (date_range + (None, None))[:2] if isinstance(date_range, tuple) else (None, None)
    expenses = run_async(components.expenses.list(user_id, ExpenseFilter(
        category=category,
        source_type=source_type,
        date_from=date_from,
        date_to=date_to,
        limit=500,
    )))

    st.caption(f"{len(expenses)} expenses {describe_range(date_from, date_to)}")
    st.markdown("---")

    for expense in expenses:
        with st.expander(
            f"{expense.day.strftime('%d %b')} · {expense.currency.symbol}{expense.amount:,.2f} · "
            f"{expense.category.value} · {expense.purpose}"
        ):
            st.markdown(f"Paid from **{expense.payment_source_type.label}**")
            if expense.attachments:
                st.image([thumbnail_url(url) for url in expense.attachments if not url.endswith((".mp4", ".mov"))])

            render_expense_form(components, user_id, existing=expense)

            if st.button("🗑️ Delete", key=f"delete_{expense.id}"):
                try:
                    run_async(components.expense_flow.delete_expense(user_id, expense.id))
                    st.success("Deleted. The amount was returned to its source.")
                    st.rerun()
                except LedgerError as e:
                    st.error(f"❌ {e}")


# =============================================================================
# WALLETS
# =============================================================================

def render_wallets_page(components: AppComponents, user_id: str):
    st.title("🏦 Wallets")
    balances = components.balances
    overview = run_async(balances.overview(user_id))

    st.markdown("### 💵 Cash")
    with st.form("cash_form"):
        cash = st.number_input("Cash in hand", min_value=0.0, value=float(overview.cash.balance), format="%.2f")
        if st.form_submit_button("Update cash"):
            run_async(balances.set_cash_balance(user_id, to_amount(cash)))
            st.rerun()

    st.markdown("### 🏦 Bank Accounts")
    for account in overview.bank_accounts:
        col1, col2 = st.columns([4, 1])
        col1.markdown(f"**{account.name}**: {format_inr(account.balance)}")
        if col2.button("Remove", key=f"bank_{account.id}"):
            try:
                run_async(balances.delete_bank_account(user_id, account.id))
                st.rerun()
            except LedgerError as e:
                st.error(f"❌ {e}")
    with st.form("bank_form", clear_on_submit=True):
        name = st.text_input("Account name")
        opening = st.number_input("Current balance", min_value=0.0, format="%.2f")
        if st.form_submit_button("➕ Add bank account") and name.strip():
            run_async(balances.add_bank_account(user_id, name, to_amount(opening)))
            st.rerun()

    st.markdown("### 💳 Credit Cards")
    for card in overview.credit_cards:
        col1, col2 = st.columns([4, 1])
        due_day = f" · bill due on day {card.bill_due_day}" if card.bill_due_day else ""
        col1.markdown(f"**{card.name}**: due {format_inr(card.due_amount)}{due_day}")
        if col2.button("Remove", key=f"card_{card.id}"):
            try:
                run_async(balances.delete_credit_card(user_id, card.id))
                st.rerun()
            except LedgerError as e:
                st.error(f"❌ {e}")
    with st.form("card_form", clear_on_submit=True):
        name = st.text_input("Card name")
        due = st.number_input("Current due amount", min_value=0.0, format="%.2f")
        bill_day = st.number_input("Bill due day (0 for none)", min_value=0, max_value=31, value=0)
        if st.form_submit_button("➕ Add credit card") and name.strip():
            run_async(balances.add_credit_card(
                user_id, name, to_amount(due), bill_due_day=int(bill_day) or None,
            ))
            st.rerun()


# =============================================================================
# OBLIGATIONS
# =============================================================================

def render_obligations_page(components: AppComponents, user_id: str):
    st.title("🤝 Advances & Refunds")
    tracker = components.obligations
    advances_tab, refunds_tab = st.tabs(["Money I lent", "Money owed to me"])

    with advances_tab:
        totals = run_async(tracker.advance_totals(user_id))
        col1, col2 = st.columns(2)
        col1.metric(f"Outstanding ({totals.outstanding_count})", format_inr(totals.total_outstanding))
        col2.metric(f"Returned ({totals.returned_count})", format_inr(totals.total_returned))

        with st.form("advance_form", clear_on_submit=True):
            name = st.text_input("Given to")
            amount = st.number_input("Amount", min_value=0.0, format="%.2f", key="advance_amount")
            purpose = st.text_input("Purpose", key="advance_purpose")
            if st.form_submit_button("➕ Add advance") and name.strip() and amount > 0:
                run_async(tracker.add_advance(user_id, AdvanceDraft(
                    name=name, amount=to_amount(amount), purpose=purpose,
                )))
                st.rerun()

        for advance in run_async(tracker.list_advances(user_id)):
            col1, col2, col3 = st.columns([4, 1, 1])
            icon = "⏳" if advance.status == AdvanceStatus.OUTSTANDING else "✅"
            col1.markdown(f"{icon} **{advance.name}** · {format_inr(advance.amount)} · {advance.purpose}")
            if advance.status == AdvanceStatus.OUTSTANDING and col2.button("Returned", key=f"ret_{advance.id}"):
                run_async(tracker.mark_returned(user_id, advance.id))
                st.rerun()
            if col3.button("Delete", key=f"del_adv_{advance.id}"):
                run_async(tracker.delete_advance(user_id, advance.id))
                st.rerun()

    with refunds_tab:
        totals = run_async(tracker.refund_totals(user_id))
        col1, col2 = st.columns(2)
        col1.metric(f"Pending ({totals.pending_count})", format_inr(totals.total_pending))
        col2.metric(f"Received ({totals.received_count})", format_inr(totals.total_received))

        with st.form("refund_form", clear_on_submit=True):
            name = st.text_input("Owed by")
            amount = st.number_input("Amount", min_value=0.0, format="%.2f", key="refund_amount")
            purpose = st.text_input("Purpose", key="refund_purpose")
            contact = st.text_input("Contact number (optional)")
            if st.form_submit_button("➕ Add refund") and name.strip() and amount > 0:
                run_async(tracker.add_refund(user_id, RefundDraft(
                    name=name, amount=to_amount(amount), purpose=purpose,
                    contact_number=contact or None,
                )))
                st.rerun()

        for refund in run_async(tracker.list_refunds(user_id)):
            col1, col2, col3 = st.columns([4, 1, 1])
            icon = "⏳" if refund.status == RefundStatus.PENDING else "✅"
            contact = f" · 📞 {refund.contact_number}" if refund.contact_number else ""
            col1.markdown(f"{icon} **{refund.name}** · {format_inr(refund.amount)} · {refund.purpose}{contact}")
            if refund.status == RefundStatus.PENDING and col2.button("Received", key=f"rec_{refund.id}"):
                run_async(tracker.mark_received(user_id, refund.id))
                st.rerun()
            if col3.button("Delete", key=f"del_ref_{refund.id}"):
                run_async(tracker.delete_refund(user_id, refund.id))
                st.rerun()


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")
    status = validate_all_settings()

    services = [
        ("Cloudinary (Attachments)", "cloudinary"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    app = get_settings().app
    st.markdown(f"**Storage backend:** `{app.storage_backend}`")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
