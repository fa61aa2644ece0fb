"""
Streamlit Frontend for the Club Dues Ledger

This is the interface the club treasurer uses to record members, tick off
monthly fees and keep the income/expense ledger.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every change goes through the reconciliation engine
3. Clear error messages in simple language
4. Visual feedback for all operations
5. Fee entries created from the payment matrix are read-only in the ledger
"""

import asyncio
from datetime import date
from decimal import Decimal

import pandas as pd
import streamlit as st
from pydantic import ValidationError

from src.agents import ReportKind, report_file_name
from src.audit import create_correlation_id
from src.auth import verify_credentials
from src.engine import LedgerError, ReconciliationEngine
from src.models.club import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    MAX_YEAR,
    MIN_YEAR,
    MONTHS,
    Member,
    MemberInput,
    PaymentStatus,
    TransactionInput,
    TransactionType,
)
from src.orchestrator import ReportFlow, create_app_components
from src.queries import (
    TransactionFilter,
    dashboard_summary,
    filter_members,
    filter_transactions,
    filtered_totals,
    payment_matrix,
    sort_members_by_number,
    transactions_to_rows,
)
from src.validation import LedgerValidator


# Page configuration
st.set_page_config(
    page_title="Club Dues Ledger",
    page_icon="🥋",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
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
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def money(engine: ReconciliationEngine, amount) -> str:
    return f"{engine.settings.currency_symbol} {amount:,.2f}"


def show_save_status(engine: ReconciliationEngine):
    """Warn when the last change could not be written to storage."""
    if not engine.last_save_ok:
        st.warning(
            "The change is kept in this session but could not be saved to "
            "storage. Check the storage settings."
        )


def run_engine(engine: ReconciliationEngine, action, success: str) -> bool:
    """Call an engine operation and report the outcome."""
    try:
        action()
    except LedgerError as e:
        st.error(e.message)
        return False
    st.session_state.flash = success
    return True


def show_input_error(error: ValidationError):
    """Show form values the models refused, without leaving the page."""
    result = LedgerValidator.from_model_error(error)
    st.error(LedgerValidator.get_user_friendly_summary(result))


def main():
    """Main application entry point."""
    if not st.session_state.get("user"):
        render_login_page()
        return

    engine, report_flow, storage = get_components()

    st.sidebar.title(f"🥋 {engine.settings.club_name}")
    st.sidebar.caption(f"Logged in as: {st.session_state.user.display_name}")
    st.sidebar.caption(f"Storage: {storage.backend_name}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "👥 Members", "✅ Payments", "📒 Ledger", "🤖 AI Reports", "📜 Activity"],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("Log out"):
        st.session_state.user = None
        st.rerun()

    flash = st.session_state.pop("flash", None)
    if flash:
        st.success(flash)
    show_save_status(engine)

    if page == "📊 Dashboard":
        render_dashboard_page(engine)
    elif page == "👥 Members":
        render_members_page(engine)
    elif page == "✅ Payments":
        render_payments_page(engine, report_flow)
    elif page == "📒 Ledger":
        render_ledger_page(engine)
    elif page == "🤖 AI Reports":
        render_reports_page(engine, report_flow)
    elif page == "📜 Activity":
        render_activity_page(engine)


def render_login_page():
    """Single-credential login gate."""
    st.title("🥋 Club Dues Ledger")
    with st.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", type="primary")

    if submitted:
        user = verify_credentials(username, password)
        if user is None:
            st.error("Incorrect username or password")
        else:
            st.session_state.user = user
            st.rerun()


def render_dashboard_page(engine: ReconciliationEngine):
    """Headline totals and the monthly income/expense chart."""
    st.title("📊 Dashboard")

    year = st.number_input(
        "Year", min_value=MIN_YEAR, max_value=MAX_YEAR,
        value=date.today().year, step=1, format="%d",
    )
    summary = dashboard_summary(engine.snapshot(), int(year))

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Members", summary.member_count)
    col2.metric("Total income", money(engine, summary.total_income))
    col3.metric("Total expenses", money(engine, summary.total_expense))
    col4.metric("Balance", money(engine, summary.balance))

    chart = pd.DataFrame(
        {
            "Income": [float(m.income) for m in summary.monthly],
            "Expense": [float(m.expense) for m in summary.monthly],
        },
        index=[m.month_name[:3] for m in summary.monthly],
    )
    st.subheader(f"Monthly cash flow {summary.year}")
    st.bar_chart(chart)


def render_members_page(engine: ReconciliationEngine):
    """Member list with add, edit and delete."""
    st.title("👥 Members")

    search = st.text_input("Search", placeholder="Name, member number or phone")
    members = sort_members_by_number(filter_members(engine.members, search))

    if members:
        st.dataframe(
            pd.DataFrame([
                {
                    "No.": m.member_number,
                    "Name": m.name,
                    "IC": m.ic_number,
                    "Phone": m.phone,
                    "Joined": m.join_date.isoformat(),
                }
                for m in members
            ]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No members found.")

    st.markdown("---")
    all_members = sort_members_by_number(engine.members)
    options = [None] + [m.id for m in all_members]
    labels = {m.id: f"#{m.member_number} - {m.name}" for m in all_members}
    selected_id = st.selectbox(
        "Edit member",
        options=options,
        format_func=lambda x: "➕ New member" if x is None else labels[x],
    )
    existing = engine.store.find_member(selected_id) if selected_id else None

    with st.form("member_form", clear_on_submit=existing is None):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name *", value=existing.name if existing else "")
            member_number = st.text_input(
                "Member number *",
                value=existing.member_number if existing else "",
            )
            join_date = st.date_input(
                "Join date",
                value=existing.join_date if existing else date.today(),
            )
        with col2:
            ic_number = st.text_input("IC number", value=existing.ic_number if existing else "")
            phone = st.text_input("Phone", value=existing.phone if existing else "")
        submitted = st.form_submit_button(
            "💾 Save changes" if existing else "➕ Add member",
            type="primary",
        )

    if submitted:
        if not name or not member_number:
            st.error("Please enter the name and member number")
            return
        try:
            data = MemberInput(
                name=name,
                ic_number=ic_number,
                member_number=member_number,
                phone=phone,
                join_date=join_date,
            )
        except ValidationError as e:
            show_input_error(e)
            return
        if existing:
            member = Member(id=existing.id, **data.model_dump())
            ok = run_engine(engine, lambda: engine.update_member(member), f"Updated {name}")
        else:
            ok = run_engine(engine, lambda: engine.add_member(data), f"Added {name}")
        if ok:
            st.rerun()

    if existing:
        st.markdown(f"""
        <div class="warning-box">
            Deleting <strong>{existing.name}</strong> also removes all of their
            payment records and every ledger entry linked to them.
        </div>
        """, unsafe_allow_html=True)
        confirm = st.checkbox("I understand, delete this member")
        if st.button("🗑️ Delete member", disabled=not confirm):
            if run_engine(
                engine,
                lambda: engine.delete_member(existing.id),
                f"Deleted {existing.name}",
            ):
                st.rerun()


def render_payments_page(engine: ReconciliationEngine, report_flow: ReportFlow):
    """Payment matrix: one row per member, one cell per month."""
    st.title("✅ Monthly Payments")

    settings = engine.settings
    today = date.today()

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        year = int(st.number_input(
            "Year", min_value=MIN_YEAR, max_value=MAX_YEAR,
            value=today.year, step=1, format="%d",
        ))
    with col2:
        filter_month = st.selectbox(
            "Month",
            options=list(range(12)),
            index=today.month - 1,
            format_func=lambda i: MONTHS[i],
        )
    with col3:
        status_choice = st.selectbox("Status", ["ALL", "PAID", "UNPAID"])
    with col4:
        edit_mode = st.toggle("Edit mode", value=False)

    rows = payment_matrix(
        engine.members,
        engine.payments,
        year,
        settings.monthly_fee,
        settings.session_target,
        filter_month=filter_month,
        filter_status=None if status_choice == "ALL" else PaymentStatus(status_choice),
    )

    st.caption(
        f"Fee {money(engine, settings.monthly_fee)} per month · "
        f"session target {money(engine, settings.session_target)}"
    )

    if not rows:
        st.info("No members match the filter.")
        return

    header = st.columns([3] + [1] * 12 + [2])
    header[0].markdown("**Member**")
    for idx in range(12):
        label = MONTHS[idx][:3]
        header[idx + 1].markdown(f"**{label}**" if idx == filter_month else label)
    header[13].markdown("**Balance**")

    for row in rows:
        cols = st.columns([3] + [1] * 12 + [2])
        cols[0].markdown(f"#{row.member.member_number} {row.member.name}")
        for cell in row.cells:
            slot = cols[cell.month + 1]
            if cell.before_joining:
                slot.markdown("–")
            elif edit_mode:
                paid = cell.status == PaymentStatus.PAID
                if slot.button(
                    "✅" if paid else "⬜",
                    key=f"toggle-{row.member.id}-{cell.month}-{year}",
                ):
                    status = "unpaid" if paid else "paid"
                    if run_engine(
                        engine,
                        lambda m=row.member.id, mo=cell.month: engine.toggle_payment(m, mo, year),
                        f"{row.member.name}: {MONTHS[cell.month]} marked {status}",
                    ):
                        st.rerun()
            else:
                slot.markdown("✅" if cell.status == PaymentStatus.PAID else "⬜")
        cols[13].markdown(money(engine, row.fees.balance))

    st.markdown("---")
    st.subheader(f"Reminder for {MONTHS[filter_month]}")
    unpaid = [
        r.member for r in rows
        if r.cell(filter_month).status == PaymentStatus.UNPAID
        and not r.cell(filter_month).before_joining
    ]
    if not unpaid:
        st.info("Everyone shown has paid for this month.")
        return

    target = st.selectbox(
        "Member",
        options=unpaid,
        format_func=lambda m: f"#{m.member_number} - {m.name}",
    )
    if st.button("✉️ Draft reminder"):
        with st.spinner("Drafting reminder..."):
            result = run_async(report_flow.generate(
                ReportKind.REMINDER,
                member_name=target.name,
                month=filter_month,
                correlation_id=create_correlation_id(),
            ))
        if not result.success:
            st.caption("AI unavailable, showing the standard reminder.")
        st.text_area("Message", value=result.text, height=160)


def render_ledger_page(engine: ReconciliationEngine):
    """Income/expense ledger with filters, manual entries and CSV export."""
    st.title("📒 Ledger")

    members = sort_members_by_number(engine.members)
    member_labels = {m.id: f"#{m.member_number} - {m.name}" for m in members}

    with st.expander("🔎 Filters", expanded=False):
        col1, col2, col3 = st.columns(3)
        with col1:
            search = st.text_input("Search notes or member no.")
            member_id = st.selectbox(
                "Member",
                options=[None] + [m.id for m in members],
                format_func=lambda x: "All members" if x is None else member_labels[x],
            )
        with col2:
            date_from = st.date_input("From", value=None)
            date_to = st.date_input("To", value=None)
        with col3:
            type_choice = st.selectbox("Type", ["ALL", "IN", "OUT"])
            categories = (
                INCOME_CATEGORIES if type_choice == "IN"
                else EXPENSE_CATEGORIES if type_choice == "OUT"
                else INCOME_CATEGORIES + EXPENSE_CATEGORIES
            )
            category = st.selectbox("Category", ["ALL"] + categories)

    criteria = TransactionFilter(
        search=search,
        date_from=date_from,
        date_to=date_to,
        type=None if type_choice == "ALL" else TransactionType(type_choice),
        category=None if category == "ALL" else category,
        member_id=member_id,
    )
    shown = filter_transactions(engine.transactions, engine.members, criteria)
    totals = filtered_totals(shown)

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(engine, totals.total_income))
    col2.metric("Expenses", money(engine, totals.total_expense))
    col3.metric("Net", money(engine, totals.balance))

    if shown:
        df = pd.DataFrame(transactions_to_rows(shown, engine.members))
        df["Source"] = ["Payment matrix" if t.is_auto_linked else "Manual" for t in shown]
        st.dataframe(df, use_container_width=True, hide_index=True)
        st.download_button(
            "⬇️ Download CSV",
            data=df.drop(columns=["Source"]).to_csv(index=False).encode("utf-8"),
            file_name=f"ledger_{date.today().isoformat()}.csv",
            mime="text/csv",
        )
    else:
        st.info("No transactions match the filter.")

    st.markdown("---")
    st.subheader("➕ New entry")
    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            txn_type = st.radio("Type", ["IN", "OUT"], horizontal=True)
            txn_category = st.selectbox(
                "Category",
                INCOME_CATEGORIES + EXPENSE_CATEGORIES,
            )
            amount = st.number_input("Amount *", min_value=0.0, step=1.0, format="%.2f")
        with col2:
            txn_date = st.date_input("Date", value=date.today())
            related = st.selectbox(
                "Member",
                options=[None] + [m.id for m in members],
                format_func=lambda x: "—" if x is None else member_labels[x],
            )
            related_month = st.selectbox(
                "Fee month",
                options=[None] + list(range(12)),
                format_func=lambda x: "—" if x is None else MONTHS[x],
            )
        description = st.text_input("Description")
        submitted = st.form_submit_button("💾 Save entry", type="primary")

    if submitted:
        try:
            data = TransactionInput(
                date=txn_date,
                type=TransactionType(txn_type),
                category=txn_category,
                amount=Decimal(str(amount)).quantize(Decimal("0.01")),
                description=description,
                related_member_id=related,
                related_month=related_month,
            )
        except ValidationError as e:
            show_input_error(e)
            return
        if run_engine(engine, lambda: engine.add_transaction(data), "Entry saved"):
            st.rerun()

    manual = [t for t in shown if not t.is_auto_linked]
    if manual:
        st.subheader("🗑️ Delete entry")
        st.caption("Fee entries from the payment matrix are removed by unticking the month.")
        to_delete = st.selectbox(
            "Entry",
            options=manual,
            format_func=lambda t: (
                f"{t.date.isoformat()} · {t.type.value} · {t.category} · "
                f"{money(engine, t.amount)} · {t.description}"
            ),
        )
        if st.button("Delete selected entry"):
            if run_engine(engine, lambda: engine.delete_transaction(to_delete.id), "Entry deleted"):
                st.rerun()


def render_reports_page(engine: ReconciliationEngine, report_flow: ReportFlow):
    """AI-written reports from the current ledger."""
    st.title("🤖 AI Reports")

    st.markdown("""
    <div class="info-box">
        Reports are written from the figures in the ledger. They are for
        reading only and never change your records.
    </div>
    """, unsafe_allow_html=True)

    reports = {
        "Financial analysis": ReportKind.FINANCIAL_ANALYSIS,
        "Annual report": ReportKind.ANNUAL,
        "Cash-flow statement": ReportKind.CASH_FLOW,
    }
    choice = st.radio("Report", list(reports), horizontal=True)
    year = None
    if reports[choice] == ReportKind.ANNUAL:
        year = int(st.number_input(
            "Year", min_value=MIN_YEAR, max_value=MAX_YEAR,
            value=date.today().year, step=1, format="%d",
        ))

    if st.button("Generate", type="primary"):
        with st.spinner("Writing report..."):
            result = run_async(report_flow.generate(
                reports[choice],
                year=year,
                correlation_id=create_correlation_id(),
            ))
        st.session_state.last_report = result
        st.session_state.last_report_year = year

    result = st.session_state.get("last_report")
    if result is not None:
        if result.success:
            st.markdown(result.text)
            st.download_button(
                "⬇️ Download report",
                data=result.text.encode("utf-8"),
                file_name=report_file_name(
                    result, st.session_state.get("last_report_year")
                ),
                mime="text/plain",
            )
        else:
            st.error(result.text)


def render_activity_page(engine: ReconciliationEngine):
    """Recent audit events from this session."""
    st.title("📜 Activity")

    events = engine.audit_logger.recent_events
    if not events:
        st.info("No activity yet.")
        return

    st.dataframe(
        pd.DataFrame([
            {
                "Time": e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                "Event": e.event_type.value,
                "Severity": e.severity.value,
                "Description": e.description,
            }
            for e in events
        ]),
        use_container_width=True,
        hide_index=True,
    )


if __name__ == "__main__":
    main()
