"""
Streamlit Frontend for Ledgerbook

This is the user interface small-business owners use day to day to
record sales and purchases, keep their stock list current and check
the health of their books.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Figures are recomputed from the ledger on every render
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

All changes go through the orchestrator flows:
- Entry forms build drafts, the flows validate and store them
- Stock is reconciled by the ledger, never edited by hand here
- Risk analysis only runs when the user asks for it
"""

import asyncio
from decimal import Decimal
from typing import Optional

import streamlit as st

from ledgerbook.agents import INSUFFICIENT_DATA_ADVICE
from ledgerbook.config import get_settings, validate_all_settings
from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    TransactionDraft,
    TransactionType,
)
from ledgerbook.models.risk import AnalysisState, RiskSeverity
from ledgerbook.orchestrator import (
    AnalysisInProgressError,
    AnalysisStatus,
    AppComponents,
    RecommendationStatus,
    create_app_components,
)
from ledgerbook.reports import (
    chart_series,
    contacts_for_type,
    low_stock_items,
    profit_and_loss,
    recent_transactions,
    search_transactions,
    summarize,
    total_stock_value,
)
from ledgerbook.services.storage import InMemoryStorage
from ledgerbook.validation import (
    LedgerValidationError,
    get_user_friendly_summary,
)


# Page configuration
st.set_page_config(
    page_title="Ledgerbook",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

PAGES = [
    "📊 Dashboard",
    "🧾 Transactions",
    "📦 Master Data",
    "🛡️ Risk & Analysis",
    "📑 Reports",
    "⚙️ Settings",
]

SEVERITY_ICONS = {
    RiskSeverity.HIGH: "🔴",
    RiskSeverity.MEDIUM: "🟡",
    RiskSeverity.LOW: "🟢",
}


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
        return create_app_components()
    except Exception as e:
        st.error(f"Failed to open the ledger, changes will not be saved: {e}")
        components = create_app_components(storage=InMemoryStorage())
        components.audit_logger.log_error(
            error_type="storage_unavailable",
            error_message=str(e),
            details={"fallback": "memory"},
        )
        return components


def money(value: Decimal) -> str:
    return f"{value:,.2f}"


def to_decimal(value: Optional[float]) -> Optional[Decimal]:
    """number_input returns floats; keep at most 2 decimal places."""
    if value is None:
        return None
    return Decimal(str(round(value, 2)))


def show_issues(result) -> None:
    if result.issues:
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Please Review</h4>
            <p>{get_user_friendly_summary(result).replace(chr(10), '<br>')}</p>
        </div>
        """, unsafe_allow_html=True)


def main():
    """Main application entry point."""
    components = get_components()

    # Sidebar navigation
    st.sidebar.title("📒 Ledgerbook")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        PAGES,
        index=0,
    )

    # A pending analysis does not survive leaving its page
    if page != "🛡️ Risk & Analysis":
        components.risk_flow.tracker.abandon()

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add your products and contacts
        2. Record every sale and purchase
        3. Check the dashboard and reports
        4. Run a risk analysis now and then
        """
    )

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(components)
    elif page == "🧾 Transactions":
        render_transactions_page(components)
    elif page == "📦 Master Data":
        render_master_data_page(components)
    elif page == "🛡️ Risk & Analysis":
        render_risk_page(components)
    elif page == "📑 Reports":
        render_reports_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def render_dashboard_page(components: AppComponents):
    """Render the dashboard."""
    st.title("📊 Dashboard")

    store = components.store
    settings = get_settings().app
    transactions = store.transactions
    products = store.products
    summary = summarize(transactions)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", money(summary.total_income))
    col2.metric("Total Expense", money(summary.total_expense))
    col3.metric("Net Profit", money(summary.net_profit))
    col4.metric("Stock Value", money(total_stock_value(products)))

    st.markdown("---")
    st.subheader("Recent Activity")
    series = chart_series(transactions, limit=settings.chart_transaction_count)
    if series:
        st.bar_chart(series, x="index", y="amount", color="type")
    else:
        st.info("No transactions yet. Record your first sale or purchase.")

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("⚠️ Low Stock")
        low = low_stock_items(products, settings.low_stock_threshold)
        if not low:
            st.success("All products are well stocked.")
        for product in low:
            st.markdown(f"- **{product.name}**: {product.stock} {product.unit}")

    with col2:
        st.subheader("🕒 Latest Transactions")
        for t in recent_transactions(transactions, limit=5):
            sign = "+" if t.type == TransactionType.INCOME else "-"
            st.markdown(
                f"- {t.date.strftime('%d %b %Y')} · {t.description} · "
                f"**{sign}{money(t.amount)}**"
            )

    risk = store.risk_assessment
    if risk:
        st.markdown("---")
        st.metric("Last Risk Score", f"{risk.overall_score}/100")


def render_transactions_page(components: AppComponents):
    """Render the transaction entry form and the ledger."""
    st.title("🧾 Transactions")

    store = components.store
    products = store.products

    transaction_type = st.radio(
        "Type",
        list(TransactionType),
        format_func=lambda t: "Income (money in)" if t == TransactionType.INCOME else "Expense (money out)",
        horizontal=True,
    )
    contacts = contacts_for_type(store.contacts, transaction_type)

    with st.form("transaction_form", clear_on_submit=True):
        col1, col2 = st.columns(2)

        with col1:
            product = st.selectbox(
                "Product (optional)",
                options=[None] + products,
                format_func=lambda p: "(none)" if p is None else f"{p.name} (stock {p.stock})",
            )
            quantity = st.number_input(
                "Quantity",
                min_value=0.0,
                value=1.0,
                step=1.0,
                help="Only used when a product is selected",
            )
            amount = st.number_input(
                "Amount",
                min_value=0.0,
                value=None,
                step=0.01,
                format="%.2f",
                help="Leave blank to compute it from the product price or cost",
            )

        with col2:
            contact = st.selectbox(
                "Customer" if transaction_type == TransactionType.INCOME else "Supplier",
                options=[None] + contacts,
                format_func=lambda c: "(none)" if c is None else c.name,
            )
            category = st.selectbox(
                "Category",
                options=[None] + list(Category),
                format_func=lambda c: "Automatic" if c is None else c.label,
            )
            description = st.text_input(
                "Description",
                help="Leave blank for a product to describe it automatically",
            )

        submitted = st.form_submit_button("💾 Save Transaction", type="primary")

    if submitted:
        draft = TransactionDraft(
            type=transaction_type,
            description=description,
            amount=to_decimal(amount),
            category=category,
            contact_id=contact.id if contact else None,
            product_id=product.id if product else None,
            quantity=to_decimal(quantity) if product else None,
        )
        try:
            transaction, result = components.entry_flow.record(draft)
            st.success(f"Saved: {transaction.description} ({money(transaction.amount)})")
            show_issues(result)
        except LedgerValidationError as e:
            st.markdown(f"""
            <div class="error-box">
                <h4>❌ Not Saved</h4>
                <p>{get_user_friendly_summary(e.result).replace(chr(10), '<br>')}</p>
            </div>
            """, unsafe_allow_html=True)

    st.markdown("---")
    st.subheader("Ledger")

    term = st.text_input("🔍 Search", placeholder="Description, category or contact")
    results = search_transactions(store.transactions, term)
    if not results:
        st.info("No transactions found.")

    for t in results:
        col1, col2, col3, col4 = st.columns([2, 4, 2, 1])
        col1.write(t.date.strftime("%d %b %Y"))
        details = t.description
        if t.contact_name:
            details += f" · {t.contact_name}"
        col2.write(f"{details}  \n_{t.category.label}_")
        sign = "+" if t.type == TransactionType.INCOME else "-"
        col3.write(f"**{sign}{money(t.amount)}**")
        if col4.button("🗑️", key=f"delete_tx_{t.id}", help="Delete and restore stock"):
            components.entry_flow.delete(t.id)
            st.rerun()


def render_master_data_page(components: AppComponents):
    """Render products and contacts."""
    st.title("📦 Master Data")

    store = components.store
    flow = components.master_data_flow

    tab_products, tab_contacts = st.tabs(["Products", "Contacts"])

    with tab_products:
        with st.form("product_form", clear_on_submit=True):
            col1, col2 = st.columns(2)
            with col1:
                name = st.text_input("Name *")
                category = st.text_input("Product category")
                unit = st.text_input("Unit", value="Pcs")
            with col2:
                stock = st.number_input("Opening stock", value=0.0, step=1.0)
                cost = st.number_input("Cost per unit", min_value=0.0, step=0.01, format="%.2f")
                price = st.number_input("Selling price per unit", min_value=0.0, step=0.01, format="%.2f")
            submitted = st.form_submit_button("➕ Add Product", type="primary")

        if submitted:
            if not name.strip():
                st.error("Please enter the product name")
            else:
                try:
                    product, result = flow.add_product(Product(
                        name=name,
                        category=category,
                        unit=unit or "Pcs",
                        stock=to_decimal(stock),
                        cost=to_decimal(cost),
                        price=to_decimal(price),
                    ))
                    st.success(f"Added {product.name}")
                    show_issues(result)
                except LedgerValidationError as e:
                    st.error(get_user_friendly_summary(e.result))

        for p in store.products:
            col1, col2, col3, col4 = st.columns([3, 2, 3, 1])
            col1.write(f"**{p.name}**  \n{p.category}")
            col2.write(f"{p.stock} {p.unit}")
            col3.write(f"Cost {money(p.cost)} · Price {money(p.price)}")
            if col4.button("🗑️", key=f"delete_product_{p.id}"):
                flow.delete_product(p.id)
                st.rerun()

    with tab_contacts:
        with st.form("contact_form", clear_on_submit=True):
            name = st.text_input("Name *")
            role = st.selectbox(
                "Role",
                list(ContactRole),
                format_func=lambda r: r.value.title(),
            )
            phone = st.text_input("Phone")
            submitted = st.form_submit_button("➕ Add Contact", type="primary")

        if submitted:
            if not name.strip():
                st.error("Please enter the contact name")
            else:
                try:
                    contact, result = flow.add_contact(Contact(
                        name=name,
                        role=role,
                        phone=phone or None,
                    ))
                    st.success(f"Added {contact.name}")
                    show_issues(result)
                except LedgerValidationError as e:
                    st.error(get_user_friendly_summary(e.result))

        for c in store.contacts:
            col1, col2, col3, col4 = st.columns([3, 2, 3, 1])
            col1.write(f"**{c.name}**")
            col2.write(c.role.value.title())
            col3.write(c.phone or "")
            if col4.button("🗑️", key=f"delete_contact_{c.id}"):
                flow.delete_contact(c.id)
                st.rerun()


def render_risk_page(components: AppComponents):
    """Render the risk analysis page."""
    st.title("🛡️ Risk & Analysis")
    st.markdown("An AI review of your recent transactions and stock levels.")

    risk_flow = components.risk_flow
    tracker = risk_flow.tracker

    if st.button(
        "🔍 Run Risk Analysis",
        type="primary",
        disabled=tracker.is_loading,
    ):
        with st.spinner("Analyzing your books... Please wait."):
            try:
                outcome = run_async(risk_flow.run_analysis())
            except AnalysisInProgressError:
                st.warning("An analysis is already running.")
                outcome = None

        if outcome is not None:
            if outcome.status == AnalysisStatus.SUCCESS:
                st.success(outcome.message)
            elif outcome.status == AnalysisStatus.UNAVAILABLE:
                st.warning(f"🔑 {outcome.message}")
            elif outcome.status == AnalysisStatus.SERVICE_ERROR:
                st.error(f"🌐 {outcome.message}")

    if tracker.state == AnalysisState.ERROR and tracker.error_message:
        st.caption(f"Last attempt: {tracker.error_message}")

    assessment = components.store.risk_assessment
    if assessment is None:
        st.info("No analysis yet. Run one to see your risk score.")
        return

    st.markdown("---")
    col1, col2 = st.columns([1, 3])
    with col1:
        st.markdown(
            f'<div class="big-number">{assessment.overall_score}/100</div>',
            unsafe_allow_html=True,
        )
        st.caption(f"Updated {assessment.last_updated.strftime('%d %b %Y %H:%M')} UTC")
    with col2:
        st.markdown("**General advice**")
        st.write(assessment.general_advice or INSUFFICIENT_DATA_ADVICE)

    st.subheader(f"Anomalies ({len(assessment.anomalies)})")
    if not assessment.anomalies:
        st.success("No anomalies were flagged.")
    for anomaly in assessment.anomalies:
        icon = SEVERITY_ICONS.get(anomaly.severity, "⚪")
        with st.expander(f"{icon} {anomaly.severity.value}: {anomaly.description}"):
            st.markdown(f"**Recommendation:** {anomaly.recommendation}")
            if anomaly.transaction_id:
                st.caption(f"Transaction {anomaly.transaction_id}")


def render_reports_page(components: AppComponents):
    """Render the profit-and-loss statement and recommendations."""
    st.title("📑 Reports")

    tab_pnl, tab_recommendations = st.tabs(["Profit & Loss", "Recommendations"])
    transactions = components.store.transactions

    with tab_pnl:
        statement = profit_and_loss(transactions)

        st.subheader("Income")
        for category, total in statement.income_by_category.items():
            st.markdown(f"- {category.label}: **{money(total)}**")
        st.markdown(f"**Total income: {money(statement.total_income)}**")

        st.subheader("Expenses")
        for category, total in statement.expense_by_category.items():
            st.markdown(f"- {category.label}: **{money(total)}**")
        st.markdown(f"**Total expenses: {money(statement.total_expense)}**")

        st.markdown("---")
        label = "Net Loss" if statement.is_loss else "Net Profit"
        st.markdown(
            f'<div class="big-number">{label}: {money(statement.net_profit)}</div>',
            unsafe_allow_html=True,
        )

    with tab_recommendations:
        if "recommendations" not in st.session_state:
            st.session_state.recommendations = None

        if st.button("💡 Get Recommendations"):
            with st.spinner("Thinking..."):
                st.session_state.recommendations = run_async(
                    components.recommendation_flow.generate()
                )

        outcome = st.session_state.recommendations
        if outcome is None:
            return
        if outcome.status == RecommendationStatus.NO_DATA:
            st.info("Not enough data for recommendations yet. Record some transactions first.")
        elif outcome.status == RecommendationStatus.UNAVAILABLE:
            st.warning("🔑 Recommendations are unavailable. Check that GEMINI_API_KEY is configured.")
        elif outcome.status == RecommendationStatus.EMPTY:
            st.warning("The AI service did not return any recommendations. Please try again.")
        else:
            for line in outcome.lines:
                st.markdown(line)


def render_settings_page(components: AppComponents):
    """Render the settings / status page."""
    st.title("⚙️ Settings")

    st.subheader("Configuration Status")

    status = validate_all_settings()

    for service in ("gemini", "storage", "google_sheets", "app"):
        ok = status.get(service, False)
        icon = "✅" if ok else "❌"
        st.markdown(f"{icon} **{service.replace('_', ' ').title()}**")
        error = status.get(f"{service}_error")
        if error:
            st.caption(error)

    if "storage_backend" in status:
        st.caption(f"Storage backend: {status['storage_backend']}")

    st.markdown("---")
    st.subheader("Recent Activity Log")
    events = components.audit_logger.recent_events(limit=20)
    if not events:
        st.info("No activity recorded yet.")
    for event in events:
        st.markdown(
            f"- `{event.timestamp.strftime('%d %b %H:%M')}` "
            f"{event.description}"
        )


if __name__ == "__main__":
    main()
