"""
Streamlit Frontend for Controle Financeiro

The pages people use every day: sign in, record income and expenses,
review and correct them, and look at the month as totals, a chart
and a PDF.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Conditional fields follow the form state machine, never ad hoc checks
3. Clear error messages in simple language
4. Visual feedback for every write
5. Every page shows only the signed-in user's data

Pages map to routes through the `page` query parameter, so a link to
?page=/relatorios opens the report directly.
"""

import asyncio
import json
import time
from datetime import date

import streamlit as st
import streamlit.components.v1 as components_v1

from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.formatting import (
    EXPENSE_KIND_LABELS,
    KIND_LABELS,
    STATUS_LABELS,
    format_currency,
    label,
)
from finance_tracker.forms.state import (
    EntryFormState,
    FormEvent,
    reset_edit_state,
    transition,
)
from finance_tracker.flows import (
    AppComponents,
    DELETE_SUCCESS_MESSAGE,
    FlowError,
    OWNERSHIP_MESSAGE,
    create_app_components,
    movement_card_html,
    current_period,
)
from finance_tracker.log import configure_logging
from finance_tracker.models.movement import (
    ExpenseKind,
    Movement,
    MovementKind,
    PaymentStatus,
)
from finance_tracker.reports import (
    EMPTY_REPORT_MESSAGE,
    KindFilter,
    ReportFilters,
    StatusFilter,
)
from finance_tracker.services.auth import (
    AuthError,
    AuthSession,
    NotAuthenticatedError,
)
from finance_tracker.services.storage import OwnershipError


# Page configuration
st.set_page_config(
    page_title="Controle Financeiro",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for the card view and totals
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .movement-card {
        padding: 12px 16px;
        border-radius: 10px;
        border-left: 5px solid #004085;
        background-color: #f4f6f8;
        margin: 8px 0;
    }
    .movement-card.receita {
        border-left-color: #4CAF50;
    }
    .movement-card.despesa {
        border-left-color: #F44336;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)

ENTRY_WIDGET_KEYS = [
    "entry_kind",
    "entry_expense_kind",
    "entry_months",
    "entry_amount",
    "entry_date",
    "entry_description",
]

MONTH_NAMES = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


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
    configure_logging(get_settings().app.log_level)
    return create_app_components()


def _forget_movements(_user=None) -> None:
    """Drop the cached listing so the next page load re-runs the query."""
    st.session_state.movements = None
    st.session_state.movements_uid = None
    st.session_state.report_pdf = None


def get_session(components: AppComponents) -> AuthSession:
    """One AuthSession per browser session, restored from its own cookie on first use."""
    if "auth_session" not in st.session_state:
        session = components.new_session()
        session.subscribe(_forget_movements)
        token = None
        if components.persistence is not None:
            token = st.context.cookies.get(components.persistence.cookie_name)
        run_async(session.restore(token))
        st.session_state.auth_session = session
    return st.session_state.auth_session


def sync_session_cookie(components: AppComponents, session: AuthSession) -> None:
    """Write or remove this browser's session cookie after sign-in, sign-out or restore."""
    update = session.pop_cookie_update()
    if update is None or components.persistence is None:
        return
    assignment = components.persistence.cookie_assignment(update.value)
    components_v1.html(
        f"<script>window.parent.document.cookie = {json.dumps(assignment)};</script>",
        height=0,
    )


def notify(message: str, seconds: float, kind: str = "success") -> None:
    """Show a message and clear it after `seconds`."""
    placeholder = st.empty()
    getattr(placeholder, kind)(message)
    time.sleep(seconds)
    placeholder.empty()


def load_movements(components: AppComponents, session: AuthSession) -> list[Movement]:
    """The user's movements, fetched again only when the user changes."""
    user = session.require_user()
    if st.session_state.get("movements_uid") != user.uid or st.session_state.get("movements") is None:
        st.session_state.movements = run_async(components.listing.load(user))
        st.session_state.movements_uid = user.uid
    return st.session_state.movements


# =============================================================================
# ROUTES
# =============================================================================

def main():
    """Main application entry point."""
    components = get_components()
    session = get_session(components)
    settings = get_settings().app
    sync_session_cookie(components, session)

    pages = {
        "/": ("🏠 Início", render_dashboard_page),
        "/cadastro": ("➕ Cadastro de Movimentação", render_entry_page),
        "/movimentacao": ("📋 Ver Movimentação", render_listing_page),
        "/relatorios": ("📊 Relatórios", render_report_page),
        "/perfil": ("👤 Perfil", render_profile_page),
    }
    public_pages = {
        "/login": ("🔑 Entrar", render_login_page),
        "/registro": ("📝 Criar conta", render_register_page),
    }
    visible = pages if session.is_authenticated else public_pages

    # Sidebar navigation
    st.sidebar.title("💰 Controle Financeiro")
    st.sidebar.markdown("---")

    requested = st.query_params.get("page", "/")
    if requested not in visible:
        requested = next(iter(visible))
    routes = list(visible)
    route = st.sidebar.radio(
        "Navegar para:",
        routes,
        index=routes.index(requested),
        format_func=lambda r: visible[r][0],
    )
    st.query_params["page"] = route

    st.sidebar.markdown("---")
    if session.is_authenticated:
        user = session.user
        st.sidebar.markdown(f"**{user.display_name or user.email}**")
        if st.sidebar.button("Sair"):
            run_async(session.sign_out())
            st.query_params["page"] = "/login"
            st.rerun()

    if components.degraded:
        st.sidebar.warning(
            "Armazenamento remoto não configurado. Os dados ficam apenas nesta sessão."
        )
    with st.sidebar.expander("⚙️ Configuração"):
        render_settings_panel()

    _, renderer = visible[route]
    renderer(components, session, settings)


def render_settings_panel():
    """Which settings groups are configured."""
    status = validate_all_settings()
    services = [
        ("Firebase (Autenticação e Firestore)", "firebase"),
        ("Google Sheets (Armazenamento)", "google_sheets"),
        ("Aplicação", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Não configurado')}")


# =============================================================================
# AUTHENTICATION
# =============================================================================

def render_login_page(components, session, settings):
    st.title("🔑 Entrar")
    with st.form("login_form"):
        email = st.text_input("E-mail")
        password = st.text_input("Senha", type="password")
        remember = False
        if session.can_remember:
            remember = st.checkbox(
                "Manter conectado neste navegador",
                value=False,
                help="Não use em computadores compartilhados.",
            )
        submitted = st.form_submit_button("Entrar", type="primary")

    if submitted:
        try:
            run_async(session.sign_in(email, password, remember=remember))
        except AuthError as e:
            notify(e.user_message, settings.error_dismiss_seconds, kind="error")
        else:
            st.query_params["page"] = "/"
            st.rerun()

    st.markdown("Não tem conta? Escolha **Criar conta** no menu.")


def render_register_page(components, session, settings):
    st.title("📝 Criar conta")
    with st.form("register_form"):
        name = st.text_input("Nome")
        email = st.text_input("E-mail")
        password = st.text_input("Senha", type="password", help="Pelo menos 6 caracteres")
        submitted = st.form_submit_button("Registrar", type="primary")

    if submitted:
        if not name.strip() or not email.strip() or not password:
            notify("Todos os campos são obrigatórios.", settings.error_dismiss_seconds, kind="error")
            return
        try:
            run_async(session.sign_up(name, email, password))
        except AuthError as e:
            notify(e.user_message, settings.error_dismiss_seconds, kind="error")
        else:
            st.query_params["page"] = "/"
            st.rerun()


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(components, session, settings):
    st.title("🏠 Início")
    try:
        summary = run_async(components.dashboard.load(session))
    except NotAuthenticatedError as e:
        st.info(e.user_message)
        return
    except FlowError as e:
        st.error(e.user_message)
        return

    if summary is None:
        st.markdown("Carregando...")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Receitas", format_currency(summary.total_income))
    col2.metric("Despesas", format_currency(summary.total_expenses))
    col3.metric("Saldo", format_currency(summary.balance))

    col4, col5 = st.columns(2)
    col4.metric("Despesas fixas", summary.fixed_expense_count)
    col5.metric("Despesas variáveis", summary.variable_expense_count)


# =============================================================================
# MOVEMENT ENTRY
# =============================================================================

def _reset_entry_form() -> None:
    for key in ENTRY_WIDGET_KEYS:
        st.session_state.pop(key, None)
    st.session_state.entry_state = EntryFormState()


def render_expense_controls(state: EntryFormState, key_prefix: str) -> EntryFormState:
    """Expense kind, months and status controls driven by the form state."""
    if not state.shows_expense_kind:
        return state

    expense_options = [None, ExpenseKind.FIXED, ExpenseKind.VARIABLE]
    expense_kind = st.selectbox(
        "Tipo de despesa",
        expense_options,
        index=expense_options.index(state.expense_kind),
        format_func=lambda v: "Selecione" if v is None else label(v, EXPENSE_KIND_LABELS),
        key=f"{key_prefix}_expense_kind",
    )
    if expense_kind != state.expense_kind:
        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, expense_kind)

    if state.shows_months:
        months = st.number_input(
            "Quantidade de meses",
            min_value=1,
            max_value=120,
            value=state.months_count,
            step=1,
            key=f"{key_prefix}_months",
        )
        state = transition(state, FormEvent.SET_MONTHS_COUNT, months)

    if state.shows_payment_status:
        status_options = [PaymentStatus.PENDING, PaymentStatus.PAID]
        status = st.radio(
            "Situação",
            status_options,
            index=status_options.index(state.payment_status),
            format_func=lambda v: label(v, STATUS_LABELS),
            horizontal=True,
            # A new key per expense kind restores the kind's default status
            key=f"{key_prefix}_status_{state.expense_kind.value}",
        )
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, status)
    elif state.status_locked:
        st.caption("Despesas variáveis são registradas como pagas.")

    return state


def render_entry_page(components, session, settings):
    st.title("➕ Cadastro de Movimentação")

    state = st.session_state.get("entry_state") or EntryFormState()

    kind_options = [MovementKind.INCOME, MovementKind.EXPENSE]
    kind = st.selectbox(
        "Tipo",
        kind_options,
        index=kind_options.index(state.kind),
        format_func=lambda v: label(v, KIND_LABELS),
        key="entry_kind",
    )
    if kind != state.kind:
        state = transition(state, FormEvent.SELECT_KIND, kind)

    state = render_expense_controls(state, "entry")
    st.session_state.entry_state = state

    amount = st.number_input("Valor (R$)", min_value=0.0, step=0.01, format="%.2f", key="entry_amount")
    movement_date = st.date_input("Data", value=None, format="DD/MM/YYYY", key="entry_date")
    description = st.text_area("Descrição", max_chars=500, key="entry_description")

    if st.button("Registrar", type="primary"):
        with st.spinner("Registrando..."):
            result = run_async(components.entry.submit(
                session.user, state, amount, movement_date, description,
            ))

        if not result.success:
            st.error(result.message)
            return

        if st.session_state.get("movements") is not None:
            st.session_state.movements = [result.movement] + st.session_state.movements
        st.session_state.report_pdf = None
        notify(result.message, settings.notification_seconds)
        _reset_entry_form()
        st.rerun()


# =============================================================================
# LISTING
# =============================================================================

def _replace_local(movement: Movement) -> None:
    st.session_state.movements = [
        movement if m.id == movement.id else m
        for m in st.session_state.movements
    ]


def edit_key_prefix(movement: Movement) -> str:
    return f"edit_{movement.id}"


@st.dialog("Editar movimentação")
def edit_dialog(components: AppComponents, session: AuthSession, movement: Movement):
    key_prefix = edit_key_prefix(movement)
    state_key = f"{key_prefix}_state"
    if state_key not in st.session_state:
        reset_edit_state(st.session_state, key_prefix, movement)

    st.markdown(f"**Tipo:** {label(movement.kind, KIND_LABELS)}")
    description = st.text_input("Descrição", value=movement.description, key=f"{key_prefix}_description")
    amount = st.number_input(
        "Valor (R$)",
        min_value=0.0,
        value=float(movement.amount),
        step=0.01,
        format="%.2f",
        key=f"{key_prefix}_amount",
    )
    state = render_expense_controls(st.session_state[state_key], key_prefix)
    st.session_state[state_key] = state

    if st.button("Salvar", type="primary"):
        result = run_async(components.listing.update_from_form(
            session.user, movement, state, amount, description,
        ))
        if not result.success:
            st.error(result.message)
            return
        _replace_local(result.movement)
        st.session_state.pop(state_key, None)
        st.session_state.report_pdf = None
        st.rerun()


@st.dialog("Excluir movimentação")
def delete_dialog(components: AppComponents, session: AuthSession, movement: Movement):
    st.markdown(
        f"Excluir **{movement.description}** ({format_currency(movement.amount)})? "
        "Esta ação não pode ser desfeita."
    )
    if st.button("Excluir", type="primary"):
        try:
            run_async(components.listing.delete(session.user, movement))
        except OwnershipError:
            st.error(OWNERSHIP_MESSAGE)
            return
        except FlowError as e:
            st.error(e.user_message)
            return

        st.session_state.movements = [
            m for m in st.session_state.movements if m.id != movement.id
        ]
        st.session_state.report_pdf = None
        st.session_state.flash = DELETE_SUCCESS_MESSAGE
        st.rerun()


def render_cards(rows: list[dict]) -> None:
    for row in rows:
        st.markdown(movement_card_html(row), unsafe_allow_html=True)


def render_listing_page(components, session, settings):
    st.title("📋 Movimentações")

    flash = st.session_state.pop("flash", None)
    if flash:
        notify(flash, settings.notification_seconds)

    try:
        movements = load_movements(components, session)
    except NotAuthenticatedError as e:
        st.info(e.user_message)
        return
    except FlowError as e:
        st.error(e.user_message)
        return

    if not movements:
        st.info("Nenhuma movimentação registrada ainda.")
        return

    listing = components.listing
    as_cards = st.toggle("Visualizar como cartões", value=False)
    if as_cards:
        render_cards(listing.to_display_rows(movements))
    else:
        st.dataframe(listing.to_dataframe(movements), use_container_width=True, hide_index=True)

    st.download_button(
        "⬇️ Baixar CSV",
        data=listing.to_csv(movements),
        file_name="movimentacoes.csv",
        mime="text/csv",
    )

    st.markdown("---")
    by_id = {m.id: m for m in movements}
    selected_id = st.selectbox(
        "Selecionar movimentação",
        list(by_id),
        format_func=lambda i: (
            f"{by_id[i].date.strftime('%d/%m/%Y')} - {by_id[i].description} "
            f"({format_currency(by_id[i].amount)})"
        ),
    )
    selected = by_id[selected_id]

    col1, col2 = st.columns(2)
    if col1.button("✏️ Editar"):
        reset_edit_state(st.session_state, edit_key_prefix(selected), selected)
        edit_dialog(components, session, selected)
    if col2.button("🗑️ Excluir"):
        delete_dialog(components, session, selected)


# =============================================================================
# REPORT
# =============================================================================

def render_report_page(components, session, settings):
    st.title("📊 Relatório Financeiro")

    month, year = current_period()
    col1, col2, col3, col4 = st.columns(4)
    kind = col1.selectbox(
        "Tipo",
        list(KindFilter),
        format_func=lambda v: {"todos": "Todos", "receita": "Receitas", "despesa": "Despesas"}[v.value],
    )
    status = col2.selectbox(
        "Situação",
        list(StatusFilter),
        index=list(StatusFilter).index(StatusFilter.ALL),
        format_func=lambda v: {"todos": "Todas", "pago": "Pago", "pendente": "Pendente"}[v.value],
    )
    month = col3.selectbox(
        "Mês",
        list(range(1, 13)),
        index=month - 1,
        format_func=lambda m: MONTH_NAMES[m - 1],
    )
    year = col4.number_input("Ano", min_value=1900, max_value=9999, value=year, step=1)

    filters = ReportFilters(kind=kind, status=status, month=month, year=int(year))
    try:
        report = run_async(components.report.build(session.user, filters))
    except NotAuthenticatedError as e:
        st.info(e.user_message)
        return
    except FlowError as e:
        st.error(e.user_message)
        return

    if report.is_empty:
        st.info(EMPTY_REPORT_MESSAGE)
    else:
        st.plotly_chart(
            components.report.chart(report),
            use_container_width=True,
            config={"displayModeBar": False},
        )

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total de Receitas", format_currency(report.total_income))
    col2.metric("Total de Despesas", format_currency(report.total_expenses))
    col3.metric("Total Pendente", format_currency(report.total_pending))
    col4.metric("Saldo", format_currency(report.balance))

    st.markdown("---")
    if st.button("📄 Exportar para PDF", type="primary"):
        with st.spinner("Gerando PDF..."):
            st.session_state.report_pdf = components.report.export(report)

    exported = st.session_state.get("report_pdf")
    if exported and exported[0] == report.file_name:
        file_name, content = exported
        st.download_button(
            "⬇️ Baixar PDF",
            data=content,
            file_name=file_name,
            mime="application/pdf",
        )


# =============================================================================
# PROFILE
# =============================================================================

def render_profile_page(components, session, settings):
    st.title("👤 Perfil")
    try:
        profile = run_async(components.profile.load(session.user))
    except NotAuthenticatedError as e:
        st.info(e.user_message)
        return
    except FlowError as e:
        st.error(e.user_message)
        return

    st.markdown("### Informações pessoais")
    st.markdown(f"**Nome:** {profile.name}")
    st.markdown(f"**E-mail:** {profile.email}")

    st.markdown("### Resumo financeiro")
    col1, col2, col3 = st.columns(3)
    col1.metric("Receitas", format_currency(profile.summary.total_income))
    col2.metric("Despesas", format_currency(profile.summary.total_expenses))
    col3.metric("Saldo", format_currency(profile.summary.balance))
    st.caption(f"Atualizado em {date.today().strftime('%d/%m/%Y')}")


if __name__ == "__main__":
    main()
