import sys
from pathlib import Path

# Garante que o diretório raiz do projeto esteja no path (para rodar de qualquer cwd)
_ROOT = Path(__file__).resolve().parents[0]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging

import streamlit as st

from config.database import init_db, new_session
from config.settings import ConfigError, load_settings
from services.auth_service import AuthError, AuthService, ensure_first_admin
from services.catalog_service import ProductService
from services.permissions import Capability
from services.report_service import ReportService
from utils.formatters import format_currency, format_date
from utils.logger import setup_logging
from utils.navigation import show_sidebar
from utils.ui_helpers import delivery_badge, page_header, payment_badge

logger = logging.getLogger(__name__)


st.set_page_config(
    page_title="Distribuidora JD",
    page_icon="🚚",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "Get Help": None,
        "Report a bug": None,
        "About": None,
    },
)


@st.cache_resource
def initialize_app():
    """
    Lê a configuração, cria as tabelas e garante que exista um administrador.
    """
    settings = load_settings()
    setup_logging(settings.log_level, _ROOT / "logs")
    init_db()
    db = new_session()
    try:
        ensure_first_admin(db)
    finally:
        db.close()
    logger.info("Aplicação inicializada")


def login_page():
    st.markdown("# 🚚 Distribuidora JD")
    st.caption("Gestão de pedidos, estoque, clientes e financeiro")
    st.markdown("---")

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        aba_entrar, aba_cadastrar = st.tabs(["Entrar", "Criar conta"])

        with aba_entrar:
            with st.form("login_form"):
                email = st.text_input("E-mail", placeholder="voce@exemplo.com")
                password = st.text_input("Senha", type="password", placeholder="••••••••")
                submit = st.form_submit_button("Entrar", use_container_width=True, type="primary")

            if submit:
                if not email or not password:
                    st.error("Por favor, preencha e-mail e senha.")
                else:
                    db = new_session()
                    try:
                        user = AuthService.sign_in(db, email, password)
                        AuthService.login(user)
                        st.rerun()
                    except AuthError as exc:
                        st.error(exc.message)
                    finally:
                        db.close()

        with aba_cadastrar:
            st.caption("Novas contas aguardam a aprovação de um administrador.")
            with st.form("signup_form"):
                name = st.text_input("Nome")
                email_novo = st.text_input("E-mail")
                password_novo = st.text_input("Senha", type="password", help="Mínimo de 6 caracteres.")
                submit_novo = st.form_submit_button("Criar conta", use_container_width=True)

            if submit_novo:
                db = new_session()
                try:
                    user = AuthService.sign_up(db, email_novo, password_novo, name)
                    AuthService.login(user)
                    st.rerun()
                except AuthError as exc:
                    st.error(exc.message)
                except ValueError as exc:
                    st.error(str(exc))
                finally:
                    db.close()


def pending_page(user):
    st.markdown("# ⏳ Conta aguardando aprovação")
    st.info(
        f"Olá, **{user.name}**! Seu cadastro foi recebido. "
        "Um administrador precisa liberar seu acesso antes de você usar o sistema."
    )
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Verificar novamente", use_container_width=True, type="primary"):
            db = new_session()
            try:
                atualizado = AuthService.reload(db, user)
            finally:
                db.close()
            if atualizado is None:
                AuthService.logout()
            else:
                AuthService.login(atualizado)
            st.rerun()
    with col2:
        if st.button("Sair", use_container_width=True):
            AuthService.logout()
            st.rerun()


def courier_home(user):
    page_header("Início", "🏠")
    st.markdown(f"Olá, **{user.name}**! Suas entregas estão em **Pedidos**.")
    st.page_link("pages/2_Pedidos.py", label="Ver pedidos", icon="🧾")


def dashboard_page():
    page_header("Painel", "🏠", "Resumo de hoje e do mês corrente.")

    db = new_session()
    try:
        stats = ReportService(db).dashboard()

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Receita hoje", format_currency(stats.daily_total))
        with col2:
            st.metric("Receita do mês", format_currency(stats.monthly_total))
        with col3:
            st.metric("Despesas do mês", format_currency(stats.monthly_expenses))
        with col4:
            st.metric("Lucro do mês", format_currency(stats.profit), help="Venda menos custo dos pedidos pagos no mês.")

        st.markdown("---")
        col_estoque, col_pedidos = st.columns(2)

        with col_estoque:
            st.subheader("⚠️ Estoque baixo")
            baixos = ProductService(db).low_stock()
            if not baixos:
                st.success("Nenhum produto abaixo do mínimo.")
            else:
                linhas = [
                    {
                        "Produto": p.name,
                        "Categoria": p.category,
                        "Estoque": p.stock_quantity or 0,
                        "Mínimo": p.stock_min or 0,
                    }
                    for p in baixos
                ]
                st.dataframe(linhas, use_container_width=True, hide_index=True)

        with col_pedidos:
            st.subheader("🧾 Pedidos recentes")
            recentes = ReportService(db).recent_orders(5)
            if not recentes:
                st.info("Nenhum pedido registrado ainda.")
            else:
                linhas = [
                    {
                        "Pedido": f"#{o.id}",
                        "Cliente": o.customer_name,
                        "Total": format_currency(o.total_amount),
                        "Pagamento": payment_badge(o.payment_status),
                        "Entrega": delivery_badge(o.delivery_status),
                        "Data": format_date(o.created_at),
                    }
                    for o in recentes
                ]
                st.dataframe(linhas, use_container_width=True, hide_index=True)
    finally:
        db.close()


def main():
    try:
        initialize_app()
    except ConfigError as exc:
        st.error(f"Configuração inválida: {exc}")
        st.stop()

    AuthService.init_session_state()

    user = AuthService.current_session()
    if user is None:
        login_page()
    elif user.is_pending:
        pending_page(user)
    else:
        show_sidebar()
        if user.can(Capability.VIEW_DASHBOARD):
            dashboard_page()
        else:
            courier_home(user)


if __name__ == "__main__":
    main()
