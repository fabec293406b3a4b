import streamlit as st

from services.auth_service import AuthService, UserSession
from services.permissions import Capability

# (página, rótulo, ícone, permissão exigida)
MENU = (
    ("app.py", "Painel", "🏠", Capability.VIEW_DASHBOARD),
    ("pages/1_Novo_Pedido.py", "Novo Pedido", "🛒", Capability.CREATE_ORDERS),
    ("pages/2_Pedidos.py", "Pedidos", "🧾", Capability.VIEW_ORDERS),
    ("pages/3_Produtos.py", "Produtos e Estoque", "📦", Capability.MANAGE_PRODUCTS),
    ("pages/4_Clientes.py", "Clientes", "👥", Capability.MANAGE_CUSTOMERS),
    ("pages/5_Financeiro.py", "Financeiro", "💵", Capability.MANAGE_FINANCE),
    ("pages/6_Equipe.py", "Equipe", "⚙️", Capability.MANAGE_TEAM),
)


def visible_menu(user: UserSession | None) -> list[tuple[str, str, str]]:
    """Itens do menu liberados para o perfil do usuário."""
    if user is None:
        return []
    return [(page, label, icon) for page, label, icon, cap in MENU if user.can(cap)]


def show_sidebar() -> None:
    """
    Sidebar com o usuário logado e os links das telas permitidas ao seu perfil.
    """
    user = AuthService.current_session()

    with st.sidebar:
        st.markdown("## 🚚 Distribuidora JD")
        if user:
            st.markdown(f"**{user.name}**")
            st.caption(f"Perfil: {user.role.label}")

        st.markdown("---")
        st.markdown("### Menu")
        for page, label, icon in visible_menu(user):
            st.page_link(page, label=label, icon=icon)

        st.markdown("---")
        if st.button("Sair", use_container_width=True):
            AuthService.logout()
            if hasattr(st, "switch_page"):
                st.switch_page("app.py")
            else:
                st.rerun()
