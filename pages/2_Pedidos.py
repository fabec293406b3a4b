import logging
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from config.database import new_session
from models.order import DELIVERY_STATUSES, PAYMENT_STATUSES
from services.auth_service import AuthService
from services.order_service import (
    DELETE_ORDER_WARNING,
    FILTER_ACTIVE,
    ORDER_FILTERS,
    OrderService,
    filter_orders,
)
from services.permissions import Capability, PermissionDenied
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import confirm_buttons, delivery_badge, page_header, payment_badge, report_store_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Pedidos", page_icon="🧾", layout="wide")

user = AuthService.require_capability(Capability.VIEW_ORDERS)
show_sidebar()

page_header("Pedidos", "🧾", "Acompanhe entregas e pagamentos.")

pode_ver_entregues = user.can(Capability.VIEW_DELIVERED_ORDERS)

col_busca, col_filtro = st.columns([2, 1])
with col_busca:
    termo = st.text_input("Buscar", placeholder="Nome do cliente ou número do pedido")
with col_filtro:
    if pode_ver_entregues:
        filtro = st.selectbox("Filtro", ORDER_FILTERS, index=ORDER_FILTERS.index(FILTER_ACTIVE))
    else:
        filtro = FILTER_ACTIVE
        st.caption("Mostrando pedidos ainda não entregues.")

db = new_session()

try:
    service = OrderService(db)
    pedidos = filter_orders(
        service.list_orders(),
        search=termo,
        status_filter=filtro,
        show_delivered=pode_ver_entregues,
    )

    if not pedidos:
        st.info("Nenhum pedido encontrado.")
        st.stop()

    st.caption(f"{len(pedidos)} pedido(s)")

    for pedido in pedidos:
        titulo = (
            f"#{pedido.id} · {pedido.customer_name} · {format_currency(pedido.total_amount)} · "
            f"{payment_badge(pedido.payment_status)} · {delivery_badge(pedido.delivery_status)}"
        )
        with st.expander(titulo):
            st.caption(f"{format_date(pedido.created_at)} · {pedido.payment_method or '-'}")
            if pedido.customer is not None:
                if pedido.customer.address:
                    st.markdown(f"📍 {pedido.customer.address}")
                if pedido.customer.phone:
                    st.markdown(f"📞 {pedido.customer.phone}")

            linhas = [
                {
                    "Produto": item.product_name,
                    "Qtd": item.quantity,
                    "Preço": format_currency(item.price_at_time),
                    "Subtotal": format_currency(item.subtotal),
                }
                for item in pedido.items
            ]
            st.dataframe(linhas, use_container_width=True, hide_index=True)

            col_entrega, col_pagto = st.columns(2)
            with col_entrega:
                if user.can(Capability.UPDATE_DELIVERY_STATUS):
                    novo_status = st.selectbox(
                        "Entrega",
                        DELIVERY_STATUSES,
                        index=DELIVERY_STATUSES.index(pedido.delivery_status)
                        if pedido.delivery_status in DELIVERY_STATUSES
                        else 0,
                        key=f"entrega_{pedido.id}",
                    )
                    if novo_status != pedido.delivery_status:
                        try:
                            service.update_delivery_status(pedido.id, novo_status)
                        except LookupError:
                            st.error("Pedido não encontrado. Atualize a página.")
                        except SQLAlchemyError:
                            report_store_error(db, logger, "atualizar a entrega")
                        else:
                            st.rerun()
            with col_pagto:
                if user.can(Capability.UPDATE_PAYMENT_STATUS):
                    novo_pagto = st.selectbox(
                        "Pagamento",
                        PAYMENT_STATUSES,
                        index=PAYMENT_STATUSES.index(pedido.payment_status)
                        if pedido.payment_status in PAYMENT_STATUSES
                        else 0,
                        key=f"pagto_{pedido.id}",
                    )
                    if novo_pagto != pedido.payment_status:
                        try:
                            service.update_payment_status(pedido.id, novo_pagto, actor=user)
                        except PermissionDenied:
                            st.error("Você não tem permissão para alterar o pagamento.")
                        except LookupError:
                            st.error("Pedido não encontrado. Atualize a página.")
                        except SQLAlchemyError:
                            report_store_error(db, logger, "atualizar o pagamento")
                        else:
                            st.rerun()

            if user.can(Capability.DELETE_ORDERS):
                confirm_key = f"confirm_delete_order_{pedido.id}"
                if st.session_state.get(confirm_key):
                    st.warning(DELETE_ORDER_WARNING)
                    confirmado, cancelado = confirm_buttons(f"del_order_{pedido.id}", "Excluir pedido")
                    if confirmado:
                        try:
                            service.delete_order(pedido.id)
                        except SQLAlchemyError:
                            report_store_error(db, logger, "excluir o pedido")
                        else:
                            st.session_state.pop(confirm_key, None)
                            st.rerun()
                    if cancelado:
                        st.session_state.pop(confirm_key, None)
                        st.rerun()
                elif st.button("🗑️ Excluir pedido", key=f"del_{pedido.id}"):
                    st.session_state[confirm_key] = True
                    st.rerun()
finally:
    db.close()
