import logging
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from config.database import new_session
from models.order import (
    DELIVERY_PREPARING,
    DELIVERY_STATUSES,
    PAYMENT_METHODS,
    PAYMENT_PAID,
    PAYMENT_STATUSES,
    WALK_IN_CUSTOMER,
)
from services.auth_service import AuthService
from services.catalog_service import CategoryService, ProductService
from services.customer_service import CustomerService
from services.loyalty import count_qualifying_units
from services.order_service import CartLine, OrderService, cart_total
from services.permissions import Capability
from utils.formatters import format_currency
from utils.navigation import show_sidebar
from utils.ui_helpers import loyalty_progress, page_header, report_store_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Novo Pedido", page_icon="🛒", layout="wide")

AuthService.require_capability(Capability.CREATE_ORDERS)
show_sidebar()

page_header("Novo Pedido", "🛒", "Monte o carrinho, escolha o cliente e finalize.")

if "cart_items" not in st.session_state:
    st.session_state.cart_items = []

db = new_session()

try:
    produtos = ProductService(db).list_active()
    if not produtos:
        st.info("Nenhum produto cadastrado. Cadastre produtos em **Produtos e Estoque**.")
        st.stop()
    categorias = CategoryService(db).list_categories()
    produtos_por_id = {p.id: p for p in produtos}

    cart = st.session_state.cart_items
    col_prod, col_cart = st.columns([3, 2])

    with col_prod:
        st.subheader("Passo 1: Produtos")
        termo = st.text_input("Buscar produto", placeholder="Ex: gás, água, coca...").strip().lower()
        nomes_categorias = ["Todas"] + [c.name for c in categorias]
        filtro_cat = st.selectbox("Categoria", nomes_categorias)

        filtrados = [
            p
            for p in produtos
            if (not termo or termo in p.name.lower() or termo in (p.category or "").lower())
            and (filtro_cat == "Todas" or p.category == filtro_cat)
        ]
        if not filtrados:
            st.info("Nenhum produto encontrado para este filtro.")

        cols = st.columns(2)
        for idx, p in enumerate(filtrados):
            with cols[idx % 2]:
                with st.container(border=True):
                    emoji = CategoryService(db).emoji_for(p.category, categorias)
                    st.markdown(f"**{emoji} {p.name}**")
                    st.caption(
                        f"{format_currency(p.price_sell)} · estoque: {p.stock_quantity or 0}"
                        + (" · ⚠️ baixo" if p.is_low_stock else "")
                    )
                    c_qtd, c_btn = st.columns([2, 1])
                    with c_qtd:
                        qtd = st.number_input(
                            "Qtd",
                            min_value=1,
                            value=1,
                            step=1,
                            key=f"qty_{p.id}",
                            label_visibility="collapsed",
                        )
                    with c_btn:
                        if st.button("➕", key=f"add_{p.id}", use_container_width=True):
                            for item in cart:
                                if item["product_id"] == p.id:
                                    item["quantity"] += int(qtd)
                                    break
                            else:
                                cart.append(
                                    {
                                        "product_id": p.id,
                                        "quantity": int(qtd),
                                        "price": float(p.price_sell or 0),
                                    }
                                )
                            st.rerun()

    with col_cart:
        st.subheader("Passo 2: Carrinho")

        # Produtos arquivados depois de entrarem no carrinho saem dele
        cart[:] = [item for item in cart if item["product_id"] in produtos_por_id]

        if not cart:
            st.info("Carrinho vazio.")
        else:
            for idx, item in enumerate(cart):
                p = produtos_por_id[item["product_id"]]
                c1, c2, c3 = st.columns([3, 2, 1])
                with c1:
                    st.markdown(f"**{p.name}**")
                    st.caption(f"{item['quantity']} x {format_currency(item['price'])}")
                with c2:
                    st.markdown(format_currency(item["quantity"] * item["price"]))
                with c3:
                    if st.button("🗑️", key=f"rm_{idx}"):
                        cart.pop(idx)
                        st.rerun()

        lines = [
            CartLine(product=produtos_por_id[i["product_id"]], quantity=i["quantity"], unit_price=i["price"])
            for i in cart
        ]
        st.markdown(f"### Total: {format_currency(cart_total(lines))}")

        st.markdown("---")
        st.subheader("Passo 3: Cliente e pagamento")

        clientes = CustomerService(db).list_active()
        opcoes_cliente = [None] + [c.id for c in clientes]
        nomes_cliente = {c.id: f"{c.name} ({c.phone or 'sem telefone'})" for c in clientes}
        customer_id = st.selectbox(
            "Cliente",
            opcoes_cliente,
            format_func=lambda cid: WALK_IN_CUSTOMER if cid is None else nomes_cliente[cid],
        )
        if customer_id is not None:
            cliente = next(c for c in clientes if c.id == customer_id)
            if cliente.address:
                st.caption(f"📍 {cliente.address}")
            loyalty_progress(cliente.loyalty_count)
            pontos = count_qualifying_units((line.product, line.quantity) for line in lines)
            if pontos:
                st.caption(f"Este pedido soma {pontos} ponto(s) de fidelidade quando pago.")

        payment_method = st.selectbox("Forma de pagamento", PAYMENT_METHODS)
        payment_status = st.selectbox(
            "Pagamento",
            PAYMENT_STATUSES,
            index=PAYMENT_STATUSES.index(PAYMENT_PAID),
            help="Pedidos pendentes só baixam estoque e lançam a receita quando o pagamento for confirmado.",
        )
        delivery_status = st.selectbox(
            "Entrega", DELIVERY_STATUSES, index=DELIVERY_STATUSES.index(DELIVERY_PREPARING)
        )

        col_fin, col_limpar = st.columns(2)
        with col_fin:
            finalizar = st.button("Finalizar pedido", type="primary", use_container_width=True, disabled=not cart)
        with col_limpar:
            if st.button("Limpar carrinho", use_container_width=True, disabled=not cart):
                cart.clear()
                st.rerun()

        if finalizar:
            try:
                pedido = OrderService(db).create_order(
                    lines,
                    customer_id=customer_id,
                    payment_method=payment_method,
                    payment_status=payment_status,
                    delivery_status=delivery_status,
                )
            except ValueError as exc:
                st.error(str(exc))
            except SQLAlchemyError:
                report_store_error(db, logger, "salvar o pedido")
            else:
                cart.clear()
                st.session_state.last_order_message = f"Pedido #{pedido.id} registrado com sucesso!"
                st.rerun()

        if st.session_state.get("last_order_message"):
            st.success(st.session_state.pop("last_order_message"))
finally:
    db.close()
