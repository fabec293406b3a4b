import logging
import sys
from datetime import date
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from config.database import new_session
from models.stock_movement import MOVEMENT_IN
from services.auth_service import AuthService
from services.catalog_service import CategoryService, DuplicateCategory, ProductService
from services.delete_service import DeleteConflict, DeleteService
from services.permissions import Capability
from services.report_service import PERIOD_LABELS, ReportService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import confirm_buttons, page_header, report_store_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Produtos e Estoque", page_icon="📦", layout="wide")

AuthService.require_capability(Capability.MANAGE_PRODUCTS)
show_sidebar()

page_header("Produtos e Estoque", "📦", "Cadastro, entradas de estoque, categorias e movimentação.")

db = new_session()

try:
    produto_service = ProductService(db)
    categoria_service = CategoryService(db)
    categorias = categoria_service.list_categories()
    nomes_categorias = [c.name for c in categorias]

    aba_produtos, aba_estoque, aba_categorias, aba_relatorio = st.tabs(
        ["Produtos", "Entrada de estoque", "Categorias", "Movimentação"]
    )

    # ----- Produtos -----
    with aba_produtos:
        col_lista, col_form = st.columns([3, 2])

        with col_lista:
            termo = st.text_input("Buscar produto", placeholder="Nome ou categoria")
            produtos = produto_service.list_active(termo)
            if not produtos:
                st.info("Nenhum produto encontrado.")
            for p in produtos:
                emoji = categoria_service.emoji_for(p.category, categorias)
                with st.container(border=True):
                    c1, c2, c3 = st.columns([4, 1, 1])
                    with c1:
                        st.markdown(f"**{emoji} {p.name}**")
                        st.caption(
                            f"{p.category or '-'} · venda {format_currency(p.price_sell)} · "
                            f"custo {format_currency(p.price_cost)} · estoque {p.stock_quantity or 0}"
                            + (" · ⚠️ baixo" if p.is_low_stock else "")
                        )
                    with c2:
                        if st.button("✏️", key=f"edit_prod_{p.id}", help="Editar"):
                            st.session_state.editing_product_id = p.id
                            st.rerun()
                    with c3:
                        if st.button("🗑️", key=f"del_prod_{p.id}", help="Excluir"):
                            try:
                                DeleteService(db).delete_product(p.id)
                            except DeleteConflict:
                                st.session_state.product_conflict = p.id
                                st.rerun()
                            except SQLAlchemyError:
                                report_store_error(db, logger, "excluir o produto")
                            else:
                                st.rerun()

                    if st.session_state.get("product_conflict") == p.id:
                        st.warning(
                            "Este produto tem vendas ou movimentações registradas. "
                            "Arquivar o remove das listas e mantém o histórico; "
                            "excluir tudo apaga também os itens de pedidos e as movimentações."
                        )
                        arquivar, excluir_tudo = confirm_buttons(
                            f"conflict_prod_{p.id}", "Arquivar", "Excluir tudo"
                        )
                        if arquivar:
                            try:
                                DeleteService(db).archive_product(p.id)
                            except SQLAlchemyError:
                                report_store_error(db, logger, "arquivar o produto")
                            else:
                                st.session_state.pop("product_conflict", None)
                                st.rerun()
                        if excluir_tudo:
                            try:
                                DeleteService(db).cascade_delete_product(p.id)
                            except SQLAlchemyError:
                                report_store_error(db, logger, "excluir o produto com histórico")
                            else:
                                st.session_state.pop("product_conflict", None)
                                st.rerun()
                        if st.button("Cancelar", key=f"cancel_conflict_prod_{p.id}"):
                            st.session_state.pop("product_conflict", None)
                            st.rerun()

        with col_form:
            editing_id = st.session_state.get("editing_product_id")
            atual = produto_service.get(editing_id) if editing_id else None
            st.subheader("Editar produto" if atual else "Novo produto")

            with st.form("produto_form", clear_on_submit=atual is None):
                nome = st.text_input("Nome", value=atual.name if atual else "")
                categoria = st.selectbox(
                    "Categoria",
                    nomes_categorias,
                    index=nomes_categorias.index(atual.category)
                    if atual and atual.category in nomes_categorias
                    else 0,
                )
                c1, c2 = st.columns(2)
                with c1:
                    preco_venda = st.number_input(
                        "Preço de venda", min_value=0.0, step=0.5, value=float(atual.price_sell or 0) if atual else 0.0
                    )
                    estoque = st.number_input(
                        "Estoque", min_value=0, step=1, value=int(atual.stock_quantity or 0) if atual else 0
                    )
                with c2:
                    preco_custo = st.number_input(
                        "Preço de custo", min_value=0.0, step=0.5, value=float(atual.price_cost or 0) if atual else 0.0
                    )
                    estoque_min = st.number_input(
                        "Estoque mínimo", min_value=0, step=1, value=int(atual.stock_min or 0) if atual else 5
                    )
                salvar = st.form_submit_button("Salvar", type="primary", use_container_width=True)

            if salvar:
                try:
                    produto_service.save(
                        {
                            "name": nome,
                            "category": categoria,
                            "price_sell": preco_venda,
                            "price_cost": preco_custo,
                            "stock_quantity": int(estoque),
                            "stock_min": int(estoque_min),
                        },
                        product_id=atual.id if atual else None,
                    )
                except ValueError as exc:
                    st.error(str(exc))
                except SQLAlchemyError:
                    report_store_error(db, logger, "salvar o produto")
                else:
                    st.session_state.pop("editing_product_id", None)
                    st.success("Produto salvo!")
                    st.rerun()

            if atual and st.button("Cancelar edição", use_container_width=True):
                st.session_state.pop("editing_product_id", None)
                st.rerun()

        arquivados = produto_service.list_archived()
        if arquivados:
            with st.expander(f"Produtos arquivados ({len(arquivados)})"):
                for p in arquivados:
                    c1, c2 = st.columns([5, 1])
                    with c1:
                        st.markdown(p.name)
                    with c2:
                        if st.button("Reativar", key=f"restore_prod_{p.id}"):
                            try:
                                DeleteService(db).restore_product(p.id)
                            except SQLAlchemyError:
                                report_store_error(db, logger, "reativar o produto")
                            else:
                                st.rerun()

    # ----- Entrada de estoque -----
    with aba_estoque:
        ativos = produto_service.list_active()
        if not ativos:
            st.info("Cadastre produtos antes de registrar entradas.")
        else:
            with st.form("entrada_form", clear_on_submit=True):
                produto_id = st.selectbox(
                    "Produto",
                    [p.id for p in ativos],
                    format_func=lambda pid: next(p.name for p in ativos if p.id == pid),
                )
                quantidade = st.number_input("Quantidade", min_value=1, step=1, value=1)
                motivo = st.text_input("Motivo", value="Entrada manual")
                registrar = st.form_submit_button("Registrar entrada", type="primary")
            if registrar:
                try:
                    produto = produto_service.add_stock(produto_id, int(quantidade), motivo or "Entrada manual")
                except ValueError as exc:
                    st.error(str(exc))
                except SQLAlchemyError:
                    report_store_error(db, logger, "registrar a entrada de estoque")
                else:
                    st.success(f"Entrada registrada. Estoque atual de {produto.name}: {produto.stock_quantity}")

        st.markdown("---")
        st.subheader("⚠️ Estoque baixo")
        baixos = produto_service.low_stock()
        if not baixos:
            st.success("Nenhum produto abaixo do mínimo.")
        else:
            st.dataframe(
                [
                    {"Produto": p.name, "Estoque": p.stock_quantity or 0, "Mínimo": p.stock_min or 0}
                    for p in baixos
                ],
                use_container_width=True,
                hide_index=True,
            )

    # ----- Categorias -----
    with aba_categorias:
        col_cat_form, col_cat_list = st.columns([1, 2])
        with col_cat_form:
            st.subheader("Nova categoria")
            with st.form("categoria_form", clear_on_submit=True):
                cat_nome = st.text_input("Nome")
                cat_emoji = st.text_input("Emoji", value="📦", max_chars=4)
                criar = st.form_submit_button("Salvar", type="primary")
            if criar:
                try:
                    categoria_service.save(cat_nome, cat_emoji)
                except DuplicateCategory:
                    st.error("Já existe uma categoria com esse nome.")
                except ValueError as exc:
                    st.error(str(exc))
                except SQLAlchemyError:
                    report_store_error(db, logger, "salvar a categoria")
                else:
                    st.rerun()
        with col_cat_list:
            st.subheader("Categorias")
            for c in categorias:
                c1, c2 = st.columns([5, 1])
                with c1:
                    st.markdown(f"{c.emoji} {c.name}")
                with c2:
                    # Categorias padrão (sem registro no banco) não têm o que excluir
                    if c in db and st.button("🗑️", key=f"del_cat_{c.id}"):
                        try:
                            categoria_service.delete(c.id)
                        except SQLAlchemyError:
                            report_store_error(db, logger, "excluir a categoria")
                        else:
                            st.rerun()

    # ----- Movimentação de estoque -----
    with aba_relatorio:
        c1, c2, c3, c4 = st.columns(4)
        with c1:
            tipo = st.selectbox("Período", list(PERIOD_LABELS), format_func=PERIOD_LABELS.get, key="estoque_periodo")
        with c2:
            referencia = st.date_input("Data de referência", value=date.today(), key="estoque_ref")
        with c3:
            filtro_cat = st.selectbox("Categoria", ["Todas"] + nomes_categorias, key="estoque_cat")
        with c4:
            todos = produto_service.list_active()
            filtro_prod = st.selectbox(
                "Produto",
                [None] + [p.id for p in todos],
                format_func=lambda pid: "Todos" if pid is None else next(p.name for p in todos if p.id == pid),
                key="estoque_prod",
            )

        relatorio = ReportService(db).stock_report(
            referencia,
            tipo,
            category=None if filtro_cat == "Todas" else filtro_cat,
            product_id=filtro_prod,
        )
        m1, m2 = st.columns(2)
        with m1:
            st.metric("Entradas", relatorio.total_in)
        with m2:
            st.metric("Saídas", relatorio.total_out)

        st.bar_chart(relatorio.chart_frame(), color=["#059669", "#DC2626"])

        if not relatorio.movements:
            st.info("Nenhuma movimentação no período.")
        else:
            st.dataframe(
                [
                    {
                        "Data": format_date(m.created_at),
                        "Produto": m.product.name if m.product else "Produto Desconhecido",
                        "Tipo": "Entrada" if m.type == MOVEMENT_IN else "Saída",
                        "Qtd": m.quantity,
                        "Motivo": m.reason or "-",
                    }
                    for m in relatorio.movements
                ],
                use_container_width=True,
                hide_index=True,
            )
finally:
    db.close()
