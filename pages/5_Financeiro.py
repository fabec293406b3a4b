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
from models.transaction import EXPENSE, INCOME
from services.auth_service import AuthService
from services.catalog_service import CategoryService
from services.finance_service import TYPE_LABELS, FinanceService
from services.permissions import Capability
from services.report_service import PERIOD_LABELS, ReportService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, report_store_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Financeiro", page_icon="💵", layout="wide")

AuthService.require_capability(Capability.MANAGE_FINANCE)
show_sidebar()

page_header("Financeiro", "💵", "Entradas, saídas e lucro por período ou por categoria.")

db = new_session()

try:
    categorias = [c.name for c in CategoryService(db).list_categories()]

    st.subheader("Filtros")
    c1, c2, c3 = st.columns(3)
    with c1:
        tipo = st.selectbox("Período", list(PERIOD_LABELS), format_func=PERIOD_LABELS.get, index=2)
    with c2:
        referencia = st.date_input("Data de referência", value=date.today())
    with c3:
        filtro_cat = st.selectbox(
            "Categoria",
            ["Geral"] + categorias,
            help="Com uma categoria, a receita e o lucro vêm só dos itens dela e as despesas marcadas com [Categoria].",
        )
    categoria = None if filtro_cat == "Geral" else filtro_cat

    service = ReportService(db)
    relatorio = service.finance_report(referencia, tipo, categoria)

    st.markdown("---")
    m1, m2, m3, m4 = st.columns(4)
    with m1:
        st.metric("Entradas", format_currency(relatorio.income_total))
    with m2:
        st.metric("Saídas", format_currency(relatorio.expense_total))
    with m3:
        st.metric("Saldo", format_currency(relatorio.balance))
    with m4:
        st.metric("Lucro", format_currency(relatorio.profit_total), help="Venda menos custo dos itens pagos.")

    st.bar_chart(relatorio.chart_frame(), color=["#059669", "#DC2626"])

    col_lista, col_form = st.columns([3, 2])

    with col_lista:
        st.subheader("Lançamentos do período")
        if not relatorio.transactions:
            st.info("Nenhum lançamento no período.")
        for t in relatorio.transactions:
            sinal = "🟢" if t.type == INCOME else "🔴"
            with st.expander(f"{sinal} {format_date(t.created_at)} · {t.description} · {format_currency(t.amount)}"):
                st.caption(TYPE_LABELS.get(t.type, t.type))
                if t.category_tags:
                    st.caption("Categorias: " + ", ".join(t.category_tags))

                pedido = service.transaction_order(t)
                if pedido is not None:
                    st.markdown(f"**Pedido #{pedido.id}** · {service.order_customer_label(pedido)}")
                    st.dataframe(
                        [
                            {
                                "Produto": item.product_name,
                                "Qtd": item.quantity,
                                "Subtotal": format_currency(item.subtotal),
                            }
                            for item in pedido.items
                        ],
                        use_container_width=True,
                        hide_index=True,
                    )

                # Lançamentos sintéticos (id negativo) não existem no banco
                if t.id and t.id > 0 and st.button("🗑️ Excluir lançamento", key=f"del_tx_{t.id}"):
                    try:
                        FinanceService(db).delete_transaction(t.id)
                    except SQLAlchemyError:
                        report_store_error(db, logger, "excluir o lançamento")
                    else:
                        st.rerun()

    with col_form:
        st.subheader("Novo lançamento")
        with st.form("lancamento_form", clear_on_submit=True):
            tipo_lanc = st.radio("Tipo", [INCOME, EXPENSE], format_func=TYPE_LABELS.get, horizontal=True)
            valor = st.number_input("Valor", min_value=0.0, step=1.0)
            descricao = st.text_input("Descrição")
            cat_lanc = st.selectbox(
                "Categoria (despesas)",
                ["Nenhuma"] + categorias,
                help="Despesas com categoria entram no relatório daquela categoria.",
            )
            salvar = st.form_submit_button("Registrar", type="primary")
        if salvar:
            try:
                FinanceService(db).create_transaction(
                    tipo_lanc,
                    valor,
                    descricao,
                    category=None if cat_lanc == "Nenhuma" else cat_lanc,
                )
            except ValueError as exc:
                st.error(str(exc))
            except SQLAlchemyError:
                report_store_error(db, logger, "registrar o lançamento")
            else:
                st.success("Lançamento registrado!")
                st.rerun()
finally:
    db.close()
