import logging
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from config.database import new_session
from services.auth_service import AuthService
from services.customer_service import CustomerService
from services.delete_service import DeleteConflict, DeleteService
from services.loyalty import REWARD_THRESHOLD
from services.permissions import Capability
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import (
    confirm_buttons,
    delivery_badge,
    loyalty_progress,
    page_header,
    payment_badge,
    report_store_error,
)

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Clientes", page_icon="👥", layout="wide")

AuthService.require_capability(Capability.MANAGE_CUSTOMERS)
show_sidebar()

page_header("Clientes", "👥", "Cadastro, histórico de compras e programa de fidelidade.")

db = new_session()

try:
    service = CustomerService(db)
    col_lista, col_detalhe = st.columns([2, 3])

    with col_lista:
        with st.expander("➕ Novo cliente"):
            with st.form("novo_cliente", clear_on_submit=True):
                nome = st.text_input("Nome")
                telefone = st.text_input("Telefone")
                endereco = st.text_input("Endereço")
                obs = st.text_area("Observações")
                criar = st.form_submit_button("Cadastrar", type="primary")
            if criar:
                try:
                    novo = service.create(nome, endereco, telefone, obs)
                except ValueError as exc:
                    st.error(str(exc))
                except SQLAlchemyError:
                    report_store_error(db, logger, "cadastrar o cliente")
                else:
                    st.session_state.selected_customer_id = novo.id
                    st.rerun()

        termo = st.text_input("Buscar cliente", placeholder="Nome ou telefone")
        clientes = service.list_active(termo)
        if not clientes:
            st.info("Nenhum cliente encontrado.")
        for c in clientes:
            selo = " 🎁" if (c.loyalty_count or 0) >= REWARD_THRESHOLD else ""
            if st.button(
                f"{c.name} · {c.loyalty_count or 0} pts{selo}",
                key=f"sel_cli_{c.id}",
                use_container_width=True,
            ):
                st.session_state.selected_customer_id = c.id
                st.session_state.pop("customer_conflict", None)
                st.rerun()

        arquivados = service.list_archived()
        if arquivados:
            with st.expander(f"Clientes arquivados ({len(arquivados)})"):
                for c in arquivados:
                    c1, c2 = st.columns([4, 1])
                    with c1:
                        st.markdown(c.name)
                    with c2:
                        if st.button("Reativar", key=f"restore_cli_{c.id}"):
                            try:
                                DeleteService(db).restore_customer(c.id)
                            except SQLAlchemyError:
                                report_store_error(db, logger, "reativar o cliente")
                            else:
                                st.rerun()

    with col_detalhe:
        selected_id = st.session_state.get("selected_customer_id")
        cliente = service.get(selected_id) if selected_id else None
        if cliente is None or not cliente.is_active:
            st.info("Selecione um cliente na lista.")
            st.stop()

        st.subheader(cliente.name)
        loyalty_progress(cliente.loyalty_count)

        if (cliente.loyalty_count or 0) >= REWARD_THRESHOLD:
            if st.button("🎁 Resgatar brinde (1 galão de 20L)", type="primary"):
                try:
                    resgatado = service.redeem_reward(cliente.id)
                except SQLAlchemyError:
                    report_store_error(db, logger, "resgatar o brinde")
                else:
                    if resgatado:
                        st.success("Brinde resgatado! Estoque e pontos atualizados.")
                        st.rerun()
                    else:
                        st.error("Pontos insuficientes para o resgate.")

        with st.form(f"editar_cliente_{cliente.id}"):
            nome = st.text_input("Nome", value=cliente.name)
            telefone = st.text_input("Telefone", value=cliente.phone or "")
            endereco = st.text_input("Endereço", value=cliente.address or "")
            obs = st.text_area("Observações", value=cliente.notes or "")
            pontos = st.number_input(
                "Pontos de fidelidade",
                min_value=0,
                step=1,
                value=int(cliente.loyalty_count or 0),
                help="Ajuste manual da contagem de galões.",
            )
            salvar = st.form_submit_button("Salvar alterações")
        if salvar:
            try:
                service.update(
                    cliente.id,
                    {
                        "name": nome,
                        "phone": telefone or None,
                        "address": endereco or None,
                        "notes": obs or None,
                        "loyalty_count": int(pontos),
                    },
                )
            except ValueError as exc:
                st.error(str(exc))
            except SQLAlchemyError:
                report_store_error(db, logger, "atualizar o cliente")
            else:
                st.success("Cliente atualizado!")
                st.rerun()

        # Exclusão com tratamento de histórico
        if st.session_state.get("customer_conflict") == cliente.id:
            st.warning(
                "Este cliente tem pedidos registrados. Arquivar o remove das listas e mantém "
                "o histórico; excluir tudo apaga também todos os pedidos dele."
            )
            arquivar, excluir_tudo = confirm_buttons(f"conflict_cli_{cliente.id}", "Arquivar", "Excluir tudo")
            if arquivar:
                try:
                    DeleteService(db).archive_customer(cliente.id)
                except SQLAlchemyError:
                    report_store_error(db, logger, "arquivar o cliente")
                else:
                    st.session_state.pop("customer_conflict", None)
                    st.session_state.pop("selected_customer_id", None)
                    st.rerun()
            if excluir_tudo:
                try:
                    DeleteService(db).cascade_delete_customer(cliente.id)
                except SQLAlchemyError:
                    report_store_error(db, logger, "excluir o cliente com histórico")
                else:
                    st.session_state.pop("customer_conflict", None)
                    st.session_state.pop("selected_customer_id", None)
                    st.rerun()
        elif st.button("🗑️ Excluir cliente"):
            try:
                DeleteService(db).delete_customer(cliente.id)
            except DeleteConflict:
                st.session_state.customer_conflict = cliente.id
                st.rerun()
            except SQLAlchemyError:
                report_store_error(db, logger, "excluir o cliente")
            else:
                st.session_state.pop("selected_customer_id", None)
                st.rerun()

        st.markdown("---")
        st.subheader("Histórico de compras")
        historico = service.history(cliente.id)
        if not historico:
            st.info("Nenhum pedido deste cliente.")
        for pedido in historico:
            with st.expander(
                f"#{pedido.id} · {format_date(pedido.created_at)} · {format_currency(pedido.total_amount)} · "
                f"{payment_badge(pedido.payment_status)} · {delivery_badge(pedido.delivery_status)}"
            ):
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
finally:
    db.close()
