"""
Helpers visuais compartilhados pelas telas.
"""
import logging

import streamlit as st

from models.order import DELIVERY_DONE, DELIVERY_OUT, PAYMENT_PAID
from services.loyalty import REWARD_THRESHOLD

STORE_ERROR_MESSAGE = "Não foi possível concluir a operação no banco de dados. Tente novamente."

DELIVERY_ICONS = {
    DELIVERY_DONE: "✅",
    DELIVERY_OUT: "🛵",
}


def page_header(title: str, icon: str, subtitle: str = "") -> None:
    """Título compacto da página com subtítulo opcional."""
    st.markdown(
        f"<p style='margin:0 0 0.25rem 0; font-size:1.25rem;'><strong>{icon} {title}</strong></p>"
        + (f"<p style='margin:0; font-size:0.8rem; color:#666;'>{subtitle}</p>" if subtitle else ""),
        unsafe_allow_html=True,
    )
    st.markdown("---")


def delivery_badge(status: str) -> str:
    return f"{DELIVERY_ICONS.get(status, '🔥')} {status}"


def payment_badge(status: str) -> str:
    return f"{'💰' if status == PAYMENT_PAID else '⏳'} {status}"


def loyalty_progress(count: int) -> None:
    """Barra de progresso da fidelidade (galões de 20L até o brinde)."""
    count = int(count or 0)
    st.progress(min(count, REWARD_THRESHOLD) / REWARD_THRESHOLD)
    if count >= REWARD_THRESHOLD:
        st.success(f"🎁 {count} galões: brinde disponível para resgate!")
    else:
        st.caption(f"{count}/{REWARD_THRESHOLD} galões para o próximo brinde")


def confirm_buttons(key: str, confirm_label: str = "Confirmar", cancel_label: str = "Cancelar") -> tuple[bool, bool]:
    """Par de botões confirmar/cancelar lado a lado."""
    c1, c2 = st.columns(2)
    with c1:
        confirmed = st.button(confirm_label, key=f"{key}_confirm", type="primary", use_container_width=True)
    with c2:
        cancelled = st.button(cancel_label, key=f"{key}_cancel", use_container_width=True)
    return confirmed, cancelled


def report_store_error(db, log: logging.Logger, action: str) -> None:
    """
    Trata uma falha do banco na tela: desfaz a transação aberta, registra a
    exceção corrente no log e mostra um aviso genérico. Deve ser chamada
    dentro de um bloco except.
    """
    db.rollback()
    log.exception("Erro no banco ao %s", action)
    st.error(STORE_ERROR_MESSAGE)
