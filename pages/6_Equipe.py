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
from services.permissions import Capability, Role
from services.team_service import TeamService
from utils.formatters import format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import page_header, report_store_error

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Equipe", page_icon="⚙️", layout="wide")

user = AuthService.require_capability(Capability.MANAGE_TEAM)
show_sidebar()

page_header("Equipe", "⚙️", "Aprove novos cadastros e defina o perfil de cada membro.")

db = new_session()

try:
    service = TeamService(db)
    membros = service.list_members()
    roles = list(Role)

    pendentes = [m for m in membros if Role.parse(m.role) is Role.PENDING]
    if pendentes:
        st.warning(f"{len(pendentes)} cadastro(s) aguardando avaliação.")

    for m in membros:
        atual = Role.parse(m.role)
        with st.container(border=True):
            c1, c2 = st.columns([3, 2])
            with c1:
                st.markdown(f"**{m.name or m.email}**")
                st.caption(f"{m.email} · desde {format_date(m.created_at)}")
            with c2:
                if m.id == user.profile_id:
                    st.caption(f"{atual.label} (você)")
                    continue
                novo = st.selectbox(
                    "Perfil",
                    roles,
                    index=roles.index(atual),
                    format_func=lambda r: r.label,
                    key=f"role_{m.id}",
                    label_visibility="collapsed",
                )
                if novo is not atual:
                    try:
                        service.update_role(m.id, novo, actor=user)
                    except SQLAlchemyError:
                        report_store_error(db, logger, "alterar o perfil")
                    else:
                        st.success(f"{m.name or m.email} agora é {novo.label}.")
                        st.rerun()
finally:
    db.close()
