"""
Equipe: listagem de perfis e troca de função (somente administrador).
"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.profile import Profile
from services.permissions import Capability, Role, authorize

logger = logging.getLogger(__name__)


class TeamService:
    def __init__(self, db: Session):
        self.db = db

    def list_members(self) -> List[Profile]:
        return list(
            self.db.execute(select(Profile).order_by(Profile.created_at.desc())).scalars().all()
        )

    def update_role(self, profile_id: str, role, actor=None) -> Profile:
        if actor is not None:
            authorize(actor.role, Capability.MANAGE_TEAM)
        new_role = Role(role)

        perfil = self.db.get(Profile, profile_id)
        if perfil is None:
            raise LookupError(f"Perfil {profile_id} não encontrado")
        perfil.role = new_role.value
        self.db.commit()
        self.db.refresh(perfil)
        logger.info("Perfil %s agora é %s", perfil.email, new_role.value)
        return perfil
