import pytest

from models.profile import Profile
from services.auth_service import AuthService, UserSession
from services.permissions import PermissionDenied, Role
from services.team_service import TeamService


def test_list_members_newest_first(db):
    primeiro = AuthService.create_profile(db, "a@exemplo.com", "segredo123", "A")
    segundo = AuthService.create_profile(db, "b@exemplo.com", "segredo123", "B")
    assert [p.id for p in TeamService(db).list_members()] == [segundo.id, primeiro.id]


def test_admin_approves_pending_member(db):
    admin = AuthService.create_profile(db, "chefe@exemplo.com", "segredo123", "Chefe", role=Role.ADMIN.value)
    pendente = AuthService.create_profile(db, "novo@exemplo.com", "segredo123", "Novo")

    TeamService(db).update_role(pendente.id, Role.COURIER, actor=UserSession.from_profile(admin))

    assert db.get(Profile, pendente.id).role == "entregador"


def test_courier_cannot_change_roles(db):
    entregador = AuthService.create_profile(db, "moto@exemplo.com", "segredo123", "Moto", role=Role.COURIER.value)
    with pytest.raises(PermissionDenied):
        TeamService(db).update_role(entregador.id, Role.ADMIN, actor=UserSession.from_profile(entregador))


def test_invalid_role_is_rejected(db):
    perfil = AuthService.create_profile(db, "x@exemplo.com", "segredo123", "X")
    with pytest.raises(ValueError):
        TeamService(db).update_role(perfil.id, "gerente")
    with pytest.raises(LookupError):
        TeamService(db).update_role("inexistente", Role.ADMIN)
