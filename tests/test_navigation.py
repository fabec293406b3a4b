from services.auth_service import UserSession
from services.permissions import Role
from utils.navigation import MENU, visible_menu


def _user(role):
    return UserSession(profile_id="1", email="x@exemplo.com", name="X", role=role)


def test_admin_sees_every_page():
    assert len(visible_menu(_user(Role.ADMIN))) == len(MENU)


def test_courier_sees_only_orders():
    assert [label for _, label, _ in visible_menu(_user(Role.COURIER))] == ["Pedidos"]


def test_pending_or_anonymous_sees_nothing():
    assert visible_menu(_user(Role.PENDING)) == []
    assert visible_menu(None) == []
