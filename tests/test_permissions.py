import pytest

from services.permissions import CAPABILITIES, Capability, PermissionDenied, Role, authorize, can


def test_admin_has_every_capability():
    assert all(can(Role.ADMIN, cap) for cap in Capability)


def test_courier_only_handles_deliveries():
    assert CAPABILITIES[Role.COURIER] == {Capability.VIEW_ORDERS, Capability.UPDATE_DELIVERY_STATUS}
    assert not can(Role.COURIER, Capability.UPDATE_PAYMENT_STATUS)
    assert not can(Role.COURIER, Capability.VIEW_DELIVERED_ORDERS)
    assert not can(Role.COURIER, Capability.DELETE_ORDERS)


def test_pending_is_blocked():
    assert not any(can(Role.PENDING, cap) for cap in Capability)


def test_unknown_role_is_treated_as_pending():
    assert Role.parse("gerente") is Role.PENDING
    assert Role.parse(None) is Role.PENDING
    assert Role.parse("entregador") is Role.COURIER


def test_authorize_raises_for_missing_capability():
    authorize(Role.ADMIN, Capability.MANAGE_TEAM)
    with pytest.raises(PermissionDenied) as exc_info:
        authorize(Role.COURIER, Capability.MANAGE_TEAM)
    assert exc_info.value.capability is Capability.MANAGE_TEAM


def test_role_labels():
    assert Role.ADMIN.label.startswith("Administrador")
    assert Role.PENDING.label.startswith("Aguardando")
