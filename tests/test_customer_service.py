from datetime import datetime

import pytest

from models.order import Order
from services.customer_service import CustomerService
from services.order_service import CartLine, OrderService


def test_create_customer_starts_with_zero_points(db):
    cliente = CustomerService(db).create("  Joana  ", address="Rua B, 5", phone="71 98888-1111")
    assert cliente.id is not None
    assert cliente.name == "Joana"
    assert cliente.loyalty_count == 0
    assert cliente.is_active is True


def test_create_customer_requires_name(db):
    with pytest.raises(ValueError):
        CustomerService(db).create("   ")


def test_search_by_name_or_phone(db, make_customer):
    make_customer(name="Ana Souza", phone="71 91111-2222")
    make_customer(name="Bruno Lima", phone="71 93333-4444")
    service = CustomerService(db)

    assert [c.name for c in service.list_active("souza")] == ["Ana Souza"]
    assert [c.name for c in service.list_active("3333")] == ["Bruno Lima"]
    assert [c.name for c in service.list_active()] == ["Ana Souza", "Bruno Lima"]


def test_update_customer_and_manual_points(db, make_customer):
    cliente = make_customer(loyalty_count=4)
    service = CustomerService(db)

    atualizado = service.update(cliente.id, {"address": "Rua Nova, 1", "loyalty_count": 7})
    assert atualizado.address == "Rua Nova, 1"
    assert atualizado.loyalty_count == 7

    with pytest.raises(ValueError):
        service.update(cliente.id, {"loyalty_count": -1})
    with pytest.raises(ValueError):
        service.update(cliente.id, {"name": ""})
    with pytest.raises(LookupError):
        service.update(9999, {"name": "X"})


def test_history_lists_orders_newest_first(db, make_customer, make_product):
    cliente = make_customer()
    gas = make_product()
    orders = OrderService(db)
    antigo = orders.create_order([CartLine(gas, 1)], customer_id=cliente.id)
    recente = orders.create_order([CartLine(gas, 2)], customer_id=cliente.id)
    orders.create_order([CartLine(gas, 1)])
    db.get(Order, antigo.id).created_at = datetime(2023, 12, 1, 10, 0)
    db.commit()

    historico = CustomerService(db).history(cliente.id)

    assert [o.id for o in historico] == [recente.id, antigo.id]
    assert [i.quantity for i in historico[0].items] == [2]
    assert historico[0].items[0].product_name == "Gás P13"


def test_redeem_reward_through_service(db, make_customer):
    cliente = make_customer(loyalty_count=10)
    assert CustomerService(db).redeem_reward(cliente.id) is True
    assert CustomerService(db).get(cliente.id).loyalty_count == 0
