from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from models.customer import Customer
from models.order import (
    DELIVERY_DONE,
    DELIVERY_OUT,
    DELIVERY_PREPARING,
    PAYMENT_PAID,
    PAYMENT_PENDING,
    Order,
    OrderItem,
)
from models.product import Product
from models.stock_movement import MOVEMENT_OUT, StockMovement
from models.transaction import Transaction
from services.auth_service import UserSession
from services.order_service import (
    FILTER_ACTIVE,
    FILTER_ALL,
    FILTER_HISTORY,
    CartLine,
    OrderService,
    cart_total,
    filter_orders,
)
from services.permissions import PermissionDenied, Role


def _courier():
    return UserSession(profile_id="x", email="e@x.com", name="Entregador", role=Role.COURIER)


def _admin():
    return UserSession(profile_id="y", email="a@x.com", name="Admin", role=Role.ADMIN)


def test_cart_line_uses_current_sell_price_by_default():
    p = Product(name="Gás P13", price_sell=110.0)
    assert CartLine(p, 2).subtotal == 220.0
    assert CartLine(p, 2, unit_price=100.0).subtotal == 200.0
    assert cart_total([CartLine(p, 1), CartLine(p, 1, unit_price=90.0)]) == 200.0


def test_create_paid_order_applies_stock_loyalty_and_income(db, make_customer, make_product):
    cliente = make_customer()
    agua = make_product(name="Água Indaiá 20L", category="Água 20L", price_sell=13.0, price_cost=7.0, stock_quantity=10)
    gas = make_product(name="Gás P13", category="Gás", price_sell=110.0, stock_quantity=4)

    pedido = OrderService(db).create_order(
        [CartLine(agua, 3), CartLine(gas, 1)],
        customer_id=cliente.id,
        payment_method="Dinheiro",
    )

    assert pedido.total_amount == pytest.approx(149.0)
    assert pedido.payment_status == PAYMENT_PAID
    assert pedido.delivery_status == DELIVERY_PREPARING
    assert len(db.execute(select(OrderItem)).scalars().all()) == 2

    assert db.get(Product, agua.id).stock_quantity == 7
    assert db.get(Product, gas.id).stock_quantity == 3
    movimentos = db.execute(select(StockMovement)).scalars().all()
    assert {(m.product_id, m.quantity, m.type, m.reason) for m in movimentos} == {
        (agua.id, 3, MOVEMENT_OUT, "Venda"),
        (gas.id, 1, MOVEMENT_OUT, "Venda"),
    }

    assert db.get(Customer, cliente.id).loyalty_count == 3

    receita = db.execute(select(Transaction)).scalars().one()
    assert receita.type == "income"
    assert receita.amount == pytest.approx(149.0)
    assert receita.description == f"Venda Pedido #{pedido.id}"
    assert receita.order_reference == pedido.id


def test_walk_in_order_has_no_customer(db, make_product):
    agua = make_product(name="Água Indaiá 20L", category="Água 20L", price_sell=13.0)
    pedido = OrderService(db).create_order([CartLine(agua, 2)])
    assert pedido.customer_id is None
    assert pedido.customer_name == "Consumidor Final"
    assert db.execute(select(Transaction)).scalars().one().amount == pytest.approx(26.0)


def test_stock_may_go_negative(db, make_product):
    gas = make_product(stock_quantity=1)
    OrderService(db).create_order([CartLine(gas, 3)])
    assert db.get(Product, gas.id).stock_quantity == -2


def test_pending_order_defers_effects_until_paid(db, make_customer, make_product):
    cliente = make_customer()
    agua = make_product(name="Água Gamboa 20L", category="Água 20L", price_sell=12.0, stock_quantity=10)
    service = OrderService(db)

    pedido = service.create_order([CartLine(agua, 2)], customer_id=cliente.id, payment_status=PAYMENT_PENDING)
    assert db.get(Product, agua.id).stock_quantity == 10
    assert db.get(Customer, cliente.id).loyalty_count == 0
    assert db.execute(select(Transaction)).scalars().all() == []

    service.update_payment_status(pedido.id, PAYMENT_PAID)

    assert db.get(Product, agua.id).stock_quantity == 8
    assert db.get(Customer, cliente.id).loyalty_count == 2
    receita = db.execute(select(Transaction)).scalars().one()
    assert receita.description == f"Pagamento Pedido #{pedido.id}"
    assert receita.amount == pytest.approx(24.0)
    mov = db.execute(select(StockMovement)).scalars().one()
    assert mov.reason == "Venda (Confirmada)"


def test_confirming_payment_twice_does_not_duplicate_effects(db, make_product):
    gas = make_product(stock_quantity=10)
    service = OrderService(db)
    pedido = service.create_order([CartLine(gas, 1)], payment_status=PAYMENT_PENDING)

    service.update_payment_status(pedido.id, PAYMENT_PAID)
    service.update_payment_status(pedido.id, PAYMENT_PAID)

    assert db.get(Product, gas.id).stock_quantity == 9
    assert len(db.execute(select(Transaction)).scalars().all()) == 1


def test_paid_to_pending_does_not_reverse(db, make_product):
    gas = make_product(stock_quantity=10)
    service = OrderService(db)
    pedido = service.create_order([CartLine(gas, 2)])

    service.update_payment_status(pedido.id, PAYMENT_PENDING)

    assert db.get(Order, pedido.id).payment_status == PAYMENT_PENDING
    assert db.get(Product, gas.id).stock_quantity == 8
    assert len(db.execute(select(Transaction)).scalars().all()) == 1


def test_courier_cannot_change_payment(db, make_product):
    gas = make_product()
    service = OrderService(db)
    pedido = service.create_order([CartLine(gas, 1)], payment_status=PAYMENT_PENDING)

    with pytest.raises(PermissionDenied):
        service.update_payment_status(pedido.id, PAYMENT_PAID, actor=_courier())
    assert db.get(Order, pedido.id).payment_status == PAYMENT_PENDING

    service.update_payment_status(pedido.id, PAYMENT_PAID, actor=_admin())
    assert db.get(Order, pedido.id).payment_status == PAYMENT_PAID


def test_update_delivery_status(db, make_product):
    gas = make_product()
    service = OrderService(db)
    pedido = service.create_order([CartLine(gas, 1)])

    service.update_delivery_status(pedido.id, DELIVERY_OUT)
    assert db.get(Order, pedido.id).delivery_status == DELIVERY_OUT

    with pytest.raises(ValueError):
        service.update_delivery_status(pedido.id, "Perdido")


def test_create_order_validation(db, make_product):
    gas = make_product()
    service = OrderService(db)
    with pytest.raises(ValueError):
        service.create_order([])
    with pytest.raises(ValueError):
        service.create_order([CartLine(gas, 0)])
    with pytest.raises(ValueError):
        service.create_order([CartLine(gas, 1)], payment_status="Fiado")


def test_failed_order_leaves_nothing_behind(db, make_product):
    gas = make_product(stock_quantity=5)
    fantasma = Product(id=9999, name="Fantasma", category="", price_sell=1.0)

    with pytest.raises(IntegrityError):
        OrderService(db).create_order([CartLine(gas, 1), CartLine(fantasma, 1)])

    assert db.execute(select(Order)).scalars().all() == []
    assert db.execute(select(Transaction)).scalars().all() == []
    assert db.execute(select(StockMovement)).scalars().all() == []
    assert db.get(Product, gas.id).stock_quantity == 5


def test_delete_order_keeps_financial_history(db, make_product):
    gas = make_product(stock_quantity=5)
    service = OrderService(db)
    pedido = service.create_order([CartLine(gas, 2)])

    service.delete_order(pedido.id)

    assert db.get(Order, pedido.id) is None
    assert db.execute(select(OrderItem)).scalars().all() == []
    assert len(db.execute(select(Transaction)).scalars().all()) == 1
    assert db.get(Product, gas.id).stock_quantity == 3


def test_list_orders_newest_first(db, make_product):
    gas = make_product()
    service = OrderService(db)
    primeiro = service.create_order([CartLine(gas, 1)])
    segundo = service.create_order([CartLine(gas, 1)])
    db.get(Order, primeiro.id).created_at = datetime(2024, 1, 1, 9, 0)
    db.commit()

    ids = [o.id for o in service.list_orders()]
    assert ids == [segundo.id, primeiro.id]
    assert service.list_orders(limit=1)[0].id == segundo.id


def _orders():
    return [
        Order(id=1, customer=Customer(name="Ana"), delivery_status=DELIVERY_PREPARING, payment_status=PAYMENT_PAID),
        Order(id=2, customer=Customer(name="Bruno"), delivery_status=DELIVERY_DONE, payment_status=PAYMENT_PAID),
        Order(id=13, customer=None, delivery_status=DELIVERY_OUT, payment_status=PAYMENT_PENDING),
    ]


def test_filter_orders_by_status_group():
    orders = _orders()
    assert [o.id for o in filter_orders(orders, status_filter=FILTER_ACTIVE)] == [1, 13]
    assert [o.id for o in filter_orders(orders, status_filter=FILTER_HISTORY)] == [2]
    assert [o.id for o in filter_orders(orders, status_filter=FILTER_ALL)] == [1, 2, 13]
    assert [o.id for o in filter_orders(orders, status_filter=PAYMENT_PENDING)] == [13]
    assert [o.id for o in filter_orders(orders, status_filter=DELIVERY_DONE)] == [2]


def test_filter_orders_by_search_term():
    orders = _orders()
    assert [o.id for o in filter_orders(orders, search="bru", status_filter=FILTER_ALL)] == [2]
    assert [o.id for o in filter_orders(orders, search="consumidor", status_filter=FILTER_ALL)] == [13]
    # Busca pelo número do pedido
    assert [o.id for o in filter_orders(orders, search="13", status_filter=FILTER_ALL)] == [13]


def test_filter_orders_hides_delivered_without_permission():
    orders = _orders()
    result = filter_orders(orders, status_filter=FILTER_HISTORY, show_delivered=False)
    assert [o.id for o in result] == [1, 13]


@pytest.mark.parametrize(
    "linhas",
    [
        [(0, 1, None)],
        [(0, 3, None), (1, 2, None), (2, 5, None)],
        [(0, 2, 99.9), (1, 1, None), (2, 4, 10.25)],
    ],
)
def test_order_total_matches_stored_items(db, make_product, linhas):
    produtos = [
        make_product(name="Gás P13", price_sell=110.0),
        make_product(name="Água Itagy 20L", category="Água 20L", price_sell=12.5),
        make_product(name="Refrigerante Cola 2L", category="Refrigerante", price_sell=8.75),
    ]
    carrinho = [CartLine(produtos[idx], qtd, unit_price=preco) for idx, qtd, preco in linhas]

    pedido = OrderService(db).create_order(carrinho)

    itens = db.execute(select(OrderItem).where(OrderItem.order_id == pedido.id)).scalars().all()
    assert len(itens) == len(carrinho)
    assert db.get(Order, pedido.id).total_amount == pytest.approx(
        sum(i.price_at_time * i.quantity for i in itens)
    )
    por_produto = {i.product_id: i for i in itens}
    for linha in carrinho:
        item = por_produto[linha.product.id]
        assert item.quantity == linha.quantity
        assert item.price_at_time == pytest.approx(linha.price)


def _failing_commit(*args, **kwargs):
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def test_delivery_update_failure_is_logged_and_rolled_back(db, make_product, monkeypatch, caplog):
    pedido = OrderService(db).create_order([CartLine(make_product(), 1)])
    monkeypatch.setattr(db, "commit", _failing_commit)

    with pytest.raises(OperationalError):
        OrderService(db).update_delivery_status(pedido.id, DELIVERY_DONE)

    monkeypatch.undo()
    assert db.get(Order, pedido.id).delivery_status == DELIVERY_PREPARING
    assert any(r.levelname == "ERROR" and r.exc_info for r in caplog.records)


def test_delete_failure_is_logged_and_keeps_order(db, make_product, monkeypatch, caplog):
    pedido = OrderService(db).create_order([CartLine(make_product(), 2)])
    monkeypatch.setattr(db, "commit", _failing_commit)

    with pytest.raises(OperationalError):
        OrderService(db).delete_order(pedido.id)

    monkeypatch.undo()
    assert db.get(Order, pedido.id) is not None
    assert len(db.execute(select(OrderItem)).scalars().all()) == 1
    assert any("Erro ao excluir pedido" in r.getMessage() for r in caplog.records)
