import pytest
from sqlalchemy import select

from models.category import Category
from models.stock_movement import MOVEMENT_IN, StockMovement
from services.catalog_service import DEFAULT_CATEGORIES, CategoryService, DuplicateCategory, ProductService


def test_default_categories_when_table_is_empty(db):
    categorias = CategoryService(db).list_categories()
    assert [c.name for c in categorias] == [name for name, _ in DEFAULT_CATEGORIES]
    # Não são gravadas só por serem listadas
    assert db.execute(select(Category)).scalars().all() == []


def test_seed_defaults_only_once(db):
    service = CategoryService(db)
    assert service.seed_defaults() == len(DEFAULT_CATEGORIES)
    assert service.seed_defaults() == 0
    assert len(db.execute(select(Category)).scalars().all()) == len(DEFAULT_CATEGORIES)


def test_emoji_lookup(db):
    service = CategoryService(db)
    assert service.emoji_for("Água 20L") == "💧"
    assert service.emoji_for("Inexistente") == "📦"


def test_save_category_rejects_duplicates(db):
    service = CategoryService(db)
    criada = service.save("Gelo", "🧊")
    assert criada.id is not None

    with pytest.raises(DuplicateCategory):
        service.save("Gelo", "❄️")

    renomeada = service.save("Gelo em cubo", "🧊", category_id=criada.id)
    assert renomeada.name == "Gelo em cubo"

    with pytest.raises(ValueError):
        service.save("  ", "🧊")


def test_delete_category(db):
    service = CategoryService(db)
    criada = service.save("Gelo", "🧊")
    service.delete(criada.id)
    assert db.get(Category, criada.id) is None


def test_save_product_create_and_update(db):
    service = ProductService(db)
    produto = service.save(
        {"name": " Gás P45 ", "category": "Gás", "price_sell": 390.0, "price_cost": 320.0, "stock_quantity": 3, "stock_min": 2}
    )
    assert produto.name == "Gás P45"
    assert produto.is_active is True

    atualizado = service.save({"name": "Gás P45", "price_sell": 400.0}, product_id=produto.id)
    assert atualizado.price_sell == 400.0
    assert atualizado.price_cost == 320.0

    with pytest.raises(ValueError):
        service.save({"name": ""})


def test_search_and_low_stock(db, make_product):
    make_product(name="Gás P13", category="Gás", stock_quantity=1, stock_min=2)
    make_product(name="Coca-Cola 2L", category="Refrigerante", stock_quantity=20, stock_min=5)
    make_product(name="Guaraná 2L", category="Refrigerante", stock_quantity=5, stock_min=5)
    service = ProductService(db)

    assert [p.name for p in service.list_active("refri")] == ["Coca-Cola 2L", "Guaraná 2L"]
    assert {p.name for p in service.low_stock()} == {"Gás P13", "Guaraná 2L"}


def test_add_stock_records_movement(db, make_product):
    gas = make_product(stock_quantity=3)

    atualizado = ProductService(db).add_stock(gas.id, 10, reason="Compra fornecedor")

    assert atualizado.stock_quantity == 13
    mov = db.execute(select(StockMovement)).scalars().one()
    assert (mov.type, mov.quantity, mov.reason) == (MOVEMENT_IN, 10, "Compra fornecedor")


def test_add_stock_requires_positive_quantity(db, make_product):
    gas = make_product()
    with pytest.raises(ValueError):
        ProductService(db).add_stock(gas.id, 0)
