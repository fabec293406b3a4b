import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parent.parent))

from config.database import Base, SessionLocal, build_engine
from models import category, customer, order, product, profile, stock_movement, transaction  # noqa: F401
from models.customer import Customer
from models.product import Product
from services.auth_service import AuthService


@pytest.fixture
def engine(tmp_path):
    # Arquivo em disco: permite abrir duas sessões independentes no mesmo banco
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = SessionLocal(bind=engine)
    yield session
    session.close()


@pytest.fixture
def make_product(db):
    def _make(name="Gás P13", category="Gás", price_sell=110.0, price_cost=85.0, stock_quantity=10, stock_min=2):
        p = Product(
            name=name,
            category=category,
            price_sell=price_sell,
            price_cost=price_cost,
            stock_quantity=stock_quantity,
            stock_min=stock_min,
            is_active=True,
        )
        db.add(p)
        db.commit()
        db.refresh(p)
        return p

    return _make


@pytest.fixture
def make_customer(db):
    def _make(name="Maria", loyalty_count=0, phone="71 99999-0000", address="Rua A, 10"):
        c = Customer(name=name, loyalty_count=loyalty_count, phone=phone, address=address, is_active=True)
        db.add(c)
        db.commit()
        db.refresh(c)
        return c

    return _make


@pytest.fixture(autouse=True)
def reset_auth_attempts():
    AuthService.reset_attempts()
    yield
    AuthService.reset_attempts()
