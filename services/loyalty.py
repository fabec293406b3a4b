"""
Programa de fidelidade: identifica galões de água 20L de marcas participantes
e faz o resgate do brinde (a cada 10 galões, 1 grátis).
"""
import logging
import unicodedata
from typing import Iterable, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from models.customer import Customer
from models.product import Product
from models.stock_movement import MOVEMENT_OUT, StockMovement
from models.transaction import INCOME, Transaction

logger = logging.getLogger(__name__)

ALLOWED_BRANDS = ("GAMBOA", "INDAIA", "ITAGY", "ITAGI", "JORDAO", "MAIORCA")
WATER_TOKEN = "AGUA"
SIZE_TOKENS = ("20L", "20 L", "20LITROS", "20 LITROS")

REWARD_THRESHOLD = 10
REWARD_CATEGORY = "Água 20L"


def normalize(text: str) -> str:
    """Remove acentos (NFD sem marcas combinantes) e coloca em maiúsculas."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    return stripped.upper()


def matches(name: str | None, category: str | None) -> bool:
    """
    True se o item conta como um galão de água 20L de marca participante.
    Marca, palavra "AGUA" e tamanho são procurados no nome + categoria.
    """
    search = normalize(f"{name or ''} {category or ''}")
    is_allowed_brand = any(brand in search for brand in ALLOWED_BRANDS)
    has_water = WATER_TOKEN in search
    has_size = any(token in search for token in SIZE_TOKENS)
    return is_allowed_brand and has_water and has_size


def count_qualifying_units(lines: Iterable[Tuple[Product, int]]) -> int:
    """Soma as quantidades das linhas (produto, quantidade) que pontuam."""
    return sum(
        quantity for product, quantity in lines if product and matches(product.name, product.category)
    )


def add_points(db: Session, customer_id: int, points: int) -> None:
    """
    Soma pontos direto no banco (loyalty_count = loyalty_count + n),
    partindo sempre do valor gravado e não do que a tela carregou.
    Não faz commit.
    """
    db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .values(loyalty_count=func.coalesce(Customer.loyalty_count, 0) + points)
        .execution_options(synchronize_session=False)
    )


def _find_reward_product(db: Session) -> Product | None:
    """Primeiro produto (por id) da categoria de água 20L ou com "AGUA 20L" no nome."""
    for product in db.execute(select(Product).order_by(Product.id)).scalars().all():
        if product.category == REWARD_CATEGORY or "AGUA 20L" in normalize(product.name or ""):
            return product
    return None


def redeem_reward(db: Session, customer_id: int) -> bool:
    """
    Resgata um brinde: tira 10 pontos, registra entrada de R$ 0,00 e baixa
    1 galão do estoque (se houver produto de água 20L cadastrado).
    Retorna False, sem alterar nada, se o cliente tiver menos de 10 pontos.
    """
    customer = db.get(Customer, customer_id)
    if customer is None:
        return False

    result = db.execute(
        update(Customer)
        .where(Customer.id == customer_id)
        .where(func.coalesce(Customer.loyalty_count, 0) >= REWARD_THRESHOLD)
        .values(loyalty_count=func.coalesce(Customer.loyalty_count, 0) - REWARD_THRESHOLD)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        logger.info("Resgate negado para cliente %s: pontos insuficientes", customer_id)
        return False

    try:
        db.add(
            Transaction(
                type=INCOME,
                amount=0.0,
                description=f"Brinde Fidelidade - {customer.name}",
            )
        )

        product = _find_reward_product(db)
        if product is not None:
            db.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock_quantity=func.coalesce(Product.stock_quantity, 0) - 1)
                .execution_options(synchronize_session=False)
            )
            db.add(
                StockMovement(
                    product_id=product.id,
                    type=MOVEMENT_OUT,
                    quantity=1,
                    reason=f"Brinde (Fidelidade: {customer.name})",
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Brinde resgatado pelo cliente %s (%s)", customer_id, customer.name)
    return True
