"""
Cadastro de produtos, categorias e entradas manuais de estoque.
"""
import logging
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.category import Category
from models.product import Product
from models.stock_movement import MOVEMENT_IN, StockMovement

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    ("Gás", "📦"),
    ("Água 20L", "💧"),
    ("Água de coco", "🥥"),
    ("Refrigerante", "🥤"),
)

PRODUCT_FIELDS = ("name", "category", "price_sell", "price_cost", "stock_quantity", "stock_min")


class DuplicateCategory(Exception):
    """Já existe uma categoria com esse nome."""


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def default_categories() -> List[Category]:
        # Objetos transitórios, nunca adicionados à sessão
        return [
            Category(id=i, name=name, emoji=emoji)
            for i, (name, emoji) in enumerate(DEFAULT_CATEGORIES, start=1)
        ]

    def list_categories(self) -> List[Category]:
        """Categorias do banco; se não houver nenhuma, as categorias padrão."""
        categorias = self.db.execute(select(Category).order_by(Category.name)).scalars().all()
        return list(categorias) or self.default_categories()

    def emoji_for(self, category_name: str, categories: Optional[List[Category]] = None) -> str:
        for c in categories if categories is not None else self.list_categories():
            if c.name == category_name:
                return c.emoji
        return "📦"

    def seed_defaults(self) -> int:
        """Grava as categorias padrão se a tabela estiver vazia."""
        if self.db.query(func.count(Category.id)).scalar():
            return 0
        for name, emoji in DEFAULT_CATEGORIES:
            self.db.add(Category(name=name, emoji=emoji))
        self.db.commit()
        logger.info("Categorias padrão cadastradas")
        return len(DEFAULT_CATEGORIES)

    def save(self, name: str, emoji: str, category_id: Optional[int] = None) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValueError("Informe um nome para a categoria.")

        existente = self.db.query(Category).filter(Category.name == name).first()
        if existente and existente.id != category_id:
            raise DuplicateCategory(name)

        if category_id is None:
            categoria = Category(name=name, emoji=emoji or "📦")
            self.db.add(categoria)
        else:
            categoria = self.db.get(Category, category_id)
            if categoria is None:
                raise LookupError(f"Categoria {category_id} não encontrada")
            categoria.name = name
            categoria.emoji = emoji or "📦"
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateCategory(name) from exc
        self.db.refresh(categoria)
        return categoria

    def delete(self, category_id: int) -> None:
        categoria = self.db.get(Category, category_id)
        if categoria is not None:
            self.db.delete(categoria)
            self.db.commit()


class ProductService:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self, search: str = "") -> List[Product]:
        query = select(Product).where(Product.is_active.is_(True)).order_by(Product.name)
        termo = (search or "").strip()
        if termo:
            like = f"%{termo}%"
            query = query.where(or_(Product.name.ilike(like), Product.category.ilike(like)))
        return list(self.db.execute(query).scalars().all())

    def list_archived(self) -> List[Product]:
        return list(
            self.db.execute(select(Product).where(Product.is_active.is_(False)).order_by(Product.name))
            .scalars()
            .all()
        )

    def get(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def low_stock(self) -> List[Product]:
        produtos = self.db.execute(select(Product).order_by(Product.name)).scalars().all()
        return [p for p in produtos if p.is_low_stock]

    def save(self, data: dict, product_id: Optional[int] = None) -> Product:
        if not (data.get("name") or "").strip():
            raise ValueError("Preencha o nome do produto.")

        if product_id is None:
            produto = Product(is_active=True)
            self.db.add(produto)
        else:
            produto = self.db.get(Product, product_id)
            if produto is None:
                raise LookupError(f"Produto {product_id} não encontrado")

        for field in PRODUCT_FIELDS:
            if field in data:
                setattr(produto, field, data[field])
        produto.name = produto.name.strip()
        self.db.commit()
        self.db.refresh(produto)
        return produto

    def add_stock(self, product_id: int, quantity: int, reason: str = "Entrada manual") -> Product:
        """Entrada de estoque: soma a quantidade e registra a movimentação."""
        if quantity <= 0:
            raise ValueError("A quantidade de entrada deve ser maior que zero.")
        try:
            self.db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(stock_quantity=func.coalesce(Product.stock_quantity, 0) + quantity)
                .execution_options(synchronize_session=False)
            )
            self.db.add(
                StockMovement(
                    product_id=product_id,
                    type=MOVEMENT_IN,
                    quantity=quantity,
                    reason=reason,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Entrada de %s un. no produto %s", quantity, product_id)
        return self.db.get(Product, product_id)
