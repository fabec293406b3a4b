from sqlalchemy import Boolean, Column, Float, Integer, String

from config.database import Base


class Product(Base):
    """
    Produtos da distribuidora (gás, água, refrigerantes...).
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    # Texto livre; na tela é restrito ao nome de uma Category
    category = Column(String(100), nullable=False, default="")
    price_cost = Column(Float, nullable=False, default=0.0)
    price_sell = Column(Float, nullable=False, default=0.0)
    # Pode ficar negativo: vendas não são bloqueadas por falta de estoque
    stock_quantity = Column(Integer, nullable=True, default=0)
    stock_min = Column(Integer, nullable=True, default=5)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_quantity or 0) <= (self.stock_min or 0)
