"""
Movimentação de estoque: histórico de entradas e saídas por produto (somente inserção).
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from config.database import Base

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    type = Column(String(10), nullable=False)  # in / out
    quantity = Column(Integer, nullable=False, default=0)
    reason = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=True, default=datetime.now, index=True)

    product = relationship("Product", lazy="joined")
