from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from config.database import Base

PAYMENT_PENDING = "Pendente"
PAYMENT_PAID = "Pago"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID)

DELIVERY_PREPARING = "Em preparo"
DELIVERY_OUT = "Saiu para entrega"
DELIVERY_DONE = "Entregue"
DELIVERY_STATUSES = (DELIVERY_PREPARING, DELIVERY_OUT, DELIVERY_DONE)

PAYMENT_METHODS = ("Pix", "Dinheiro", "Cartão de Crédito", "Cartão de Débito")

WALK_IN_CUSTOMER = "Consumidor Final"


class Order(Base):
    """
    Pedido. customer_id nulo = venda de balcão (Consumidor Final).
    total_amount é calculado na tela a partir dos itens.
    """

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    payment_method = Column(String(50), nullable=True)
    payment_status = Column(String(20), nullable=True, default=PAYMENT_PENDING)
    delivery_status = Column(String(30), nullable=True, default=DELIVERY_PREPARING)
    created_at = Column(DateTime, nullable=True, default=datetime.now, index=True)

    customer = relationship("Customer", lazy="joined")
    items = relationship("OrderItem", back_populates="order", passive_deletes="all")

    @property
    def customer_name(self) -> str:
        return self.customer.name if self.customer else WALK_IN_CUSTOMER

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAYMENT_PAID


class OrderItem(Base):
    """
    Item de pedido. price_at_time guarda o preço praticado na venda.
    """

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    price_at_time = Column(Float, nullable=False, default=0.0)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="joined")

    @property
    def subtotal(self) -> float:
        return (self.price_at_time or 0) * (self.quantity or 0)

    @property
    def product_name(self) -> str:
        return self.product.name if self.product else "Produto Desconhecido"
