"""
Fluxo de pedidos: criação, confirmação de pagamento, status de entrega e exclusão.

Cada operação roda numa única transação do banco: ou todos os passos
(pedido, itens, baixa de estoque, pontos de fidelidade, lançamento financeiro)
são gravados, ou nenhum é.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from models.order import (
    DELIVERY_DONE,
    DELIVERY_PREPARING,
    DELIVERY_STATUSES,
    PAYMENT_PAID,
    PAYMENT_STATUSES,
    Order,
    OrderItem,
)
from models.product import Product
from models.stock_movement import MOVEMENT_OUT, StockMovement
from models.transaction import INCOME, Transaction
from services.loyalty import add_points, count_qualifying_units
from services.permissions import Capability, authorize

logger = logging.getLogger(__name__)

FILTER_ACTIVE = "Ativos"
FILTER_HISTORY = "Histórico"
FILTER_ALL = "Todos"
ORDER_FILTERS = (FILTER_ACTIVE, FILTER_HISTORY, FILTER_ALL) + DELIVERY_STATUSES + PAYMENT_STATUSES

DELETE_ORDER_WARNING = (
    "Excluir o pedido remove o pedido e seus itens. Estoque, pontos de fidelidade "
    "e lançamentos financeiros já registrados NÃO serão revertidos."
)


@dataclass
class CartLine:
    """Linha do carrinho. unit_price vazio = preço de venda atual do produto."""

    product: Product
    quantity: int
    unit_price: Optional[float] = None

    @property
    def price(self) -> float:
        if self.unit_price is None:
            return float(self.product.price_sell or 0)
        return float(self.unit_price)

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


def cart_total(lines: Iterable[CartLine]) -> float:
    return sum(line.subtotal for line in lines)


def filter_orders(
    orders: Sequence[Order],
    search: str = "",
    status_filter: str = FILTER_ACTIVE,
    show_delivered: bool = True,
) -> List[Order]:
    """
    Filtra a lista de pedidos da tela.
    Sem permissão para ver entregues (entregador), o filtro de status é ignorado
    e os pedidos entregues nunca aparecem.
    """
    termo = (search or "").strip().lower()
    result = []
    for o in orders:
        if not show_delivered and o.delivery_status == DELIVERY_DONE:
            continue

        matches_search = termo in o.customer_name.lower() or termo in str(o.id)
        if not matches_search:
            continue

        if show_delivered:
            if status_filter == FILTER_ACTIVE:
                if o.delivery_status == DELIVERY_DONE:
                    continue
            elif status_filter == FILTER_HISTORY:
                if o.delivery_status != DELIVERY_DONE:
                    continue
            elif status_filter != FILTER_ALL:
                if status_filter not in (o.delivery_status, o.payment_status):
                    continue
        result.append(o)
    return result


class OrderService:
    def __init__(self, db: Session):
        self.db = db

    def list_orders(self, limit: Optional[int] = None) -> List[Order]:
        query = (
            select(Order)
            .options(selectinload(Order.items).joinedload(OrderItem.product))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        if limit:
            query = query.limit(limit)
        return list(self.db.execute(query).unique().scalars().all())

    def get_order(self, order_id: int) -> Optional[Order]:
        return (
            self.db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.items).joinedload(OrderItem.product))
            )
            .unique()
            .scalars()
            .first()
        )

    # ----- Efeitos de pedido pago -----

    def _apply_paid_effects(
        self,
        order: Order,
        lines: List[Tuple[Product, int]],
        reason: str,
        description: str,
    ) -> int:
        """
        Baixa o estoque de cada linha, soma pontos ao cliente e lança a receita.
        Retorna a quantidade de galões que pontuaram.
        """
        for product, quantity in lines:
            self.db.execute(
                update(Product)
                .where(Product.id == product.id)
                .values(stock_quantity=func.coalesce(Product.stock_quantity, 0) - quantity)
                .execution_options(synchronize_session=False)
            )
            self.db.add(
                StockMovement(
                    product_id=product.id,
                    type=MOVEMENT_OUT,
                    quantity=quantity,
                    reason=reason,
                )
            )

        points = count_qualifying_units(lines)
        if order.customer_id:
            add_points(self.db, order.customer_id, points)

        self.db.add(
            Transaction(
                type=INCOME,
                amount=order.total_amount,
                description=description,
            )
        )
        return points

    # ----- Operações -----

    def create_order(
        self,
        lines: Sequence[CartLine],
        customer_id: Optional[int] = None,
        payment_method: str = "Pix",
        payment_status: str = PAYMENT_PAID,
        delivery_status: str = DELIVERY_PREPARING,
    ) -> Order:
        if not lines:
            raise ValueError("O carrinho está vazio.")
        if any(line.quantity <= 0 for line in lines):
            raise ValueError("A quantidade de cada item deve ser maior que zero.")
        if payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Status de pagamento inválido: {payment_status}")
        if delivery_status not in DELIVERY_STATUSES:
            raise ValueError(f"Status de entrega inválido: {delivery_status}")

        try:
            order = Order(
                customer_id=customer_id,
                total_amount=cart_total(lines),
                payment_method=payment_method,
                payment_status=payment_status,
                delivery_status=delivery_status,
            )
            self.db.add(order)
            self.db.flush()

            for line in lines:
                self.db.add(
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product.id,
                        quantity=line.quantity,
                        price_at_time=line.price,
                    )
                )

            points = 0
            if payment_status == PAYMENT_PAID:
                points = self._apply_paid_effects(
                    order,
                    [(line.product, line.quantity) for line in lines],
                    reason="Venda",
                    description=f"Venda Pedido #{order.id}",
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao criar pedido")
            raise

        logger.info(
            "Pedido #%s criado: total=%.2f pagamento=%s pontos=%s",
            order.id,
            order.total_amount,
            payment_status,
            points,
        )
        return order

    def update_payment_status(self, order_id: int, new_status: str, actor=None) -> Order:
        """
        Altera o status de pagamento. Ao passar para "Pago" pela primeira vez,
        aplica a baixa de estoque, os pontos e a receita do pedido.
        Voltar para "Pendente" não desfaz nada.
        """
        if actor is not None:
            authorize(actor.role, Capability.UPDATE_PAYMENT_STATUS)
        if new_status not in PAYMENT_STATUSES:
            raise ValueError(f"Status de pagamento inválido: {new_status}")

        try:
            # Relê o pedido do banco: o status anterior decide se os efeitos já foram aplicados
            order = self.db.get(Order, order_id, populate_existing=True, with_for_update=True)
            if order is None:
                raise LookupError(f"Pedido {order_id} não encontrado")

            previous = order.payment_status
            if new_status == PAYMENT_PAID and previous != PAYMENT_PAID:
                items = self.db.execute(
                    select(OrderItem).where(OrderItem.order_id == order_id)
                ).scalars().all()
                lines = [(item.product, item.quantity) for item in items if item.product is not None]
                self._apply_paid_effects(
                    order,
                    lines,
                    reason="Venda (Confirmada)",
                    description=f"Pagamento Pedido #{order_id}",
                )
                logger.info("Pagamento do pedido #%s confirmado", order_id)

            order.payment_status = new_status
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao atualizar pagamento do pedido #%s", order_id)
            raise
        return order

    def update_delivery_status(self, order_id: int, new_status: str) -> Order:
        if new_status not in DELIVERY_STATUSES:
            raise ValueError(f"Status de entrega inválido: {new_status}")
        order = self.db.get(Order, order_id)
        if order is None:
            raise LookupError(f"Pedido {order_id} não encontrado")
        order.delivery_status = new_status
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao atualizar entrega do pedido #%s", order_id)
            raise
        return order

    def delete_order(self, order_id: int) -> None:
        """
        Exclui os itens e depois o pedido. Estoque, pontos e lançamentos
        já aplicados permanecem como estão.
        """
        try:
            self.db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
            self.db.execute(delete(Order).where(Order.id == order_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao excluir pedido #%s", order_id)
            raise
        logger.info("Pedido #%s excluído", order_id)
