"""
Exclusão de clientes e produtos com tratamento de vínculos.

A exclusão direta só funciona para registros sem histórico. Se o banco
recusar por chave estrangeira, a tela oferece duas saídas:
- arquivar (is_active = False): some das listagens, histórico preservado;
- excluir tudo: apaga o registro e todo o histórico ligado a ele.
"""
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.database import is_foreign_key_violation
from models.customer import Customer
from models.order import Order, OrderItem
from models.product import Product
from models.stock_movement import StockMovement

logger = logging.getLogger(__name__)

CUSTOMER = "cliente"
PRODUCT = "produto"


class DeleteConflict(Exception):
    """O registro tem histórico vinculado e não pode ser excluído diretamente."""

    def __init__(self, kind: str, entity_id: int):
        super().__init__(f"O {kind} {entity_id} possui registros vinculados")
        self.kind = kind
        self.entity_id = entity_id


class DeleteService:
    def __init__(self, db: Session):
        self.db = db

    def _try_delete(self, model, entity_id: int, kind: str) -> None:
        try:
            self.db.execute(delete(model).where(model.id == entity_id))
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_foreign_key_violation(exc):
                logger.info("Exclusão do %s %s bloqueada por vínculos", kind, entity_id)
                raise DeleteConflict(kind, entity_id) from exc
            logger.exception("Erro ao excluir %s %s", kind, entity_id)
            raise
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao excluir %s %s", kind, entity_id)
            raise
        logger.info("%s %s excluído", kind.capitalize(), entity_id)

    def _set_active(self, model, entity_id: int, active: bool, kind: str) -> None:
        self.db.execute(
            update(model)
            .where(model.id == entity_id)
            .values(is_active=active)
            .execution_options(synchronize_session="fetch")
        )
        self.db.commit()
        logger.info("%s %s %s", kind.capitalize(), entity_id, "reativado" if active else "arquivado")

    # ----- Clientes -----

    def delete_customer(self, customer_id: int) -> None:
        """Exclusão direta. Lança DeleteConflict se o cliente tiver pedidos."""
        self._try_delete(Customer, customer_id, CUSTOMER)

    def archive_customer(self, customer_id: int) -> None:
        self._set_active(Customer, customer_id, False, CUSTOMER)

    def restore_customer(self, customer_id: int) -> None:
        self._set_active(Customer, customer_id, True, CUSTOMER)

    def cascade_delete_customer(self, customer_id: int) -> None:
        """Apaga itens dos pedidos, os pedidos e por fim o cliente. Irreversível."""
        try:
            order_ids = select(Order.id).where(Order.customer_id == customer_id)
            self.db.execute(
                delete(OrderItem)
                .where(OrderItem.order_id.in_(order_ids))
                .execution_options(synchronize_session=False)
            )
            self.db.execute(
                delete(Order)
                .where(Order.customer_id == customer_id)
                .execution_options(synchronize_session=False)
            )
            self.db.execute(delete(Customer).where(Customer.id == customer_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao excluir cliente %s com histórico", customer_id)
            raise
        logger.info("Cliente %s excluído com todo o histórico", customer_id)

    # ----- Produtos -----

    def delete_product(self, product_id: int) -> None:
        """Exclusão direta. Lança DeleteConflict se o produto tiver vendas ou movimentações."""
        self._try_delete(Product, product_id, PRODUCT)

    def archive_product(self, product_id: int) -> None:
        self._set_active(Product, product_id, False, PRODUCT)

    def restore_product(self, product_id: int) -> None:
        self._set_active(Product, product_id, True, PRODUCT)

    def cascade_delete_product(self, product_id: int) -> None:
        """Apaga itens de pedido e movimentações do produto, depois o produto. Irreversível."""
        try:
            self.db.execute(
                delete(OrderItem)
                .where(OrderItem.product_id == product_id)
                .execution_options(synchronize_session=False)
            )
            self.db.execute(
                delete(StockMovement)
                .where(StockMovement.product_id == product_id)
                .execution_options(synchronize_session=False)
            )
            self.db.execute(delete(Product).where(Product.id == product_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Erro ao excluir produto %s com histórico", product_id)
            raise
        logger.info("Produto %s excluído com todo o histórico", product_id)
