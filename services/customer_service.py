"""
Cadastro de clientes, histórico de compras e resgate de brindes.
"""
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from models.customer import Customer
from models.order import Order, OrderItem
from services import loyalty

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ("name", "address", "phone", "notes", "loyalty_count")


class CustomerService:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self, search: str = "") -> List[Customer]:
        query = select(Customer).where(Customer.is_active.is_(True)).order_by(Customer.name)
        termo = (search or "").strip()
        if termo:
            like = f"%{termo}%"
            query = query.where(or_(Customer.name.ilike(like), Customer.phone.ilike(like)))
        return list(self.db.execute(query).scalars().all())

    def list_archived(self) -> List[Customer]:
        return list(
            self.db.execute(select(Customer).where(Customer.is_active.is_(False)).order_by(Customer.name))
            .scalars()
            .all()
        )

    def create(self, name: str, address: str = "", phone: str = "", notes: str = "") -> Customer:
        if not (name or "").strip():
            raise ValueError("Informe o nome do cliente.")
        cliente = Customer(
            name=name.strip(),
            address=address or None,
            phone=phone or None,
            notes=notes or None,
            loyalty_count=0,
            is_active=True,
        )
        self.db.add(cliente)
        self.db.commit()
        self.db.refresh(cliente)
        logger.info("Cliente %s cadastrado", cliente.id)
        return cliente

    def update(self, customer_id: int, data: dict) -> Customer:
        """
        Atualiza os dados do cliente, inclusive ajuste manual de pontos.
        """
        cliente = self.db.get(Customer, customer_id)
        if cliente is None:
            raise LookupError(f"Cliente {customer_id} não encontrado")
        if "name" in data and not (data["name"] or "").strip():
            raise ValueError("Informe o nome do cliente.")
        if data.get("loyalty_count") is not None and int(data["loyalty_count"]) < 0:
            raise ValueError("A pontuação de fidelidade não pode ser negativa.")

        for field in CUSTOMER_FIELDS:
            if field in data:
                setattr(cliente, field, data[field])
        self.db.commit()
        self.db.refresh(cliente)
        return cliente

    def history(self, customer_id: int) -> List[Order]:
        """Pedidos do cliente, do mais recente para o mais antigo, com itens."""
        return list(
            self.db.execute(
                select(Order)
                .where(Order.customer_id == customer_id)
                .options(selectinload(Order.items).joinedload(OrderItem.product))
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            .unique()
            .scalars()
            .all()
        )

    def redeem_reward(self, customer_id: int) -> bool:
        return loyalty.redeem_reward(self.db, customer_id)

    def get(self, customer_id: int) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)
