"""
Lançamentos financeiros manuais (entradas e despesas).
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from models.transaction import EXPENSE, INCOME, Transaction, tag_description

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = (INCOME, EXPENSE)
TYPE_LABELS = {INCOME: "Entrada", EXPENSE: "Saída"}


class FinanceService:
    def __init__(self, db: Session):
        self.db = db

    def list_transactions(self, limit: Optional[int] = None) -> List[Transaction]:
        query = select(Transaction).order_by(Transaction.created_at.desc(), Transaction.id.desc())
        if limit:
            query = query.limit(limit)
        return list(self.db.execute(query).scalars().all())

    def create_transaction(
        self,
        type: str,
        amount: float,
        description: str,
        category: Optional[str] = None,
    ) -> Transaction:
        """
        Registra um lançamento. Só despesas recebem a marcação de categoria
        ("[Gás] Compra de botijões"); em entradas a categoria é ignorada.
        """
        if type not in TRANSACTION_TYPES:
            raise ValueError(f"Tipo de lançamento inválido: {type}")
        if amount is None or amount <= 0:
            raise ValueError("O valor deve ser maior que zero.")
        description = (description or "").strip()
        if not description:
            raise ValueError("Informe uma descrição.")

        if type == EXPENSE:
            description = tag_description(description, category)

        lancamento = Transaction(type=type, amount=float(amount), description=description)
        self.db.add(lancamento)
        self.db.commit()
        self.db.refresh(lancamento)
        logger.info("Lançamento %s (%s) de %.2f registrado", lancamento.id, type, lancamento.amount)
        return lancamento

    def delete_transaction(self, transaction_id: int) -> None:
        self.db.execute(delete(Transaction).where(Transaction.id == transaction_id))
        self.db.commit()
        logger.info("Lançamento %s excluído", transaction_id)
