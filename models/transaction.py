"""
Lançamentos financeiros (entradas e saídas).

Despesas podem ser atribuídas a uma categoria de produto escrevendo
"[NomeDaCategoria]" na descrição, ex.: "[Gás] Compra de botijões".
Esse formato é mantido no banco; na leitura vira category_tags.
"""
import re
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String

from config.database import Base

INCOME = "income"
EXPENSE = "expense"

_TAG_RE = re.compile(r"\[([^\[\]]+)\]")
_ORDER_REF_RE = re.compile(r"Pedido #(\d+)")


def tag_description(description: str, category: str | None) -> str:
    """Prefixa a descrição com a marcação de categoria, se houver categoria."""
    if not category:
        return description
    return f"[{category}] {description}"


def parse_category_tags(description: str | None) -> tuple[str, ...]:
    return tuple(_TAG_RE.findall(description or ""))


def parse_order_reference(description: str | None) -> int | None:
    """Número do pedido citado na descrição ("Venda Pedido #12"), se houver."""
    match = _ORDER_REF_RE.search(description or "")
    return int(match.group(1)) if match else None


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(10), nullable=False)  # income / expense
    amount = Column(Float, nullable=False, default=0.0)
    description = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    @property
    def category_tags(self) -> tuple[str, ...]:
        return parse_category_tags(self.description)

    def belongs_to(self, category: str) -> bool:
        return category in self.category_tags

    @property
    def order_reference(self) -> int | None:
        return parse_order_reference(self.description)
