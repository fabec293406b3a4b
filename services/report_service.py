"""
Relatórios: painel, financeiro e movimentação de estoque.

As funções build_* são puras: recebem as linhas já carregadas e devolvem os
totais e as faixas do gráfico (horas ou dias), sem alterar nada.
O ReportService carrega as linhas do banco e chama essas funções.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, selectinload

from models.order import PAYMENT_PAID, Order, OrderItem
from models.product import Product
from models.stock_movement import MOVEMENT_IN, StockMovement
from models.transaction import EXPENSE, INCOME, Transaction

logger = logging.getLogger(__name__)

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
PERIOD_LABELS = {DAILY: "Diário", WEEKLY: "Semanal", MONTHLY: "Mensal"}

UNKNOWN_CUSTOMER = "Cliente não identificado"

INCOME_KEY = "Entradas"
EXPENSE_KEY = "Saídas"

# Horário de funcionamento exibido no gráfico diário
FIRST_HOUR = 8
LAST_HOUR = 20

Buckets = Dict[str, Dict[str, float]]


# ----- Período e faixas -----

def resolve_period(reference: date, kind: str) -> Tuple[datetime, datetime]:
    """
    Intervalo [início, fim) que contém a data de referência:
    diário = o dia; semanal = segunda a domingo; mensal = o mês.
    """
    day = reference.date() if isinstance(reference, datetime) else reference
    if kind == DAILY:
        start = datetime.combine(day, time.min)
        return start, start + timedelta(days=1)
    if kind == WEEKLY:
        start = datetime.combine(day - timedelta(days=day.weekday()), time.min)
        return start, start + timedelta(days=7)
    if kind == MONTHLY:
        start = datetime.combine(day.replace(day=1), time.min)
        return start, start + relativedelta(months=1)
    raise ValueError(f"Período desconhecido: {kind}")


def bucket_label(moment: datetime, kind: str) -> str:
    if kind == DAILY:
        return f"{moment.hour:02d}:00"
    return moment.strftime("%d/%m")


def init_buckets(kind: str, start: datetime, end: datetime) -> Buckets:
    """
    Faixas zeradas, em ordem cronológica: horas 08:00..20:00 no diário,
    cada dia do intervalo (dd/MM) no semanal e mensal.
    """
    buckets: Buckets = {}
    if kind == DAILY:
        for hour in range(FIRST_HOUR, LAST_HOUR + 1):
            buckets[f"{hour:02d}:00"] = {INCOME_KEY: 0, EXPENSE_KEY: 0}
    else:
        current = start
        while current < end:
            buckets[current.strftime("%d/%m")] = {INCOME_KEY: 0, EXPENSE_KEY: 0}
            current += timedelta(days=1)
    return buckets


def _add_to_bucket(buckets: Buckets, moment: Optional[datetime], kind: str, key: str, amount: float) -> None:
    # Fora da tabela (ex.: venda às 22h no diário) fica só nos totais
    if moment is None:
        return
    bucket = buckets.get(bucket_label(moment, kind))
    if bucket is not None:
        bucket[key] += amount


def _in_period(moment: Optional[datetime], start: datetime, end: datetime) -> bool:
    return moment is not None and start <= moment < end


def buckets_to_rows(buckets: Buckets) -> List[Dict[str, float]]:
    return [{"name": label, **values} for label, values in buckets.items()]


def chart_frame(rows: List[Dict[str, float]]) -> pd.DataFrame:
    """DataFrame indexado pela faixa, pronto para st.bar_chart."""
    if not rows:
        return pd.DataFrame(columns=[INCOME_KEY, EXPENSE_KEY])
    return pd.DataFrame(rows).set_index("name")


# ----- Financeiro -----

@dataclass
class FinanceReport:
    kind: str
    start: datetime
    end: datetime
    income_total: float = 0.0
    expense_total: float = 0.0
    profit_total: float = 0.0
    buckets: List[Dict[str, float]] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    category: Optional[str] = None

    @classmethod
    def empty(cls, kind: str, start: datetime, end: datetime, category: Optional[str] = None) -> "FinanceReport":
        return cls(
            kind=kind,
            start=start,
            end=end,
            buckets=buckets_to_rows(init_buckets(kind, start, end)),
            category=category,
        )

    @property
    def balance(self) -> float:
        return self.income_total - self.expense_total

    def chart_frame(self) -> pd.DataFrame:
        return chart_frame(self.buckets)


def item_profit(item: OrderItem, product: Optional[Product]) -> float:
    # Sem custo cadastrado, o item inteiro conta como lucro
    cost = (product.price_cost if product is not None else 0) or 0
    return (float(item.price_at_time or 0) - float(cost)) * (item.quantity or 0)


def compute_profit(items: Iterable[OrderItem], products: Mapping[int, Product]) -> float:
    return sum(item_profit(item, products.get(item.product_id)) for item in items)


def build_finance_report(
    kind: str,
    start: datetime,
    end: datetime,
    transactions: Iterable[Transaction],
    orders: Iterable[Order],
    items: Iterable[OrderItem],
    products: Mapping[int, Product],
    category: Optional[str] = None,
) -> FinanceReport:
    """
    Monta o relatório financeiro do período.

    Sem categoria: totais vêm dos lançamentos; lucro dos itens de pedidos pagos.
    Com categoria: receita e lucro só dos itens pagos daquela categoria (um
    lançamento sintético por pedido, id negativo, nunca gravado) e despesas
    marcadas com "[Categoria]" na descrição.
    """
    report = FinanceReport.empty(kind, start, end, category)
    buckets = init_buckets(kind, start, end)

    paid_orders = {
        o.id: o for o in orders if o.payment_status == PAYMENT_PAID and _in_period(o.created_at, start, end)
    }
    transactions = [t for t in transactions if _in_period(t.created_at, start, end)]

    if category is None:
        for t in transactions:
            if t.type == INCOME:
                report.income_total += t.amount or 0
                _add_to_bucket(buckets, t.created_at, kind, INCOME_KEY, t.amount or 0)
            else:
                report.expense_total += t.amount or 0
                _add_to_bucket(buckets, t.created_at, kind, EXPENSE_KEY, t.amount or 0)
        report.profit_total = compute_profit(
            (i for i in items if i.order_id in paid_orders), products
        )
        listed = list(transactions)
    else:
        revenue_by_order: Dict[int, float] = {}
        for item in items:
            order = paid_orders.get(item.order_id)
            product = products.get(item.product_id)
            if order is None or product is None or product.category != category:
                continue
            revenue = float(item.price_at_time or 0) * (item.quantity or 0)
            report.income_total += revenue
            report.profit_total += item_profit(item, product)
            revenue_by_order[order.id] = revenue_by_order.get(order.id, 0.0) + revenue

        listed = []
        for order_id, revenue in revenue_by_order.items():
            order = paid_orders[order_id]
            listed.append(
                Transaction(
                    id=-order_id,
                    type=INCOME,
                    amount=revenue,
                    description=f"Receita {category} (Pedido #{order_id})",
                    created_at=order.created_at,
                )
            )
            _add_to_bucket(buckets, order.created_at, kind, INCOME_KEY, revenue)

        for t in transactions:
            if t.type == EXPENSE and t.belongs_to(category):
                listed.append(t)
                report.expense_total += t.amount or 0
                _add_to_bucket(buckets, t.created_at, kind, EXPENSE_KEY, t.amount or 0)

    report.transactions = sorted(listed, key=lambda t: t.created_at, reverse=True)
    report.buckets = buckets_to_rows(buckets)
    return report


# ----- Estoque -----

@dataclass
class StockReport:
    kind: str
    start: datetime
    end: datetime
    total_in: int = 0
    total_out: int = 0
    buckets: List[Dict[str, float]] = field(default_factory=list)
    movements: List[StockMovement] = field(default_factory=list)

    @property
    def pie(self) -> List[Dict[str, object]]:
        slices = [
            {"name": INCOME_KEY, "value": self.total_in, "color": "#059669"},
            {"name": EXPENSE_KEY, "value": self.total_out, "color": "#DC2626"},
        ]
        return [s for s in slices if s["value"] > 0]

    def chart_frame(self) -> pd.DataFrame:
        return chart_frame(self.buckets)


def build_stock_report(
    kind: str,
    start: datetime,
    end: datetime,
    movements: Iterable[StockMovement],
    category: Optional[str] = None,
    product_id: Optional[int] = None,
) -> StockReport:
    """Entradas e saídas de estoque no período, com filtro opcional por categoria ou produto."""
    buckets = init_buckets(kind, start, end)
    report = StockReport(kind=kind, start=start, end=end)

    selected = []
    for m in movements:
        if not _in_period(m.created_at, start, end):
            continue
        if category is not None and getattr(m.product, "category", None) != category:
            continue
        if product_id is not None and m.product_id != product_id:
            continue
        selected.append(m)

        if m.type == MOVEMENT_IN:
            report.total_in += m.quantity or 0
            _add_to_bucket(buckets, m.created_at, kind, INCOME_KEY, m.quantity or 0)
        else:
            report.total_out += m.quantity or 0
            _add_to_bucket(buckets, m.created_at, kind, EXPENSE_KEY, m.quantity or 0)

    report.movements = sorted(selected, key=lambda m: m.created_at, reverse=True)
    report.buckets = buckets_to_rows(buckets)
    return report


# ----- Painel -----

@dataclass
class DashboardStats:
    daily_total: float = 0.0
    monthly_total: float = 0.0
    monthly_expenses: float = 0.0
    profit: float = 0.0


def build_dashboard_stats(
    today: date,
    transactions: Iterable[Transaction],
    paid_items: Iterable[OrderItem],
    products: Mapping[int, Product],
) -> DashboardStats:
    """
    Receita de hoje, receita e despesas do mês e lucro dos pedidos pagos do mês.
    paid_items: itens dos pedidos pagos criados no mês corrente.
    """
    stats = DashboardStats()
    for t in transactions:
        if t.created_at is None:
            continue
        same_month = (t.created_at.year, t.created_at.month) == (today.year, today.month)
        if t.type == INCOME:
            if same_month:
                stats.monthly_total += t.amount or 0
            if t.created_at.date() == today:
                stats.daily_total += t.amount or 0
        elif t.type == EXPENSE and same_month:
            stats.monthly_expenses += t.amount or 0
    stats.profit = compute_profit(paid_items, products)
    return stats


class ReportService:
    """
    Carrega as linhas do período e monta os relatórios.
    Se o banco estiver inacessível, devolve relatórios zerados (sem nova tentativa).
    """

    def __init__(self, db: Session):
        self.db = db

    def _products_by_id(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        ids = {pid for pid in product_ids if pid is not None}
        if not ids:
            return {}
        produtos = self.db.execute(select(Product).where(Product.id.in_(ids))).scalars().all()
        return {p.id: p for p in produtos}

    def _orders_and_items(self, start: datetime, end: datetime) -> Tuple[List[Order], List[OrderItem]]:
        orders = (
            self.db.execute(select(Order).where(Order.created_at >= start, Order.created_at < end))
            .unique()
            .scalars()
            .all()
        )
        order_ids = [o.id for o in orders]
        items = []
        if order_ids:
            items = (
                self.db.execute(select(OrderItem).where(OrderItem.order_id.in_(order_ids)))
                .unique()
                .scalars()
                .all()
            )
        return list(orders), list(items)

    def finance_report(self, reference: date, kind: str, category: Optional[str] = None) -> FinanceReport:
        start, end = resolve_period(reference, kind)
        try:
            transactions = (
                self.db.execute(
                    select(Transaction)
                    .where(Transaction.created_at >= start, Transaction.created_at < end)
                    .order_by(Transaction.created_at.desc())
                )
                .scalars()
                .all()
            )
            orders, items = self._orders_and_items(start, end)
            products = self._products_by_id(i.product_id for i in items)
        except OperationalError:
            logger.exception("Banco inacessível ao montar relatório financeiro")
            self.db.rollback()
            return FinanceReport.empty(kind, start, end, category)

        return build_finance_report(kind, start, end, transactions, orders, items, products, category)

    def stock_report(
        self,
        reference: date,
        kind: str,
        category: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> StockReport:
        start, end = resolve_period(reference, kind)
        try:
            movements = (
                self.db.execute(
                    select(StockMovement)
                    .where(StockMovement.created_at >= start, StockMovement.created_at < end)
                    .order_by(StockMovement.created_at.desc())
                )
                .unique()
                .scalars()
                .all()
            )
        except OperationalError:
            logger.exception("Banco inacessível ao montar relatório de estoque")
            self.db.rollback()
            return StockReport(kind=kind, start=start, end=end, buckets=buckets_to_rows(init_buckets(kind, start, end)))

        return build_stock_report(kind, start, end, movements, category, product_id)

    def dashboard(self, today: Optional[date] = None) -> DashboardStats:
        today = today or date.today()
        month_start, month_end = resolve_period(today, MONTHLY)
        try:
            transactions = (
                self.db.execute(
                    select(Transaction).where(
                        Transaction.created_at >= month_start, Transaction.created_at < month_end
                    )
                )
                .scalars()
                .all()
            )
            orders, items = self._orders_and_items(month_start, month_end)
            paid_ids = {o.id for o in orders if o.payment_status == PAYMENT_PAID}
            paid_items = [i for i in items if i.order_id in paid_ids]
            products = self._products_by_id(i.product_id for i in paid_items)
        except OperationalError:
            logger.exception("Banco inacessível ao montar o painel")
            self.db.rollback()
            return DashboardStats()

        return build_dashboard_stats(today, transactions, paid_items, products)

    def recent_orders(self, limit: int = 5) -> List[Order]:
        return list(
            self.db.execute(
                select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
            )
            .unique()
            .scalars()
            .all()
        )

    def transaction_order(self, transaction: Transaction) -> Optional[Order]:
        """Pedido citado na descrição do lançamento ("Pedido #12"), com itens."""
        order_id = transaction.order_reference
        if order_id is None:
            return None
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

    @staticmethod
    def order_customer_label(order: Order) -> str:
        return order.customer.name if order.customer is not None else UNKNOWN_CUSTOMER
