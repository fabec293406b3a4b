import pytest

from models.transaction import EXPENSE, INCOME, Transaction, parse_category_tags, parse_order_reference, tag_description
from services.finance_service import FinanceService


def test_tag_helpers():
    assert tag_description("Compra de botijões", "Gás") == "[Gás] Compra de botijões"
    assert tag_description("Aluguel", None) == "Aluguel"
    assert parse_category_tags("[Gás] [Água 20L] Frete") == ("Gás", "Água 20L")
    assert parse_category_tags(None) == ()
    assert parse_order_reference("Pagamento Pedido #42") == 42
    assert parse_order_reference("Conta de luz") is None


def test_transaction_belongs_to_category():
    t = Transaction(type=EXPENSE, amount=10.0, description="[Gás] Frete")
    assert t.belongs_to("Gás")
    assert not t.belongs_to("Água 20L")


def test_expense_is_tagged_with_category(db):
    lancamento = FinanceService(db).create_transaction(EXPENSE, 250.0, "Compra de botijões", category="Gás")
    assert lancamento.description == "[Gás] Compra de botijões"
    assert lancamento.category_tags == ("Gás",)


def test_income_ignores_category(db):
    lancamento = FinanceService(db).create_transaction(INCOME, 30.0, "Venda avulsa", category="Gás")
    assert lancamento.description == "Venda avulsa"
    assert lancamento.category_tags == ()


@pytest.mark.parametrize(
    "type_, amount, description",
    [("outro", 10.0, "X"), (EXPENSE, 0, "X"), (EXPENSE, -5.0, "X"), (INCOME, 10.0, "  ")],
)
def test_invalid_transactions_are_rejected(db, type_, amount, description):
    with pytest.raises(ValueError):
        FinanceService(db).create_transaction(type_, amount, description)


def test_list_and_delete_transactions(db):
    service = FinanceService(db)
    primeiro = service.create_transaction(INCOME, 10.0, "A")
    segundo = service.create_transaction(EXPENSE, 5.0, "B")

    assert [t.id for t in service.list_transactions()] == [segundo.id, primeiro.id]

    service.delete_transaction(primeiro.id)
    assert [t.id for t in service.list_transactions()] == [segundo.id]
