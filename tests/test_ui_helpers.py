import logging

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from models.customer import Customer
from utils import ui_helpers
from utils.ui_helpers import STORE_ERROR_MESSAGE, report_store_error


def test_store_error_rolls_back_logs_and_warns(db, make_customer, monkeypatch, caplog):
    cliente = make_customer(name="Joana")
    mensagens = []
    monkeypatch.setattr(ui_helpers.st, "error", mensagens.append)
    log = logging.getLogger("pages.clientes")

    cliente.name = "Alterado"
    db.flush()
    try:
        raise OperationalError("UPDATE customers", {}, Exception("database is locked"))
    except OperationalError:
        report_store_error(db, log, "atualizar o cliente")

    assert mensagens == [STORE_ERROR_MESSAGE]
    registro = next(r for r in caplog.records if r.name == "pages.clientes")
    assert registro.levelname == "ERROR"
    assert registro.getMessage() == "Erro no banco ao atualizar o cliente"
    assert registro.exc_info[0] is OperationalError
    assert db.execute(select(Customer.name).where(Customer.id == cliente.id)).scalar_one() == "Joana"
