from datetime import date, datetime
from typing import Optional


def format_currency(value: Optional[float]) -> str:
    """
    Formata um número como moeda em reais: 1234.5 -> "R$ 1.234,50".
    """
    value = value or 0
    sinal = "-" if value < 0 else ""
    texto = f"{abs(value):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{sinal}R$ {texto}"


def format_date(d: date | datetime | None) -> str:
    """
    Formata datas no padrão brasileiro.
    """
    if d is None:
        return "-"
    if isinstance(d, datetime):
        return d.strftime("%d/%m/%Y %H:%M")
    return d.strftime("%d/%m/%Y")


def format_quantity(value: Optional[int], unit: str = "un.") -> str:
    return f"{int(value or 0)} {unit}"
