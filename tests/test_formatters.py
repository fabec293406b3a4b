from datetime import date, datetime

from utils.formatters import format_currency, format_date


def test_format_currency_brazilian_style():
    assert format_currency(1234.5) == "R$ 1.234,50"
    assert format_currency(0) == "R$ 0,00"
    assert format_currency(None) == "R$ 0,00"
    assert format_currency(-12.3) == "-R$ 12,30"


def test_format_date():
    assert format_date(date(2024, 5, 15)) == "15/05/2024"
    assert format_date(datetime(2024, 5, 15, 9, 5)) == "15/05/2024 09:05"
    assert format_date(None) == "-"
