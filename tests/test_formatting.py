from datetime import date

from barpay_api.common.formatting import format_money, format_percentage, format_period


def test_percentage():
    assert format_percentage(0.07) == "7.0%"
    assert format_percentage("0.125") == "12.5%"
    assert format_percentage(None) == "0.0%"


def test_money():
    assert format_money(48700) == "48 700"
    assert format_money(1234567.5) == "1 234 567.50"
    assert format_money(0) == "0"


def test_period_label():
    assert format_period("2024-01-01", date(2024, 1, 31)) == "1 января 2024 — 31 января 2024"
    assert format_period("", "2024-01-31") == "Период не выбран"
