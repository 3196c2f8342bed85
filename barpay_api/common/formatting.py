# barpay_api/common/formatting.py
from datetime import date, datetime

_MONTHS_GENITIVE = [
    "января", "февраля", "марта", "апреля", "мая", "июня",
    "июля", "августа", "сентября", "октября", "ноября", "декабря",
]


def format_money(v, sep: str = " ") -> str:
    try:
        x = float(v or 0)
    except (TypeError, ValueError):
        return str(v)
    # whole amounts without decimals, thousands separated by a space (ru-RU style)
    if x.is_integer():
        return f"{int(x):,}".replace(",", sep)
    return f"{x:,.2f}".replace(",", sep)


def format_percentage(value) -> str:
    """0.07 -> '7.0%'"""
    try:
        return f"{float(value or 0) * 100:.1f}%"
    except (TypeError, ValueError):
        return "0.0%"


def _to_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_day(value) -> str:
    d = _to_date(value)
    return f"{d.day} {_MONTHS_GENITIVE[d.month - 1]} {d.year}"


def format_period(start, end) -> str:
    try:
        return f"{format_day(start)} — {format_day(end)}"
    except (TypeError, ValueError):
        return "Период не выбран"
