"""Mexican Spanish (es-MX) formatting for amounts and dates in outgoing messages."""

from datetime import date, datetime
from decimal import Decimal
from typing import Union

MONTHS_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def format_currency(amount: Union[int, float, Decimal, None]) -> str:
    """Format an amount as MXN currency, e.g. 1234.5 -> "$1,234.50"."""
    value = Decimal(str(amount or 0))
    if value < 0:
        return f"-${-value:,.2f}"
    return f"${value:,.2f}"


def format_date_short(value: Union[date, datetime]) -> str:
    """Numeric es-MX date without zero padding, e.g. 5/3/2025."""
    return f"{value.day}/{value.month}/{value.year}"


def format_date_long(value: Union[date, datetime]) -> str:
    """Long es-MX date, e.g. "5 de marzo de 2025"."""
    return f"{value.day} de {MONTHS_ES[value.month - 1]} de {value.year}"


def format_datetime_long(value: datetime) -> str:
    """Long es-MX date with time, e.g. "5 de marzo de 2025, 14:05"."""
    return f"{format_date_long(value)}, {value.strftime('%H:%M')}"
