"""
Утилиты форматирования для панели показателей (формат pt-BR)
"""

from datetime import date, datetime
from typing import Optional

MONTH_NAMES_PT = [
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
]


def _group_thousands(integer_part: str, separator: str) -> str:
    """Разделение тысяч справа налево"""
    formatted = ''
    for i, digit in enumerate(reversed(integer_part)):
        if i > 0 and i % 3 == 0:
            formatted = separator + formatted
        formatted = digit + formatted
    return formatted


def format_currency(value: float) -> str:
    """
    Форматирование суммы в реалах

    Args:
        value: Сумма

    Returns:
        Строка вида "R$ 1.234,56" (для отрицательных "-R$ 1.234,56")
    """
    sign = "-" if value < 0 else ""
    integer_part, decimal_part = f"{abs(value):.2f}".split('.')
    return f"{sign}R$ {_group_thousands(integer_part, '.')},{decimal_part}"


def format_count(value: int) -> str:
    """Целое число с разделителем тысяч ("1.250")"""
    sign = "-" if value < 0 else ""
    return sign + _group_thousands(str(abs(int(value))), '.')


def format_percent(ratio: float) -> str:
    """Доля в процентах без ограничения сверху (1.5 -> "150%")"""
    return f"{round(ratio * 100):d}%"


def format_month(month: str) -> str:
    """Ключ месяца YYYY-MM в подпись ("Março de 2024")"""
    try:
        year, number = month.split("-")
        return f"{MONTH_NAMES_PT[int(number) - 1]} de {int(year)}"
    except (ValueError, IndexError):
        return month


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.astimezone().strftime("%d/%m/%Y %H:%M")
    return value.strftime("%d/%m/%Y")
