"""
Brazilian Portuguese display formatting.

Currency as "R$ 1.234,56", dates as "dd/mm/aaaa", months as "mm/aaaa".
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from finance_tracker.models.movement import (
    ExpenseKind,
    MovementKind,
    PaymentStatus,
    decode_month_index,
)

CURRENCY = "R$"
NOT_DEFINED = "Não definido"

KIND_LABELS = {
    MovementKind.INCOME: "Receita",
    MovementKind.EXPENSE: "Despesa",
}
EXPENSE_KIND_LABELS = {
    ExpenseKind.FIXED: "Fixa",
    ExpenseKind.VARIABLE: "Variável",
}
STATUS_LABELS = {
    PaymentStatus.PAID: "Pago",
    PaymentStatus.PENDING: "Pendente",
}


def format_currency(value: Decimal) -> str:
    """1234.5 -> 'R$ 1.234,50'; negatives keep the sign in front."""
    amount = Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    # Format with US separators, then swap them
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{CURRENCY} {text}"


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_month(index: int) -> str:
    """Absolute month index -> 'mm/aaaa'."""
    year, month = decode_month_index(index)
    return f"{month:02d}/{year:04d}"


def format_month_range(months: Any) -> str:
    """
    Compress a collection of month indices into 'mm/aaaa a mm/aaaa'.

    A single month prints alone. Missing, non-list or empty data
    prints "Não definido".
    """
    if not isinstance(months, (list, tuple)):
        return NOT_DEFINED
    indices = sorted(m for m in months if isinstance(m, int) and not isinstance(m, bool))
    if not indices:
        return NOT_DEFINED
    first, last = indices[0], indices[-1]
    if first == last:
        return format_month(first)
    return f"{format_month(first)} a {format_month(last)}"


def format_month_count(months: Optional[list[int]]) -> str:
    if not months:
        return "-"
    return "1 mês" if len(months) == 1 else f"{len(months)} meses"


def label(value: Any, labels: dict, default: str = "-") -> str:
    """Display label for an enum value, '-' when absent."""
    if value is None:
        return default
    return labels.get(value, str(value))
