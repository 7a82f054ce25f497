"""
Report filters and date windows.

Every filter here is a pure function over a list of movements and is
idempotent: filtering an already-filtered list with the same
arguments returns the same list.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.movement import (
    Movement,
    MovementKind,
    PaymentStatus,
    normalize_status,
)


class KindFilter(str, Enum):
    INCOME = "receita"
    EXPENSE = "despesa"
    ALL = "todos"


class StatusFilter(str, Enum):
    PAID = "pago"
    PENDING = "pendente"
    ALL = "todos"


def month_window(month: int, year: int) -> tuple[date, date]:
    """Half-open window [first of month, first of next month)."""
    start = date(year, month, 1)
    if month == 12:
        return start, date(year + 1, 1, 1)
    return start, date(year, month + 1, 1)


def last_day_of_month(month: int, year: int) -> date:
    """Day zero of the next month."""
    _, next_start = month_window(month, year)
    return next_start - timedelta(days=1)


class ReportFilters(BaseModel):
    """The four report controls."""

    kind: KindFilter = Field(default=KindFilter.ALL)
    status: StatusFilter = Field(default=StatusFilter.ALL)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=9999)

    @property
    def movement_kind(self) -> Optional[MovementKind]:
        """The kind to query by, or None for all kinds."""
        if self.kind == KindFilter.ALL:
            return None
        return MovementKind(self.kind.value)

    @property
    def payment_status(self) -> Optional[PaymentStatus]:
        if self.status == StatusFilter.ALL:
            return None
        return PaymentStatus(self.status.value)

    @property
    def period_start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def period_end(self) -> date:
        return last_day_of_month(self.month, self.year)

    @property
    def window(self) -> tuple[date, date]:
        return month_window(self.month, self.year)


def filter_by_kind(movements: list[Movement], kind: KindFilter) -> list[Movement]:
    if KindFilter(kind) == KindFilter.ALL:
        return list(movements)
    return [m for m in movements if m.kind.value == KindFilter(kind).value]


def filter_by_status(movements: list[Movement], status: StatusFilter) -> list[Movement]:
    """
    Keep expenses whose payment status matches.

    Incomes have no payment status and always pass.
    """
    status = StatusFilter(status)
    if status == StatusFilter.ALL:
        return list(movements)
    return [
        m for m in movements
        if m.is_income or normalize_status(m.payment_status) == status.value
    ]


def filter_by_month(movements: list[Movement], month: int, year: int) -> list[Movement]:
    return [m for m in movements if m.date.month == month and m.date.year == year]


def apply_filters(movements: list[Movement], filters: ReportFilters) -> list[Movement]:
    """Kind, status, then month/year."""
    selected = filter_by_kind(movements, filters.kind)
    selected = filter_by_status(selected, filters.status)
    return filter_by_month(selected, filters.month, filters.year)
