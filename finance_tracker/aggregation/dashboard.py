"""
Dashboard Aggregation

Reduces one user's movements to the four dashboard cards: total
income, total expenses, balance and the fixed/variable expense counts.

summarize() never raises. Movements already went through the model,
but raw documents (maintenance scripts, imports) are accepted as well,
and an amount that cannot be read as a number is skipped with a
warning instead of failing the page.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field

from finance_tracker.forms.validator import parse_amount
from finance_tracker.models.movement import (
    ExpenseKind,
    Movement,
    MovementKind,
    normalize_status,
)

logger = structlog.get_logger(__name__)


class DashboardSummary(BaseModel):
    """Totals shown on the dashboard and the profile page."""

    total_income: Decimal = Field(default=Decimal("0"))
    total_expenses: Decimal = Field(default=Decimal("0"))
    fixed_expense_count: int = Field(default=0, ge=0)
    variable_expense_count: int = Field(default=0, ge=0)
    movement_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses


def _fields(item: Any) -> tuple[Any, Any, Any, Optional[str]]:
    """(kind, raw amount, expense kind, id) of a Movement or a raw document."""
    if isinstance(item, Movement):
        return item.kind, item.amount, item.expense_kind, item.id
    if isinstance(item, Mapping):
        return (
            normalize_status(item.get("tipo")),
            item.get("valor"),
            normalize_status(item.get("despesaTipo")),
            item.get("id"),
        )
    return None, None, None, None


def summarize(movements: Iterable[Any]) -> DashboardSummary:
    """Sum amounts by kind and count expenses by expense kind."""
    income = Decimal("0")
    expenses = Decimal("0")
    fixed = 0
    variable = 0
    counted = 0
    skipped = 0

    for item in movements:
        kind, raw_amount, expense_kind, movement_id = _fields(item)
        amount = parse_amount(raw_amount)
        if amount is None:
            skipped += 1
            logger.warning(
                "invalid_amount_skipped",
                movement_id=movement_id,
                amount=repr(raw_amount),
            )
            continue

        if kind == MovementKind.INCOME:
            income += amount
        elif kind == MovementKind.EXPENSE:
            expenses += amount
            if expense_kind == ExpenseKind.FIXED:
                fixed += 1
            elif expense_kind == ExpenseKind.VARIABLE:
                variable += 1
        else:
            skipped += 1
            logger.warning("unknown_kind_skipped", movement_id=movement_id, kind=repr(kind))
            continue
        counted += 1

    return DashboardSummary(
        total_income=income,
        total_expenses=expenses,
        fixed_expense_count=fixed,
        variable_expense_count=variable,
        movement_count=counted,
        skipped_count=skipped,
    )
