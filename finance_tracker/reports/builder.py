"""
Report aggregation.

ReportData is everything the report page and the PDF need: the
filtered movements, the totals and the split between settled items
and pending expenses.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from finance_tracker.models.movement import Movement
from finance_tracker.reports.filters import ReportFilters, apply_filters

EMPTY_REPORT_MESSAGE = "Nenhum dado encontrado para o relatório."
REPORT_TITLE = "Relatório Financeiro"


class ReportData(BaseModel):
    """Filtered movements and their totals for one month."""

    filters: ReportFilters
    movements: list[Movement] = Field(default_factory=list)
    total_income: Decimal = Field(default=Decimal("0"))
    total_expenses: Decimal = Field(default=Decimal("0"))
    total_pending: Decimal = Field(
        default=Decimal("0"),
        description="Sum of pending expense amounts (included in total_expenses)"
    )

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def is_empty(self) -> bool:
        return not self.movements

    @property
    def settled_items(self) -> list[Movement]:
        """Incomes and paid expenses, in listing order."""
        return [m for m in self.movements if not m.is_pending]

    @property
    def pending_items(self) -> list[Movement]:
        return [m for m in self.movements if m.is_pending]

    @property
    def file_name(self) -> str:
        return f"relatorio_financeiro_{self.filters.year:04d}_{self.filters.month:02d}.pdf"


def build_report(movements: list[Movement], filters: ReportFilters) -> ReportData:
    """Apply the filters and total what is left."""
    selected = apply_filters(movements, filters)

    income = sum((m.amount for m in selected if m.is_income), Decimal("0"))
    expenses = sum((m.amount for m in selected if m.is_expense), Decimal("0"))
    pending = sum((m.amount for m in selected if m.is_pending), Decimal("0"))

    return ReportData(
        filters=filters,
        movements=selected,
        total_income=income,
        total_expenses=expenses,
        total_pending=pending,
    )
