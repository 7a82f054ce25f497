"""Draft builders shared by the test modules."""

from datetime import date
from decimal import Decimal

from finance_tracker.models import MovementDraft


def income(amount="1000", day=date(2024, 12, 1), description="Salário"):
    return MovementDraft(
        kind="receita",
        amount=Decimal(amount),
        date=day,
        description=description,
    )


def expense(
    amount="300",
    day=date(2024, 12, 2),
    description="Conta de Luz",
    expense_kind="fixa",
    status=None,
    months=None,
):
    return MovementDraft(
        kind="despesa",
        amount=Decimal(amount),
        date=day,
        description=description,
        expense_kind=expense_kind,
        payment_status=status,
        months_span=months,
    )
