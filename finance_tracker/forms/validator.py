"""
Movement Form Validation

Checks a form submission before anything is written. Validation never
fixes values silently: it reports issues, and the form shows the first
error message inline so the user can correct and resubmit.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from finance_tracker.forms.state import EntryFormState
from finance_tracker.models.movement import (
    DESCRIPTION_MAX_LENGTH,
    ExpenseKind,
    MovementDraft,
    MovementKind,
    month_indices_from,
)
from finance_tracker.models.validation import ValidationIssue, ValidationResult

REQUIRED_FIELDS_MESSAGE = "Todos os campos são obrigatórios."
EXPENSE_KIND_MESSAGE = "Selecione o tipo de despesa."
MONTHS_MESSAGE = "Informe por quantos meses a despesa será registrada."
DESCRIPTION_LENGTH_MESSAGE = (
    f"A descrição deve ter no máximo {DESCRIPTION_MAX_LENGTH} caracteres."
)


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Coerce a form or stored amount to Decimal.

    Accepts numbers and numeric strings (either decimal separator).
    Returns None for anything that is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace("R$", "").strip()
        if "," in value:
            value = value.replace(".", "").replace(",", ".")
        if not value:
            return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


class MovementValidator:
    """Validates the movement entry form and edit modal."""

    def validate(
        self,
        state: EntryFormState,
        amount: Any,
        movement_date: Any,
        description: Optional[str],
    ) -> ValidationResult:
        """
        Validate one submission.

        Amount, date and description are required; an amount of zero
        or less counts as missing. The trimmed description must fit the
        stored length limit.
        """
        issues = []

        parsed_amount = parse_amount(amount)
        if parsed_amount is None or parsed_amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message=REQUIRED_FIELDS_MESSAGE,
            ))

        if parse_date(movement_date) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message=REQUIRED_FIELDS_MESSAGE,
            ))

        if not (description or "").strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message=REQUIRED_FIELDS_MESSAGE,
            ))
        elif len(description.strip()) > DESCRIPTION_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="invalid_value",
                message=DESCRIPTION_LENGTH_MESSAGE,
            ))

        issues.extend(self._validate_expense(state))

        return ValidationResult(issues=issues)

    def _validate_expense(self, state: EntryFormState) -> list[ValidationIssue]:
        issues = []
        if state.kind != MovementKind.EXPENSE:
            return issues

        if state.expense_kind is None:
            issues.append(ValidationIssue(
                field="expense_kind",
                issue_type="missing",
                message=EXPENSE_KIND_MESSAGE,
            ))
        elif state.expense_kind == ExpenseKind.FIXED and state.months_count < 1:
            issues.append(ValidationIssue(
                field="months_count",
                issue_type="invalid_value",
                message=MONTHS_MESSAGE,
            ))
        return issues

    def build_draft(
        self,
        state: EntryFormState,
        amount: Any,
        movement_date: Any,
        description: str,
    ) -> MovementDraft:
        """
        Build the draft for a submission that passed validate().

        Raises:
            ValueError: If called with values validate() rejects
        """
        parsed_amount = parse_amount(amount)
        parsed_date = parse_date(movement_date)
        if parsed_amount is None or parsed_date is None:
            raise ValueError("Cannot build a draft from an invalid submission")

        months_span = None
        if state.expense_kind == ExpenseKind.FIXED:
            months_span = month_indices_from(parsed_date, state.months_count)

        return MovementDraft(
            kind=state.kind,
            amount=parsed_amount,
            date=parsed_date,
            description=description.strip(),
            expense_kind=state.expense_kind,
            months_span=months_span,
            payment_status=state.payment_status,
        )
