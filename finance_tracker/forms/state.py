"""
Entry Form State Machine

The movement form has three linked selections: kind, expense kind
and payment status. Which controls are visible, and which values
they default to, depends on the combination. The rules are a
transition table over EntryFormState so each one is a pure function:

    kind = receita            -> expense controls hidden and cleared
    expense_kind = variavel   -> status forced to "pago", control hidden
    expense_kind = fixa       -> status defaults to "pendente", months shown
    status change while locked -> ignored
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, MutableMapping, Optional

from finance_tracker.models.movement import (
    ExpenseKind,
    Movement,
    MovementKind,
    PaymentStatus,
)


class FormEvent(str, Enum):
    SELECT_KIND = "select_kind"
    SELECT_EXPENSE_KIND = "select_expense_kind"
    SELECT_PAYMENT_STATUS = "select_payment_status"
    SET_MONTHS_COUNT = "set_months_count"


# Payment status each expense kind starts with
EXPENSE_KIND_DEFAULT_STATUS = {
    ExpenseKind.FIXED: PaymentStatus.PENDING,
    ExpenseKind.VARIABLE: PaymentStatus.PAID,
}

# Expense kinds whose payment status the user cannot change
LOCKED_STATUS_KINDS = frozenset({ExpenseKind.VARIABLE})


@dataclass(frozen=True)
class EntryFormState:
    """The conditional part of the movement form."""

    kind: MovementKind = MovementKind.INCOME
    expense_kind: Optional[ExpenseKind] = None
    payment_status: Optional[PaymentStatus] = None
    months_count: int = 1

    @property
    def shows_expense_kind(self) -> bool:
        return self.kind == MovementKind.EXPENSE

    @property
    def shows_payment_status(self) -> bool:
        return (
            self.kind == MovementKind.EXPENSE
            and self.expense_kind is not None
            and self.expense_kind not in LOCKED_STATUS_KINDS
        )

    @property
    def shows_months(self) -> bool:
        return self.kind == MovementKind.EXPENSE and self.expense_kind == ExpenseKind.FIXED

    @property
    def status_locked(self) -> bool:
        return self.expense_kind in LOCKED_STATUS_KINDS


def select_kind(state: EntryFormState, kind: MovementKind) -> EntryFormState:
    kind = MovementKind(kind)
    if kind == MovementKind.INCOME:
        return EntryFormState(kind=kind)
    return replace(state, kind=kind)


def select_expense_kind(
    state: EntryFormState,
    expense_kind: Optional[ExpenseKind],
) -> EntryFormState:
    if state.kind != MovementKind.EXPENSE:
        return state
    if expense_kind is None or expense_kind == "":
        return replace(state, expense_kind=None, payment_status=None, months_count=1)
    expense_kind = ExpenseKind(expense_kind)
    return replace(
        state,
        expense_kind=expense_kind,
        payment_status=EXPENSE_KIND_DEFAULT_STATUS[expense_kind],
        months_count=state.months_count if expense_kind == ExpenseKind.FIXED else 1,
    )


def select_payment_status(
    state: EntryFormState,
    status: PaymentStatus,
) -> EntryFormState:
    if state.kind != MovementKind.EXPENSE or state.expense_kind is None:
        return state
    if state.status_locked:
        return state
    return replace(state, payment_status=PaymentStatus(status))


def set_months_count(state: EntryFormState, count: int) -> EntryFormState:
    if not state.shows_months:
        return state
    return replace(state, months_count=int(count))


TRANSITIONS: dict[FormEvent, Callable[[EntryFormState, Any], EntryFormState]] = {
    FormEvent.SELECT_KIND: select_kind,
    FormEvent.SELECT_EXPENSE_KIND: select_expense_kind,
    FormEvent.SELECT_PAYMENT_STATUS: select_payment_status,
    FormEvent.SET_MONTHS_COUNT: set_months_count,
}


def transition(state: EntryFormState, event: FormEvent, value: Any) -> EntryFormState:
    """Apply one form event and return the new state."""
    return TRANSITIONS[FormEvent(event)](state, value)


def state_for_movement(
    kind: MovementKind,
    expense_kind: Optional[ExpenseKind],
    payment_status: Optional[PaymentStatus],
    months_count: int = 1,
) -> EntryFormState:
    """Replay the transitions that lead to an existing movement's values (edit modal)."""
    state = transition(EntryFormState(), FormEvent.SELECT_KIND, kind)
    state = transition(state, FormEvent.SELECT_EXPENSE_KIND, expense_kind)
    if payment_status is not None:
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, payment_status)
    return transition(state, FormEvent.SET_MONTHS_COUNT, max(months_count, 1))


def reset_edit_state(
    session_state: MutableMapping[str, Any],
    key_prefix: str,
    movement: Movement,
) -> EntryFormState:
    """
    Start the edit modal from the stored movement.

    Drops every value saved under key_prefix (widget values included),
    so an edit abandoned without saving does not come back on the next
    open, then stores a fresh state under "<key_prefix>_state".
    """
    for key in [k for k in session_state if str(k).startswith(f"{key_prefix}_")]:
        del session_state[key]
    state = state_for_movement(
        movement.kind,
        movement.expense_kind,
        movement.payment_status,
        len(movement.months_span or []) or 1,
    )
    session_state[f"{key_prefix}_state"] = state
    return state
