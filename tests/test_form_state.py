"""Tests for the entry form state machine."""

from finance_tracker.forms import (
    EntryFormState,
    FormEvent,
    reset_edit_state,
    state_for_movement,
    transition,
)
from finance_tracker.models import ExpenseKind, Movement, MovementKind, PaymentStatus
from helpers import expense


def expense_state(expense_kind=None):
    state = transition(EntryFormState(), FormEvent.SELECT_KIND, MovementKind.EXPENSE)
    if expense_kind is not None:
        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, expense_kind)
    return state


class TestVisibility:
    """Tests for which controls are shown."""

    def test_income_hides_expense_controls(self):
        """Test the initial income state shows no expense controls."""
        state = EntryFormState()
        assert state.kind == MovementKind.INCOME
        assert not state.shows_expense_kind
        assert not state.shows_payment_status
        assert not state.shows_months

    def test_expense_shows_expense_kind_only(self):
        """Test that choosing expense reveals only the expense kind selector."""
        state = expense_state()
        assert state.shows_expense_kind
        assert not state.shows_payment_status
        assert not state.shows_months

    def test_fixed_shows_months_and_status(self):
        """Test that a fixed expense shows months and status."""
        state = expense_state(ExpenseKind.FIXED)
        assert state.shows_months
        assert state.shows_payment_status


class TestTransitions:
    """Tests for the transition rules."""

    def test_variable_forces_paid(self):
        """Test that variable expenses are paid and the status is hidden."""
        state = expense_state(ExpenseKind.VARIABLE)
        assert state.payment_status == PaymentStatus.PAID
        assert state.status_locked
        assert not state.shows_payment_status
        assert not state.shows_months

    def test_status_change_ignored_while_locked(self):
        """Test that selecting pending on a variable expense is ignored."""
        state = expense_state(ExpenseKind.VARIABLE)
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, PaymentStatus.PENDING)
        assert state.payment_status == PaymentStatus.PAID

    def test_fixed_defaults_to_pending(self):
        """Test that a fixed expense starts pending."""
        state = expense_state(ExpenseKind.FIXED)
        assert state.payment_status == PaymentStatus.PENDING

    def test_fixed_status_can_be_changed(self):
        """Test that the user can mark a fixed expense as paid."""
        state = expense_state(ExpenseKind.FIXED)
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, PaymentStatus.PAID)
        assert state.payment_status == PaymentStatus.PAID

    def test_reselecting_fixed_restores_default(self):
        """Test that going variable and back to fixed restores pending."""
        state = expense_state(ExpenseKind.FIXED)
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, PaymentStatus.PAID)
        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, ExpenseKind.VARIABLE)
        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, ExpenseKind.FIXED)
        assert state.payment_status == PaymentStatus.PENDING

    def test_switching_to_income_clears_everything(self):
        """Test that income clears every expense attribute."""
        state = expense_state(ExpenseKind.FIXED)
        state = transition(state, FormEvent.SET_MONTHS_COUNT, 6)
        state = transition(state, FormEvent.SELECT_KIND, MovementKind.INCOME)
        assert state == EntryFormState()

    def test_clearing_expense_kind(self):
        """Test that the blank option clears the status again."""
        state = expense_state(ExpenseKind.FIXED)
        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, "")
        assert state.expense_kind is None
        assert state.payment_status is None

    def test_months_ignored_unless_fixed(self):
        """Test that the months count only applies to fixed expenses."""
        state = expense_state(ExpenseKind.VARIABLE)
        state = transition(state, FormEvent.SET_MONTHS_COUNT, 12)
        assert state.months_count == 1

        state = transition(state, FormEvent.SELECT_EXPENSE_KIND, ExpenseKind.FIXED)
        state = transition(state, FormEvent.SET_MONTHS_COUNT, 12)
        assert state.months_count == 12

    def test_expense_kind_ignored_for_income(self):
        """Test that expense kind events do nothing on income."""
        state = transition(EntryFormState(), FormEvent.SELECT_EXPENSE_KIND, ExpenseKind.FIXED)
        assert state == EntryFormState()

    def test_events_accept_plain_strings(self):
        """Test that events and values can be given as stored strings."""
        state = transition(EntryFormState(), "select_kind", "despesa")
        state = transition(state, "select_expense_kind", "variavel")
        assert state.payment_status == PaymentStatus.PAID


class TestStateForMovement:
    """Tests for rebuilding the state of an existing movement."""

    def test_fixed_paid_with_months(self):
        """Test that a paid fixed expense keeps its status and count."""
        state = state_for_movement(MovementKind.EXPENSE, ExpenseKind.FIXED, PaymentStatus.PAID, 3)
        assert state.payment_status == PaymentStatus.PAID
        assert state.months_count == 3

    def test_income(self):
        """Test that an income yields the empty state."""
        state = state_for_movement(MovementKind.INCOME, None, None)
        assert state == EntryFormState()


class TestResetEditState:
    """Tests for reopening the edit modal."""

    def test_abandoned_edit_is_discarded(self):
        """Test that unsaved edit values are dropped when the modal opens again."""
        movement = Movement.from_document(
            "m1",
            expense(status="pendente", months=[24299, 24300, 24301]).with_owner("u1").to_document(),
        )
        abandoned = transition(
            state_for_movement(MovementKind.EXPENSE, ExpenseKind.FIXED, PaymentStatus.PENDING, 3),
            FormEvent.SELECT_EXPENSE_KIND,
            ExpenseKind.VARIABLE,
        )
        session_state = {
            "edit_m1_state": abandoned,
            "edit_m1_description": "rascunho",
            "edit_m1_amount": 1.0,
            "edit_m10_state": "other movement",
            "report_pdf": None,
        }

        state = reset_edit_state(session_state, "edit_m1", movement)

        assert state.expense_kind == ExpenseKind.FIXED
        assert state.payment_status == PaymentStatus.PENDING
        assert state.months_count == 3
        assert session_state == {
            "edit_m1_state": state,
            "edit_m10_state": "other movement",
            "report_pdf": None,
        }
