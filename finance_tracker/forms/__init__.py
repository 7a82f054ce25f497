"""Movement form package: conditional-field state machine and validation."""

from finance_tracker.forms.state import (
    EXPENSE_KIND_DEFAULT_STATUS,
    EntryFormState,
    FormEvent,
    reset_edit_state,
    state_for_movement,
    transition,
)
from finance_tracker.forms.validator import (
    REQUIRED_FIELDS_MESSAGE,
    MovementValidator,
    parse_amount,
    parse_date,
)

__all__ = [
    "EXPENSE_KIND_DEFAULT_STATUS",
    "EntryFormState",
    "FormEvent",
    "MovementValidator",
    "REQUIRED_FIELDS_MESSAGE",
    "parse_amount",
    "parse_date",
    "reset_edit_state",
    "state_for_movement",
    "transition",
]
