"""
Movement Data Models

A movement is a single income or expense entry owned by one user.

Attribute names are English; the store documents keep the Portuguese
keys the existing data was written with ("tipo", "valor", "data", ...).
Pydantic aliases map one to the other, so
Movement.model_validate(document) and movement.to_document() are the
only two places that know about document keys.

DESIGN DECISION: The expense rules live in the models, not the UI:
- income never carries expense attributes
- a variable expense is always paid and never spans months
- a fixed expense defaults to pending
Any code path that builds a movement gets the same result.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

DESCRIPTION_MAX_LENGTH = 500


# =============================================================================
# ENUMS - Finite set of valid values (values are the stored strings)
# =============================================================================

class MovementKind(str, Enum):
    """Income or expense. Set at creation, never edited."""
    INCOME = "receita"
    EXPENSE = "despesa"


class ExpenseKind(str, Enum):
    """
    Expense sub-type.

    FIXED expenses repeat over a set of months and may be pending.
    VARIABLE expenses are one-off and assumed settled immediately.
    """
    FIXED = "fixa"
    VARIABLE = "variavel"


class PaymentStatus(str, Enum):
    """Payment situation of an expense."""
    PAID = "pago"
    PENDING = "pendente"


# =============================================================================
# MONTH INDICES
# =============================================================================

def encode_month_index(year: int, month: int) -> int:
    """Absolute month index: year * 12 + (month - 1)."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    return year * 12 + (month - 1)


def decode_month_index(index: int) -> tuple[int, int]:
    """Inverse of encode_month_index. Returns (year, month)."""
    return index // 12, index % 12 + 1


def month_indices_from(start: dt.date, count: int) -> list[int]:
    """`count` consecutive month indices starting at the month of `start`."""
    first = encode_month_index(start.year, start.month)
    return [first + offset for offset in range(max(count, 0))]


def normalize_status(value: Any) -> Any:
    """Strip and lowercase status strings; blank becomes None."""
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


def _clean_month_list(value: Any) -> Optional[list[int]]:
    """Keep only integer entries of a month list; anything else is None."""
    if not isinstance(value, (list, tuple)):
        return None
    months = []
    for item in value:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            months.append(item)
        elif isinstance(item, float) and item.is_integer():
            months.append(int(item))
        elif isinstance(item, str) and item.strip().lstrip("-").isdigit():
            months.append(int(item.strip()))
    return months or None


# =============================================================================
# MOVEMENT MODELS
# =============================================================================

class MovementFields(BaseModel):
    """
    Fields shared by stored movements and drafts.

    Applies the expense rules after validation.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    kind: MovementKind = Field(
        ...,
        alias="tipo",
        description="Income or expense"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        alias="valor",
        description="Amount in BRL"
    )
    date: dt.date = Field(
        ...,
        alias="data",
        description="Date of the movement"
    )
    description: str = Field(
        ...,
        alias="descricao",
        max_length=DESCRIPTION_MAX_LENGTH,
        description="Free text description"
    )
    expense_kind: Optional[ExpenseKind] = Field(
        default=None,
        alias="despesaTipo",
        description="Fixed or variable (expenses only)"
    )
    months_span: Optional[list[int]] = Field(
        default=None,
        alias="meses",
        description="Absolute month indices a fixed expense repeats over"
    )
    payment_status: Optional[PaymentStatus] = Field(
        default=None,
        alias="situacao",
        description="Paid or pending (expenses only)"
    )
    owner_id: Optional[str] = Field(
        default=None,
        alias="uid",
        description="UID of the user who created the movement"
    )

    @field_validator('payment_status', 'expense_kind', mode='before')
    @classmethod
    def normalize_enum_text(cls, v: Any) -> Any:
        """Stored values may carry stray case or whitespace."""
        return normalize_status(v)

    @field_validator('months_span', mode='before')
    @classmethod
    def clean_months(cls, v: Any) -> Optional[list[int]]:
        """Non-list month data degrades to None instead of failing."""
        return _clean_month_list(v)

    @model_validator(mode='after')
    def apply_expense_rules(self):
        """Expense attributes exist only on expenses, with their defaults."""
        if self.kind == MovementKind.INCOME:
            self.expense_kind = None
            self.months_span = None
            self.payment_status = None
        elif self.expense_kind == ExpenseKind.VARIABLE:
            self.payment_status = PaymentStatus.PAID
            self.months_span = None
        elif self.expense_kind == ExpenseKind.FIXED:
            if self.payment_status is None:
                self.payment_status = PaymentStatus.PENDING
            if self.months_span:
                self.months_span = sorted(set(self.months_span))
        return self

    @property
    def is_income(self) -> bool:
        return self.kind == MovementKind.INCOME

    @property
    def is_expense(self) -> bool:
        return self.kind == MovementKind.EXPENSE

    @property
    def is_pending(self) -> bool:
        return self.is_expense and self.payment_status == PaymentStatus.PENDING

    def to_document(self) -> dict:
        """
        Convert to a store document (Portuguese keys).

        Amounts are stored as numbers, dates as ISO strings.
        Absent optional attributes are omitted.
        """
        document = {
            "tipo": self.kind.value,
            "valor": float(self.amount),
            "data": self.date.isoformat(),
            "descricao": self.description,
        }
        if self.expense_kind is not None:
            document["despesaTipo"] = self.expense_kind.value
        if self.months_span is not None:
            document["meses"] = list(self.months_span)
        if self.payment_status is not None:
            document["situacao"] = self.payment_status.value
        if self.owner_id is not None:
            document["uid"] = self.owner_id
        return document


class MovementDraft(MovementFields):
    """
    A movement that has not been stored yet.

    Built by the entry form after validation passed; the store
    assigns the id and stamps the owner.
    """

    def with_owner(self, owner_id: str) -> "MovementDraft":
        """Copy of this draft stamped with its owner."""
        return self.model_copy(update={"owner_id": owner_id})


class Movement(MovementFields):
    """
    A stored movement.

    CRITICAL: id is assigned by the store and never changes.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier"
    )

    @classmethod
    def from_document(cls, movement_id: str, document: dict) -> "Movement":
        """
        Build a Movement from a raw store document.

        Legacy documents stored the fixed-expense span as a month count;
        it is expanded into month indices starting at the movement's month.

        Raises:
            pydantic.ValidationError: If the document cannot be read
        """
        data = dict(document)
        months = data.get("meses")
        if isinstance(months, (int, float)) and not isinstance(months, bool):
            data["meses"] = _expand_month_count(months, data.get("data"))
        data.pop("id", None)
        return cls.model_validate({**data, "id": movement_id})

    def apply(self, update: "MovementUpdate") -> "Movement":
        """Return a copy with the update applied and the rules re-run."""
        merged = self.model_dump()
        merged.update(update.changed_fields())
        return Movement.model_validate(merged)


def _expand_month_count(count: float, raw_date: Any) -> Optional[list[int]]:
    """Turn a legacy month count into month indices, or None."""
    if count < 1 or not isinstance(raw_date, str):
        return None
    try:
        start = dt.date.fromisoformat(raw_date[:10])
    except ValueError:
        return None
    return month_indices_from(start, int(count))


class MovementUpdate(BaseModel):
    """
    Partial update coming from the edit modal.

    kind is intentionally absent: it cannot change after creation.
    Only fields that were explicitly set are sent to the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    amount: Optional[Decimal] = Field(default=None, gt=0)
    expense_kind: Optional[ExpenseKind] = None
    months_span: Optional[list[int]] = None
    payment_status: Optional[PaymentStatus] = None

    @field_validator('payment_status', 'expense_kind', mode='before')
    @classmethod
    def normalize_enum_text(cls, v: Any) -> Any:
        return normalize_status(v)

    @model_validator(mode='after')
    def apply_expense_rules(self):
        """Switching to a variable expense settles it and drops the span."""
        if self.expense_kind == ExpenseKind.VARIABLE:
            self.payment_status = PaymentStatus.PAID
            self.months_span = None
            self.model_fields_set.update({"payment_status", "months_span"})
        return self

    def changed_fields(self) -> dict:
        """Attribute-name dict of the fields that were set."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def to_document_changes(self, kind: MovementKind) -> dict:
        """
        Document-key dict for a partial store update.

        Expense attributes are dropped when the movement is an income.
        """
        changes = {}
        for name, value in self.changed_fields().items():
            if name == "description":
                changes["descricao"] = value
            elif name == "amount":
                changes["valor"] = float(value)
            elif kind == MovementKind.INCOME:
                continue
            elif name == "expense_kind":
                changes["despesaTipo"] = value.value if value else None
            elif name == "months_span":
                changes["meses"] = sorted(set(value)) if value else None
            elif name == "payment_status":
                changes["situacao"] = value.value if value else None
        return changes

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set
