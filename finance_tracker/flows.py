"""
Application Flows for Controle Financeiro

This module ties the components together and defines the flows
behind each page:
1. Movement entry (form state -> validate -> draft -> store)
2. Movement listing (owner-scoped load, edit, delete)
3. Dashboard (owner-scoped load -> summarize)
4. Report (fetch -> filter -> totals -> chart / PDF)
5. Profile (identity + profile document + own totals)

DESIGN DECISION: The flows enforce the boundaries:
- Invalid input never reaches the store
- Every read is scoped to the signed-in user
- A record can only be edited or deleted by its owner
- Store failures are logged and turned into a message, never retried

The Streamlit pages only render what the flows return.
"""

import html
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

import pandas as pd
import structlog
from pydantic import BaseModel, Field, ValidationError

from finance_tracker.aggregation import DashboardSummary, summarize
from finance_tracker.config import AppSettings, StoreBackend, get_settings
from finance_tracker.formatting import (
    EXPENSE_KIND_LABELS,
    KIND_LABELS,
    STATUS_LABELS,
    format_currency,
    format_date,
    format_month_count,
    format_month_range,
    label,
)
from finance_tracker.forms.state import EntryFormState
from finance_tracker.forms.validator import MovementValidator, parse_amount
from finance_tracker.models.movement import (
    ExpenseKind,
    Movement,
    MovementKind,
    MovementUpdate,
    month_indices_from,
)
from finance_tracker.models.user import AuthUser
from finance_tracker.models.validation import ValidationIssue
from finance_tracker.reports.builder import ReportData, build_report
from finance_tracker.reports.chart import build_chart
from finance_tracker.reports.filters import ReportFilters
from finance_tracker.reports.pdf import export_report
from finance_tracker.services.auth.interface import (
    IdentityProviderInterface,
    NotAuthenticatedError,
)
from finance_tracker.services.auth.memory import InMemoryIdentityProvider
from finance_tracker.services.auth.persistence import SessionPersistence
from finance_tracker.services.auth.session import AuthSession
from finance_tracker.services.storage.interface import (
    MovementStoreInterface,
    OwnershipError,
    StoreConnectionError,
    StoreError,
    UserProfileStoreInterface,
    check_owner,
)
from finance_tracker.services.storage.memory import (
    InMemoryMovementStore,
    InMemoryUserProfileStore,
)

logger = structlog.get_logger(__name__)

SUCCESS_MESSAGE = "Movimentação registrada com sucesso!"
CREATE_ERROR_MESSAGE = "Erro ao registrar movimentação."
UPDATE_SUCCESS_MESSAGE = "Movimentação atualizada com sucesso!"
UPDATE_ERROR_MESSAGE = "Erro ao atualizar movimentação."
DELETE_SUCCESS_MESSAGE = "Movimentação excluída com sucesso!"
DELETE_ERROR_MESSAGE = "Erro ao excluir movimentação."
LOAD_ERROR_MESSAGE = "Erro ao carregar movimentações."
OWNERSHIP_MESSAGE = "Você só pode alterar suas próprias movimentações."
SIGN_IN_MESSAGE = NotAuthenticatedError.user_message
NOT_INFORMED = "Não informado"


class FlowError(Exception):
    """A store failure already logged and reduced to a user message."""

    def __init__(self, user_message: str, cause: Optional[Exception] = None):
        self.user_message = user_message
        super().__init__(f"{user_message} ({cause})" if cause else user_message)


class SubmissionResult(BaseModel):
    """Outcome of a form submission (entry form or edit modal)."""

    success: bool
    message: str
    movement: Optional[Movement] = None
    issues: list[ValidationIssue] = Field(default_factory=list)


def _require(user: Optional[AuthUser]) -> AuthUser:
    if user is None:
        raise NotAuthenticatedError("No signed-in user")
    return user


class MovementEntryFlow:
    """
    Orchestrates the movement entry form.

    Flow:
    1. Validate the form values against the form state
    2. Build the draft (fixed expenses expand their month count)
    3. Create it in the store, stamped with the signed-in user

    Exactly one store write per successful submission.
    """

    def __init__(
        self,
        store: MovementStoreInterface,
        validator: Optional[MovementValidator] = None,
    ):
        self._store = store
        self._validator = validator or MovementValidator()

    async def submit(
        self,
        user: Optional[AuthUser],
        state: EntryFormState,
        amount: Any,
        movement_date: Any,
        description: Optional[str],
    ) -> SubmissionResult:
        if user is None:
            return SubmissionResult(success=False, message=SIGN_IN_MESSAGE)

        validation = self._validator.validate(state, amount, movement_date, description)
        if not validation.is_valid:
            return SubmissionResult(
                success=False,
                message=validation.message,
                issues=validation.issues,
            )

        draft = self._validator.build_draft(state, amount, movement_date, description or "")
        try:
            movement = await self._store.create_movement(draft, user.uid)
        except StoreError as e:
            logger.error("store_error", operation="create_movement", uid=user.uid, error=str(e))
            return SubmissionResult(success=False, message=CREATE_ERROR_MESSAGE)

        return SubmissionResult(success=True, message=SUCCESS_MESSAGE, movement=movement)


DISPLAY_COLUMNS = [
    "id",
    "Data",
    "Descrição",
    "Tipo",
    "Valor",
    "Tipo de Despesa",
    "Meses",
    "Período",
    "Situação",
]


def display_row(movement: Movement) -> dict:
    """One listing row with localized values."""
    fixed = movement.expense_kind == ExpenseKind.FIXED
    return {
        "id": movement.id,
        "Data": format_date(movement.date),
        "Descrição": movement.description,
        "Tipo": label(movement.kind, KIND_LABELS),
        "Valor": format_currency(movement.amount),
        "Tipo de Despesa": label(movement.expense_kind, EXPENSE_KIND_LABELS),
        "Meses": format_month_count(movement.months_span) if fixed else "-",
        "Período": format_month_range(movement.months_span) if fixed else "-",
        "Situação": label(movement.payment_status, STATUS_LABELS),
    }


def movement_card_html(row: dict) -> str:
    """
    Card markup for one listing row.

    Every value is escaped: descriptions are free text.
    """
    css = "receita" if row["Tipo"] == KIND_LABELS[MovementKind.INCOME] else "despesa"
    details = [row["Data"], row["Tipo"]]
    if row["Tipo de Despesa"] != "-":
        details.append(row["Tipo de Despesa"])
    if row["Situação"] != "-":
        details.append(row["Situação"])
    if row["Período"] != "-":
        details.append(f"{row['Meses']} ({row['Período']})")
    return (
        f'<div class="movement-card {css}">'
        f"<strong>{html.escape(row['Descrição'])}</strong><br/>"
        f'<span class="big-number" style="font-size:1.3em">{html.escape(row["Valor"])}</span><br/>'
        f"<small>{html.escape(' · '.join(details))}</small>"
        "</div>"
    )


class MovementListingFlow:
    """
    Orchestrates the listing page and its edit/delete modals.

    Owner checks here keep the UI honest; the store's access rules
    are the actual authorization boundary.
    """

    def __init__(
        self,
        store: MovementStoreInterface,
        validator: Optional[MovementValidator] = None,
    ):
        self._store = store
        self._validator = validator or MovementValidator()

    async def load(self, user: Optional[AuthUser]) -> list[Movement]:
        """
        The signed-in user's movements, newest first.

        Raises:
            NotAuthenticatedError: Without a user
            FlowError: If the store read fails
        """
        user = _require(user)
        try:
            return await self._store.list_movements(user.uid)
        except StoreError as e:
            logger.error("store_error", operation="list_movements", uid=user.uid, error=str(e))
            raise FlowError(LOAD_ERROR_MESSAGE, e) from e

    def to_display_rows(self, movements: list[Movement]) -> list[dict]:
        return [display_row(movement) for movement in movements]

    def to_dataframe(self, movements: list[Movement]) -> pd.DataFrame:
        """Listing as a DataFrame (table view and CSV download)."""
        frame = pd.DataFrame(self.to_display_rows(movements), columns=DISPLAY_COLUMNS)
        return frame.drop(columns=["id"])

    def to_csv(self, movements: list[Movement]) -> bytes:
        return self.to_dataframe(movements).to_csv(index=False).encode("utf-8")

    async def update(
        self,
        user: Optional[AuthUser],
        movement: Movement,
        changes: MovementUpdate,
    ) -> Movement:
        """
        Apply a partial update to one of the user's movements.

        Raises:
            NotAuthenticatedError: Without a user
            OwnershipError: If the movement belongs to someone else
            FlowError: If the store write fails
        """
        user = _require(user)
        check_owner(movement, user.uid)
        if changes.is_empty:
            return movement

        try:
            return await self._store.update_movement(movement.id, changes, user.uid)
        except OwnershipError:
            raise
        except StoreError as e:
            logger.error("store_error", operation="update_movement", movement_id=movement.id, error=str(e))
            raise FlowError(UPDATE_ERROR_MESSAGE, e) from e

    def changes_from_form(
        self,
        movement: Movement,
        state: EntryFormState,
        amount: Any,
        description: str,
    ) -> MovementUpdate:
        """
        Build the partial update from the edit modal.

        Only values that differ from the stored movement are set.
        """
        values: dict[str, Any] = {}
        description = (description or "").strip()
        if description != movement.description:
            values["description"] = description
        parsed_amount = parse_amount(amount)
        if parsed_amount is not None and parsed_amount != movement.amount:
            values["amount"] = parsed_amount

        if movement.is_expense:
            if state.expense_kind != movement.expense_kind:
                values["expense_kind"] = state.expense_kind
            if state.payment_status != movement.payment_status:
                values["payment_status"] = state.payment_status
            if state.expense_kind == ExpenseKind.FIXED:
                months = month_indices_from(movement.date, state.months_count)
                if months != (movement.months_span or []):
                    values["months_span"] = months
        return MovementUpdate(**values)

    async def update_from_form(
        self,
        user: Optional[AuthUser],
        movement: Movement,
        state: EntryFormState,
        amount: Any,
        description: str,
    ) -> SubmissionResult:
        """Validate the edit modal and update; errors become messages."""
        if user is None:
            return SubmissionResult(success=False, message=SIGN_IN_MESSAGE)

        validation = self._validator.validate(state, amount, movement.date, description)
        if not validation.is_valid:
            return SubmissionResult(
                success=False,
                message=validation.message,
                issues=validation.issues,
            )

        try:
            changes = self.changes_from_form(movement, state, amount, description)
            updated = await self.update(user, movement, changes)
        except ValidationError as e:
            logger.warning("invalid_update", movement_id=movement.id, error=str(e))
            return SubmissionResult(success=False, message=UPDATE_ERROR_MESSAGE)
        except OwnershipError:
            logger.warning("ownership_denied", movement_id=movement.id, uid=user.uid)
            return SubmissionResult(success=False, message=OWNERSHIP_MESSAGE)
        except FlowError as e:
            return SubmissionResult(success=False, message=e.user_message)

        return SubmissionResult(success=True, message=UPDATE_SUCCESS_MESSAGE, movement=updated)

    async def delete(self, user: Optional[AuthUser], movement: Movement) -> bool:
        """
        Delete one of the user's movements.

        Raises:
            NotAuthenticatedError: Without a user
            OwnershipError: If the movement belongs to someone else
            FlowError: If the store delete fails
        """
        user = _require(user)
        check_owner(movement, user.uid)
        try:
            return await self._store.delete_movement(movement.id, user.uid)
        except OwnershipError:
            raise
        except StoreError as e:
            logger.error("store_error", operation="delete_movement", movement_id=movement.id, error=str(e))
            raise FlowError(DELETE_ERROR_MESSAGE, e) from e


class DashboardFlow:
    """Totals for the signed-in user's movements."""

    def __init__(self, store: MovementStoreInterface):
        self._store = store

    async def load(self, session: AuthSession) -> Optional[DashboardSummary]:
        """
        None while the session is still resolving.

        Raises:
            NotAuthenticatedError: If nobody is signed in
            FlowError: If the store read fails
        """
        if session.loading:
            return None
        user = session.require_user()
        try:
            movements = await self._store.list_movements(user.uid)
        except StoreError as e:
            logger.error("store_error", operation="list_movements", uid=user.uid, error=str(e))
            raise FlowError(LOAD_ERROR_MESSAGE, e) from e
        return summarize(movements)


class ReportFlow:
    """
    Orchestrates the report page.

    Flow:
    1. Fetch: month window query for "todos", otherwise query by kind
    2. Filter: kind, payment status, month and year (client-side)
    3. Aggregate into ReportData
    4. Chart and PDF are built from ReportData on demand
    """

    def __init__(
        self,
        store: MovementStoreInterface,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._settings = settings

    async def fetch(self, user: Optional[AuthUser], filters: ReportFilters) -> list[Movement]:
        user = _require(user)
        try:
            if filters.movement_kind is None:
                date_from, date_before = filters.window
                return await self._store.list_movements(
                    user.uid,
                    date_from=date_from,
                    date_before=date_before,
                )
            return await self._store.list_movements(user.uid, kind=filters.movement_kind)
        except StoreError as e:
            logger.error("store_error", operation="report_fetch", uid=user.uid, error=str(e))
            raise FlowError(LOAD_ERROR_MESSAGE, e) from e

    async def build(self, user: Optional[AuthUser], filters: ReportFilters) -> ReportData:
        movements = await self.fetch(user, filters)
        return build_report(movements, filters)

    def chart(self, report: ReportData):
        return build_chart(report)

    def export(self, report: ReportData) -> tuple[str, bytes]:
        return export_report(report, self._settings)


@dataclass(frozen=True)
class ProfileView:
    name: str
    email: str
    summary: DashboardSummary


class ProfileFlow:
    """Personal info and own totals for the profile page."""

    def __init__(
        self,
        store: MovementStoreInterface,
        profiles: Optional[UserProfileStoreInterface] = None,
    ):
        self._store = store
        self._profiles = profiles

    async def load(self, user: Optional[AuthUser]) -> ProfileView:
        user = _require(user)
        name = user.display_name
        if not name and self._profiles is not None:
            try:
                profile = await self._profiles.get_profile(user.uid)
            except StoreError as e:
                logger.error("store_error", operation="get_profile", uid=user.uid, error=str(e))
                profile = None
            name = profile.name if profile else None

        try:
            movements = await self._store.list_movements(user.uid)
        except StoreError as e:
            logger.error("store_error", operation="list_movements", uid=user.uid, error=str(e))
            raise FlowError(LOAD_ERROR_MESSAGE, e) from e

        return ProfileView(
            name=name or NOT_INFORMED,
            email=user.email or NOT_INFORMED,
            summary=summarize(movements),
        )


@dataclass
class AppComponents:
    """Everything a page needs, built once per process."""

    backend: StoreBackend
    store: MovementStoreInterface
    profiles: UserProfileStoreInterface
    provider: IdentityProviderInterface
    persistence: Optional[SessionPersistence]
    entry: MovementEntryFlow
    listing: MovementListingFlow
    dashboard: DashboardFlow
    report: ReportFlow
    profile: ProfileFlow
    degraded: bool = False

    def new_session(self) -> AuthSession:
        """A fresh AuthSession for one browser session."""
        return AuthSession(self.provider, self.profiles, self.persistence)


def _remote_backend(
    backend: StoreBackend,
) -> tuple[MovementStoreInterface, UserProfileStoreInterface, IdentityProviderInterface]:
    # Imported here so the memory backend runs without the Google SDKs configured
    from finance_tracker.services.auth.firebase_auth import FirebaseIdentityProvider

    if backend == StoreBackend.SHEETS:
        from finance_tracker.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsMovementStore,
            GoogleSheetsUserProfileStore,
        )
        sheets_client = GoogleSheetsClient()
        return (
            GoogleSheetsMovementStore(sheets_client),
            GoogleSheetsUserProfileStore(sheets_client),
            FirebaseIdentityProvider(),
        )

    from finance_tracker.services.storage.firestore import (
        FirestoreClient,
        FirestoreMovementStore,
        FirestoreUserProfileStore,
    )
    firestore_client = FirestoreClient()
    return (
        FirestoreMovementStore(firestore_client),
        FirestoreUserProfileStore(firestore_client),
        FirebaseIdentityProvider(),
    )


def create_app_components(backend: Optional[StoreBackend] = None) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: Store implementation; defaults to AppSettings.store_backend.
                 A remote backend that is not configured falls back to
                 the in-memory one and sets `degraded`.

    Returns:
        AppComponents with every flow wired to the same store
    """
    app_settings = get_settings().app
    backend = StoreBackend(backend or app_settings.store_backend)
    degraded = False

    if backend == StoreBackend.MEMORY:
        store, profiles, provider = (
            InMemoryMovementStore(),
            InMemoryUserProfileStore(),
            InMemoryIdentityProvider(),
        )
    else:
        try:
            store, profiles, provider = _remote_backend(backend)
        except (ValidationError, StoreConnectionError) as e:
            # Backend not configured - continue in memory
            logger.warning("store_unavailable", backend=backend.value, error=str(e))
            backend = StoreBackend.MEMORY
            degraded = True
            store, profiles, provider = (
                InMemoryMovementStore(),
                InMemoryUserProfileStore(),
                InMemoryIdentityProvider(),
            )

    validator = MovementValidator()
    return AppComponents(
        backend=backend,
        store=store,
        profiles=profiles,
        provider=provider,
        persistence=SessionPersistence.from_settings(app_settings),
        entry=MovementEntryFlow(store, validator),
        listing=MovementListingFlow(store, validator),
        dashboard=DashboardFlow(store),
        report=ReportFlow(store, app_settings),
        profile=ProfileFlow(store, profiles),
        degraded=degraded,
    )


def current_period(today: Optional[date] = None) -> tuple[int, int]:
    """(month, year) the report page opens on."""
    today = today or date.today()
    return today.month, today.year
