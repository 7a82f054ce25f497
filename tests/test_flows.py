"""Tests for the page flows, wired to the in-memory backends."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.config import StoreBackend
from finance_tracker.flows import (
    CREATE_ERROR_MESSAGE,
    DELETE_ERROR_MESSAGE,
    NOT_INFORMED,
    OWNERSHIP_MESSAGE,
    SIGN_IN_MESSAGE,
    SUCCESS_MESSAGE,
    UPDATE_SUCCESS_MESSAGE,
    DashboardFlow,
    FlowError,
    MovementEntryFlow,
    MovementListingFlow,
    ProfileFlow,
    ReportFlow,
    create_app_components,
    current_period,
    display_row,
    movement_card_html,
)
from finance_tracker.forms.state import (
    EntryFormState,
    FormEvent,
    state_for_movement,
    transition,
)
from finance_tracker.forms.validator import (
    DESCRIPTION_LENGTH_MESSAGE,
    REQUIRED_FIELDS_MESSAGE,
)
from finance_tracker.models import (
    ExpenseKind,
    Movement,
    MovementKind,
    MovementUpdate,
    PaymentStatus,
    UserProfile,
)
from finance_tracker.reports import KindFilter, ReportFilters, StatusFilter
from finance_tracker.services.auth import AuthSession, NotAuthenticatedError
from finance_tracker.services.storage import (
    InMemoryMovementStore,
    OwnershipError,
    StoreError,
)
from helpers import expense, income


class FailingStore(InMemoryMovementStore):
    """Store whose writes always fail."""

    async def create_movement(self, draft, owner_id):
        raise StoreError("unavailable")

    async def delete_movement(self, movement_id, owner_id):
        raise StoreError("unavailable")


def expense_state(expense_kind, months=1, status=None):
    state = transition(EntryFormState(), FormEvent.SELECT_KIND, MovementKind.EXPENSE)
    state = transition(state, FormEvent.SELECT_EXPENSE_KIND, expense_kind)
    if status is not None:
        state = transition(state, FormEvent.SELECT_PAYMENT_STATUS, status)
    return transition(state, FormEvent.SET_MONTHS_COUNT, months)


class TestMovementEntryFlow:
    """Tests for the movement entry form."""

    def test_income_is_stored(self, store, alice):
        """Test that a valid income is written once with the owner."""
        flow = MovementEntryFlow(store)
        result = asyncio.run(flow.submit(alice, EntryFormState(), "1000", date(2024, 12, 1), "Salário"))

        assert result.success
        assert result.message == SUCCESS_MESSAGE
        assert list(store.documents.values()) == [{
            "tipo": "receita",
            "valor": 1000.0,
            "data": "2024-12-01",
            "descricao": "Salário",
            "uid": "uid-alice",
        }]

    def test_fixed_expense_spans_months(self, store, alice):
        """Test that a twelve-month fixed expense stores twelve month indices."""
        flow = MovementEntryFlow(store)
        state = expense_state(ExpenseKind.FIXED, months=12)
        result = asyncio.run(flow.submit(alice, state, "300", date(2024, 12, 2), "Conta de Luz"))

        movement = result.movement
        assert movement.payment_status == PaymentStatus.PENDING
        assert movement.months_span == list(range(24299, 24311))

    def test_variable_expense_is_paid(self, store, alice):
        """Test that a variable expense is stored as paid without months."""
        flow = MovementEntryFlow(store)
        state = expense_state(ExpenseKind.VARIABLE)
        result = asyncio.run(flow.submit(alice, state, "45,90", date(2024, 12, 20), "Mercado"))

        document = store.documents[result.movement.id]
        assert document["situacao"] == "pago"
        assert document["valor"] == 45.9
        assert "meses" not in document

    def test_invalid_submission_writes_nothing(self, store, alice):
        """Test that a missing amount is reported and nothing is stored."""
        flow = MovementEntryFlow(store)
        result = asyncio.run(flow.submit(alice, EntryFormState(), "", date(2024, 12, 1), "Salário"))

        assert not result.success
        assert result.message == REQUIRED_FIELDS_MESSAGE
        assert store.documents == {}

    def test_long_description_writes_nothing(self, store, alice):
        """Test that an over-long description is a message, not an exception."""
        flow = MovementEntryFlow(store)
        result = asyncio.run(flow.submit(alice, EntryFormState(), "1000", date(2024, 12, 1), "x" * 501))

        assert not result.success
        assert result.message == DESCRIPTION_LENGTH_MESSAGE
        assert result.issues[0].field == "description"
        assert store.documents == {}

    def test_signed_out_writes_nothing(self, store):
        """Test that submitting without a user asks for sign-in."""
        flow = MovementEntryFlow(store)
        result = asyncio.run(flow.submit(None, EntryFormState(), "1000", date(2024, 12, 1), "Salário"))

        assert not result.success
        assert result.message == SIGN_IN_MESSAGE
        assert store.documents == {}

    def test_store_failure_becomes_message(self, alice):
        """Test that a failed write is reported, not raised."""
        flow = MovementEntryFlow(FailingStore())
        result = asyncio.run(flow.submit(alice, EntryFormState(), "1000", date(2024, 12, 1), "Salário"))

        assert not result.success
        assert result.message == CREATE_ERROR_MESSAGE


class TestMovementListingFlow:
    """Tests for the listing page and its modals."""

    def test_load_requires_user(self, store):
        """Test that loading without a user raises."""
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(MovementListingFlow(store).load(None))

    def test_load_is_owner_scoped(self, store, alice, bob):
        """Test that each user sees only their own movements."""
        asyncio.run(store.create_movement(income(), alice.uid))
        asyncio.run(store.create_movement(income(amount="50"), bob.uid))

        movements = asyncio.run(MovementListingFlow(store).load(alice))
        assert [m.owner_id for m in movements] == [alice.uid]

    def test_edit_round_trip(self, store, alice):
        """Test that an update is visible on the next load."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))

        asyncio.run(flow.update(alice, movement, MovementUpdate(description="Salário Dezembro")))
        reloaded = asyncio.run(flow.load(alice))
        assert reloaded[0].description == "Salário Dezembro"
        assert reloaded[0].amount == Decimal("1000")

    def test_update_other_users_movement(self, store, alice, bob):
        """Test that editing someone else's movement is refused."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))

        with pytest.raises(OwnershipError):
            asyncio.run(flow.update(bob, movement, MovementUpdate(description="x")))
        assert store.documents[movement.id]["descricao"] == "Salário"

    def test_empty_update_skips_store(self, store, alice):
        """Test that an update without changes returns the movement."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))
        assert asyncio.run(flow.update(alice, movement, MovementUpdate())) == movement

    def test_delete_then_reload(self, store, alice):
        """Test that a deleted movement disappears from the listing."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))

        assert asyncio.run(flow.delete(alice, movement)) is True
        assert asyncio.run(flow.load(alice)) == []

    def test_delete_other_users_movement(self, store, alice, bob):
        """Test that deleting someone else's movement is refused."""
        movement = asyncio.run(store.create_movement(income(), alice.uid))
        with pytest.raises(OwnershipError):
            asyncio.run(MovementListingFlow(store).delete(bob, movement))
        assert movement.id in store.documents

    def test_delete_failure_is_flow_error(self, alice):
        """Test that a failed delete carries the user message."""
        movement = Movement.from_document("m1", income().with_owner(alice.uid).to_document())

        with pytest.raises(FlowError) as excinfo:
            asyncio.run(MovementListingFlow(FailingStore()).delete(alice, movement))
        assert excinfo.value.user_message == DELETE_ERROR_MESSAGE

    def test_update_from_form_fixed_to_variable(self, store, alice):
        """Test that switching to variable settles the expense and drops the months."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(expense(months=[24299, 24300]), alice.uid))
        state = state_for_movement(MovementKind.EXPENSE, ExpenseKind.VARIABLE, None)

        result = asyncio.run(flow.update_from_form(alice, movement, state, "300", "Conta de Luz"))

        assert result.success
        assert result.message == UPDATE_SUCCESS_MESSAGE
        document = store.documents[movement.id]
        assert document["despesaTipo"] == "variavel"
        assert document["situacao"] == "pago"
        assert "meses" not in document

    def test_update_from_form_other_user(self, store, alice, bob):
        """Test that the edit modal reports ownership errors as a message."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))

        result = asyncio.run(flow.update_from_form(bob, movement, EntryFormState(), "10", "x"))
        assert not result.success
        assert result.message == OWNERSHIP_MESSAGE

    def test_changes_from_form_only_differences(self, store, alice):
        """Test that unchanged values are not part of the update."""
        flow = MovementListingFlow(store)
        movement = asyncio.run(store.create_movement(income(), alice.uid))

        changes = flow.changes_from_form(movement, EntryFormState(), "1000", "Salário")
        assert changes.is_empty
        changes = flow.changes_from_form(movement, EntryFormState(), "1200", "Salário")
        assert changes.changed_fields() == {"amount": Decimal("1200")}


class TestDisplay:
    """Tests for listing rows and the CSV download."""

    def test_fixed_expense_row(self, store, alice):
        """Test the localized row of a twelve-month fixed expense."""
        movement = asyncio.run(store.create_movement(
            expense(status="pago", months=list(range(24299, 24311))),
            alice.uid,
        ))
        row = display_row(movement)
        assert row["Valor"] == "R$ 300,00"
        assert row["Data"] == "02/12/2024"
        assert row["Meses"] == "12 meses"
        assert row["Período"] == "12/2024 a 11/2025"
        assert row["Situação"] == "Pago"

    def test_income_row(self, store, alice):
        """Test that income rows show dashes for expense columns."""
        movement = asyncio.run(store.create_movement(income(), alice.uid))
        row = display_row(movement)
        assert row["Tipo"] == "Receita"
        assert row["Tipo de Despesa"] == "-"
        assert row["Período"] == "-"

    def test_card_escapes_description(self, store, alice):
        """Test that markup typed into a description is rendered as text."""
        movement = asyncio.run(store.create_movement(
            income(description="<img src=x onerror=alert(1)>"),
            alice.uid,
        ))
        card = movement_card_html(display_row(movement))
        assert "&lt;img src=x onerror=alert(1)&gt;" in card
        assert "<img" not in card
        assert 'class="movement-card receita"' in card

    def test_csv_header(self, store, alice):
        """Test the CSV column order without the id column."""
        asyncio.run(store.create_movement(income(), alice.uid))
        flow = MovementListingFlow(store)
        content = flow.to_csv(asyncio.run(flow.load(alice))).decode("utf-8")
        header = content.splitlines()[0]
        assert header == "Data,Descrição,Tipo,Valor,Tipo de Despesa,Meses,Período,Situação"


class TestDashboardFlow:
    """Tests for the dashboard."""

    def test_loading_session_renders_nothing(self, store, provider):
        """Test that no totals are computed while the session resolves."""
        session = AuthSession(provider)
        assert asyncio.run(DashboardFlow(store).load(session)) is None

    def test_signed_out_raises(self, store, provider):
        """Test that a settled session without a user raises."""
        session = AuthSession(provider)
        asyncio.run(session.restore())
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(DashboardFlow(store).load(session))

    def test_totals_follow_the_user(self, store, provider):
        """Test that switching users switches the totals."""
        provider.add_account("alice@example.com", "secret1", "Alice", uid="uid-alice")
        provider.add_account("bob@example.com", "secret2", None, uid="uid-bob")
        asyncio.run(store.create_movement(income(), "uid-alice"))
        asyncio.run(store.create_movement(expense(status="pendente"), "uid-alice"))
        asyncio.run(store.create_movement(income(amount="50"), "uid-bob"))

        session = AuthSession(provider)
        flow = DashboardFlow(store)

        asyncio.run(session.sign_in("alice@example.com", "secret1"))
        summary = asyncio.run(flow.load(session))
        assert summary.total_income == Decimal("1000")
        assert summary.total_expenses == Decimal("300")
        assert summary.balance == Decimal("700")
        assert summary.fixed_expense_count == 1

        asyncio.run(session.sign_out())
        asyncio.run(session.sign_in("bob@example.com", "secret2"))
        summary = asyncio.run(flow.load(session))
        assert summary.total_income == Decimal("50")
        assert summary.total_expenses == Decimal("0")


class TestReportFlow:
    """Tests for the report page."""

    @pytest.fixture
    def seeded(self, store, alice):
        asyncio.run(store.create_movement(income(), alice.uid))
        asyncio.run(store.create_movement(expense(status="pendente"), alice.uid))
        asyncio.run(store.create_movement(income(amount="200", day=date(2024, 11, 30)), alice.uid))
        asyncio.run(store.create_movement(income(amount="70"), "uid-other"))
        return store

    def test_all_kinds_fetches_the_month(self, seeded, alice, app_settings):
        """Test that 'todos' queries only the selected month."""
        flow = ReportFlow(seeded, app_settings)
        movements = asyncio.run(flow.fetch(alice, ReportFilters(month=12, year=2024)))
        assert {m.date.month for m in movements} == {12}
        assert len(movements) == 2

    def test_kind_fetches_all_months(self, seeded, alice, app_settings):
        """Test that a kind query is narrowed by month on the client."""
        flow = ReportFlow(seeded, app_settings)
        filters = ReportFilters(kind=KindFilter.INCOME, month=12, year=2024)
        assert len(asyncio.run(flow.fetch(alice, filters))) == 2

        report = asyncio.run(flow.build(alice, filters))
        assert report.total_income == Decimal("1000")

    def test_pending_report(self, seeded, alice, app_settings):
        """Test totals with the pending status filter."""
        flow = ReportFlow(seeded, app_settings)
        filters = ReportFilters(status=StatusFilter.PENDING, month=12, year=2024)
        report = asyncio.run(flow.build(alice, filters))

        assert report.total_pending == Decimal("300")
        assert report.balance == Decimal("700")
        file_name, content = flow.export(report)
        assert file_name == "relatorio_financeiro_2024_12.pdf"
        assert content.startswith(b"%PDF")
        assert flow.chart(report) is not None

    def test_fetch_requires_user(self, store, app_settings):
        """Test that reports need a signed-in user."""
        with pytest.raises(NotAuthenticatedError):
            asyncio.run(ReportFlow(store, app_settings).fetch(None, ReportFilters(month=1, year=2024)))


class TestProfileFlow:
    """Tests for the profile page."""

    def test_missing_name_is_not_informed(self, store, bob):
        """Test the placeholder for a user without a display name."""
        view = asyncio.run(ProfileFlow(store).load(bob))
        assert view.name == NOT_INFORMED
        assert view.email == "bob@example.com"
        assert view.summary.movement_count == 0

    def test_name_from_profile_document(self, store, profiles, bob):
        """Test that the stored profile fills a missing display name."""
        asyncio.run(profiles.save_profile(UserProfile(uid=bob.uid, name="Bob", email=bob.email)))
        view = asyncio.run(ProfileFlow(store, profiles).load(bob))
        assert view.name == "Bob"

    def test_display_name_wins(self, store, alice):
        """Test that the identity's display name is used first."""
        asyncio.run(store.create_movement(income(), alice.uid))
        view = asyncio.run(ProfileFlow(store).load(alice))
        assert view.name == "Alice"
        assert view.summary.total_income == Decimal("1000")


class TestAppComponents:
    """Tests for component wiring."""

    def test_memory_backend(self, tmp_path, monkeypatch):
        """Test that the memory backend wires every flow to one store."""
        monkeypatch.chdir(tmp_path)
        components = create_app_components(StoreBackend.MEMORY)
        assert components.backend == StoreBackend.MEMORY
        assert not components.degraded
        assert isinstance(components.store, InMemoryMovementStore)
        assert components.new_session().loading

    def test_unconfigured_remote_backend_degrades(self, tmp_path, monkeypatch):
        """Test the fallback to memory when Firebase is not configured."""
        monkeypatch.chdir(tmp_path)
        for name in ["FIREBASE_WEB_API_KEY", "FIREBASE_CREDENTIALS_PATH"]:
            monkeypatch.delenv(name, raising=False)
        components = create_app_components(StoreBackend.FIRESTORE)
        assert components.degraded
        assert components.backend == StoreBackend.MEMORY

    def test_current_period(self):
        """Test the month the report page opens on."""
        assert current_period(date(2025, 3, 15)) == (3, 2025)
